"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from smile_report.models.domain import IntakeData, QuestionAnswer


class AnswerIn(BaseModel):
    question_id: str
    answer: str | int | list[str] = ""
    skipped: bool = False


class ReportRequest(BaseModel):
    session_id: str = Field(default_factory=lambda: str(uuid4()))
    answers: list[AnswerIn]
    language: str = "en"
    metadata: dict = Field(default_factory=dict)

    def to_intake(self) -> IntakeData:
        return IntakeData(
            session_id=self.session_id,
            answers=[QuestionAnswer(a.question_id, a.answer, a.skipped) for a in self.answers],
            language=self.language,
            metadata=dict(self.metadata),
        )


class SectionOut(BaseModel):
    section_number: int
    section_name: str
    content: str
    sources: list[str]
    word_count: int


class ReportOut(BaseModel):
    scenario_id: str
    tone: str
    language: str
    confidence: str
    sections: list[SectionOut]
    total_word_count: int
    warnings_included: bool
    suppressed_sections: list[int]
    placeholders_unresolved: list[str]


class ReportResponse(BaseModel):
    session_id: str
    success: bool
    outcome: Literal["PASS", "FLAG", "BLOCK"]
    requires_review: bool
    scenario: str
    confidence: str
    tone: str
    fallback_used: bool
    reasons: list[str]
    report: ReportOut | None = None
    error: str | None = None


class QuickResponse(BaseModel):
    session_id: str
    valid: bool
    scenario: str | None
    confidence: str | None
    tone: str | None
    fallback_used: bool
    drivers: dict[str, str]
    errors: list[str] = []


class HealthResponse(BaseModel):
    status: str
    rule_versions: dict[str, str]
    audits_by_outcome: dict[str, int]
