"""Advisory LLM review of a composed report.

The evaluator only recommends an outcome; QAGate decides how much weight it
gets. Provider failures never raise, they resolve to the configured fallback.
"""

from __future__ import annotations

import asyncio
import time
import zlib
from typing import Literal

from pydantic import BaseModel, Field

from smile_report.config.settings import Settings
from smile_report.exceptions import EvaluationError
from smile_report.models.domain import (
    ComposedReport,
    Confidence,
    DriverState,
    LLMEvaluation,
    QAOutcome,
)
from smile_report.observability.logger import get_logger
from smile_report.protocols.llm import LLMProvider
from smile_report.qa.prompt_templates import (
    REPORT_EVALUATION_PROMPT,
    REPORT_EVALUATION_SYSTEM,
    TONE_CRITERIA,
)
from smile_report.tone.tone_selector import ToneSelector

logger = get_logger("llm_evaluator")

DIMENSIONS = (
    "professional_quality",
    "clinical_safety",
    "tone_appropriateness",
    "personalization",
    "patient_autonomy",
    "structure_completeness",
)


class DimensionScore(BaseModel):
    score: int = Field(ge=1, le=10)
    feedback: str = ""
    issues: list[str] = []


class ContentIssue(BaseModel):
    section_number: int
    source_content: str = ""
    quote: str = ""
    problem: str
    severity: Literal["critical", "warning", "info"]
    suggested_fix: str = ""


class EvaluationResponse(BaseModel):
    professional_quality: DimensionScore
    clinical_safety: DimensionScore
    tone_appropriateness: DimensionScore
    personalization: DimensionScore
    patient_autonomy: DimensionScore
    structure_completeness: DimensionScore
    content_issues: list[ContentIssue] = []
    overall_assessment: str = ""


def sampling_bucket(session_id: str) -> float:
    """Stable value in [0, 1) for a session, used for cost-control sampling."""
    return (zlib.crc32(session_id.encode("utf-8")) % 100) / 100


class LLMReportEvaluator:
    def __init__(self, settings: Settings, llm: LLMProvider | None, tone_selector: ToneSelector) -> None:
        self._settings = settings
        self._llm = llm
        self._tones = tone_selector

    @property
    def enabled(self) -> bool:
        return self._settings.llm_evaluator_enabled

    def should_evaluate(self, report: ComposedReport) -> bool:
        if not self._settings.llm_evaluator_enabled:
            return False
        if self._settings.llm_skip_high_confidence_pass and report.confidence == Confidence.HIGH:
            return False
        rate = self._settings.llm_sampling_rate
        if rate < 1.0 and sampling_bucket(report.session_id) >= rate:
            return False
        return True

    async def evaluate(self, report: ComposedReport, state: DriverState) -> LLMEvaluation | None:
        if not self.should_evaluate(report):
            logger.info("llm_evaluation_skipped", session_id=report.session_id)
            return None

        start = time.perf_counter()
        if self._llm is None:
            return self._fallback("no LLM provider configured", start)

        prompt = self.build_prompt(report, state)
        try:
            response = await asyncio.wait_for(
                self._llm.generate_structured(
                    prompt,
                    EvaluationResponse,
                    system=REPORT_EVALUATION_SYSTEM,
                    temperature=self._settings.llm_temperature,
                ),
                timeout=self._settings.llm_timeout_s,
            )
            if not isinstance(response, EvaluationResponse):
                raise EvaluationError(f"unexpected evaluation payload: {type(response).__name__}")
        except Exception as e:
            logger.warning("llm_evaluation_failed", session_id=report.session_id, error=str(e))
            return self._fallback(str(e) or type(e).__name__, start)

        overall = self.overall_score(response)
        outcome, reasoning = self.decide(response, overall)
        elapsed = (time.perf_counter() - start) * 1000
        logger.info(
            "llm_evaluation_completed",
            session_id=report.session_id,
            overall_score=overall,
            outcome=outcome.value,
            duration_ms=round(elapsed, 1),
        )
        return LLMEvaluation(
            overall_score=overall,
            recommended_outcome=outcome,
            outcome_reasoning=reasoning,
            dimension_scores={d: getattr(response, d).score for d in DIMENSIONS},
            content_issues=[issue.model_dump() for issue in response.content_issues],
            content_files_to_review=list(
                dict.fromkeys(i.source_content for i in response.content_issues if i.source_content)
            ),
            overall_assessment=response.overall_assessment,
            model_used=self._llm.model_name,
            duration_ms=round(elapsed, 1),
        )

    def build_prompt(self, report: ComposedReport, state: DriverState) -> str:
        drivers_block = "\n".join(f"- {d.value}: {v.value}" for d, v in state.drivers.items())
        report_block = "\n\n".join(
            f"## Section {s.section_number}: {s.section_name} (sources: {', '.join(s.sources)})\n{s.content}"
            for s in report.sections
        )
        return REPORT_EVALUATION_PROMPT.format(
            tone=report.tone,
            tone_name=self._tones.get_tone_name(report.tone),
            tone_criteria=TONE_CRITERIA.get(report.tone, ""),
            scenario_id=report.scenario_id,
            confidence=report.confidence.value,
            drivers_block=drivers_block,
            report_block=report_block,
        )

    def overall_score(self, response: EvaluationResponse) -> float:
        weights = self._settings.llm_weights
        total = sum(getattr(response, d).score * weights[d] for d in DIMENSIONS)
        return round(total, 1)

    def decide(self, response: EvaluationResponse, overall: float) -> tuple[QAOutcome, str]:
        s = self._settings
        scores = [(d, getattr(response, d).score) for d in DIMENSIONS]

        if overall < s.llm_block_below:
            return QAOutcome.BLOCK, f"Overall score {overall:.1f} below blocking threshold {s.llm_block_below}"
        for name, score in scores:
            if score < s.llm_dimension_block_below:
                return QAOutcome.BLOCK, (
                    f"{name} score {score} below dimension blocking threshold {s.llm_dimension_block_below}"
                )
        critical = [i for i in response.content_issues if i.severity == "critical"]
        if critical:
            return QAOutcome.BLOCK, f"{len(critical)} critical content issue(s) found"

        if overall < s.llm_flag_below:
            return QAOutcome.FLAG, f"Overall score {overall:.1f} below flagging threshold {s.llm_flag_below}"
        for name, score in scores:
            if score < s.llm_dimension_flag_below:
                return QAOutcome.FLAG, (
                    f"{name} score {score} below dimension flagging threshold {s.llm_dimension_flag_below}"
                )
        warnings = [i for i in response.content_issues if i.severity == "warning"]
        if len(warnings) >= s.llm_warning_issues_flag:
            return QAOutcome.FLAG, f"{len(warnings)} warning-level content issues found"

        return QAOutcome.PASS, "All scores above thresholds, no critical issues"

    def _fallback(self, error: str, start: float) -> LLMEvaluation:
        outcome = QAOutcome(self._settings.llm_fallback_outcome)
        return LLMEvaluation(
            overall_score=0.0,
            recommended_outcome=outcome,
            outcome_reasoning=f"Fallback due to error: {error}",
            dimension_scores={d: 0 for d in DIMENSIONS},
            content_issues=[],
            content_files_to_review=[],
            overall_assessment=f"LLM evaluation failed: {error}",
            model_used=self._llm.model_name if self._llm is not None else self._settings.gemini_model,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
            is_fallback=True,
        )
