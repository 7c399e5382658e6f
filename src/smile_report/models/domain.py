"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Layer(str, Enum):
    L1 = "L1"  # safety
    L2 = "L2"  # personalization
    L3 = "L3"  # narrative


class DriverId(str, Enum):
    # L1
    CLINICAL_PRIORITY = "clinical_priority"
    BIOLOGICAL_STABILITY = "biological_stability"
    MOUTH_SITUATION = "mouth_situation"
    AGE_STAGE = "age_stage"
    MEDICAL_CONSTRAINTS = "medical_constraints"
    TREATMENT_VIABILITY = "treatment_viability"
    RISK_PROFILE_BIOLOGICAL = "risk_profile_biological"
    # L2
    PROFILE_TYPE = "profile_type"
    AESTHETIC_TOLERANCE = "aesthetic_tolerance"
    EXPECTATION_RISK = "expectation_risk"
    EXPERIENCE_HISTORY = "experience_history"
    DECISION_STAGE = "decision_stage"
    AUTONOMY_LEVEL = "autonomy_level"
    # L3
    ANXIETY_LEVEL = "anxiety_level"
    INFORMATION_DEPTH = "information_depth"
    BUDGET_TYPE = "budget_type"
    TREATMENT_PHILOSOPHY = "treatment_philosophy"
    TIME_HORIZON = "time_horizon"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    FALLBACK = "FALLBACK"


class QAOutcome(str, Enum):
    PASS = "PASS"
    FLAG = "FLAG"
    BLOCK = "BLOCK"


class ContentType(str, Enum):
    SCENARIO = "scenario"
    A_BLOCK = "a_block"
    B_BLOCK = "b_block"
    MODULE = "module"
    STATIC = "static"


class Severity(str, Enum):
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


# --- Intake ---


@dataclass(frozen=True)
class QuestionAnswer:
    question_id: str
    answer: str | int | list[str]
    skipped: bool = False


@dataclass
class IntakeData:
    session_id: str
    answers: list[QuestionAnswer]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    language: str = "en"
    metadata: dict = field(default_factory=dict)


@dataclass
class IntakeIssue:
    question_id: str
    code: str
    message: str
    expected: list[str] | None = None
    received: object = None


@dataclass
class IntakeValidationResult:
    valid: bool
    errors: list[IntakeIssue]
    warnings: list[IntakeIssue]


# --- Tags & drivers ---


@dataclass(frozen=True)
class ExtractedTag:
    tag: str
    source_question: str
    source_answer: str


@dataclass
class TagExtractionResult:
    session_id: str
    tags: list[ExtractedTag]
    missing_questions: list[str]

    @property
    def tag_set(self) -> frozenset[str]:
        return frozenset(t.tag for t in self.tags)


@dataclass(frozen=True)
class DriverValue:
    driver_id: DriverId
    layer: Layer
    value: str
    source: str  # "derived", "fallback"
    source_tags: tuple[str, ...]
    confidence: float


@dataclass(frozen=True)
class DriverConflict:
    driver_id: DriverId
    conflicting_values: tuple[str, ...]
    resolved_value: str
    resolution_reason: str


@dataclass(frozen=True)
class DriverState:
    session_id: str
    drivers: dict[DriverId, DriverValue]
    conflicts: tuple[DriverConflict, ...] = ()
    fallbacks_applied: tuple[DriverId, ...] = ()

    def value(self, driver_id: DriverId | str) -> str | None:
        dv = self.drivers.get(DriverId(driver_id))
        return dv.value if dv else None


# --- Scenario scoring ---


@dataclass
class ScoreBreakdown:
    driver_id: str
    criterion: str  # "required", "excluding", "strong", "supporting"
    matched: bool
    points: float


@dataclass
class ScenarioScore:
    scenario_id: str
    score: float
    matched_required: int
    matched_strong: int
    matched_supporting: int
    excluded: bool
    breakdown: list[ScoreBreakdown] = field(default_factory=list)


@dataclass
class ScenarioMatchResult:
    session_id: str
    matched_scenario: str
    confidence: Confidence
    score: float
    all_scores: list[ScenarioScore]
    fallback_used: bool
    fallback_reason: str | None = None


# --- Tone ---


@dataclass
class EvaluatedTrigger:
    tone: str
    matched: bool
    trigger_driver: str | None = None


@dataclass
class ToneSelectionResult:
    selected_tone: str
    reason: str
    evaluated_triggers: list[EvaluatedTrigger]


# --- Content & composition ---


@dataclass
class ContentSelection:
    content_id: str
    type: ContentType
    target_section: int
    tone: str
    priority: int
    suppressed: bool = False
    suppression_reason: str | None = None


@dataclass
class ReportSection:
    section_number: int
    section_name: str
    content: str
    sources: list[str]
    word_count: int


@dataclass
class ComposedReport:
    session_id: str
    scenario_id: str
    tone: str
    language: str
    confidence: Confidence
    sections: list[ReportSection]
    total_word_count: int
    warnings_included: bool
    suppressed_sections: list[int]
    placeholders_resolved: int
    placeholders_unresolved: list[str]

    def section(self, number: int) -> ReportSection | None:
        for s in self.sections:
            if s.section_number == number:
                return s
        return None


# --- QA ---


@dataclass
class SemanticViolation:
    phrase: str
    section: int
    position: int
    severity: Severity
    rule: str


@dataclass
class SemanticScanResult:
    violations: list[SemanticViolation]
    has_violations: bool
    has_critical_violations: bool
    total: int
    critical: int
    warning: int


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str]
    warnings: list[str]
    semantic_violations: list[SemanticViolation] = field(default_factory=list)


@dataclass
class LLMEvaluation:
    overall_score: float
    recommended_outcome: QAOutcome
    outcome_reasoning: str
    dimension_scores: dict[str, int]
    content_issues: list[dict]
    content_files_to_review: list[str]
    overall_assessment: str
    model_used: str
    duration_ms: float
    is_fallback: bool = False


@dataclass
class QAGateResult:
    outcome: QAOutcome
    reasons: list[str]
    semantic_result: SemanticScanResult
    validation_result: ValidationResult
    can_deliver: bool
    requires_review: bool
    llm_evaluation: LLMEvaluation | None = None


# --- Audit ---


@dataclass
class TraceEvent:
    stage: str
    action: str
    input: object
    output: object
    duration_ms: float
    timestamp: datetime


@dataclass
class DecisionTrace:
    session_id: str
    started_at: datetime
    completed_at: datetime
    events: list[TraceEvent]
    final_outcome: QAOutcome


@dataclass(frozen=True)
class AuditRecord:
    session_id: str
    created_at: datetime
    intake: IntakeData
    driver_state: DriverState | None
    scenario_match: ScenarioMatchResult
    content_selections: list[ContentSelection]
    tone_selection: ToneSelectionResult
    composed_report: ComposedReport | None
    validation_result: ValidationResult | None
    decision_trace: DecisionTrace
    final_outcome: QAOutcome
    report_delivered: bool
    llm_evaluation: LLMEvaluation | None = None


@dataclass
class PipelineResult:
    success: bool
    outcome: QAOutcome
    audit: AuditRecord
    report: ComposedReport | None = None
    error: str | None = None
    reasons: list[str] = field(default_factory=list)


@dataclass
class QuickResult:
    session_id: str
    valid: bool
    scenario: str | None
    confidence: Confidence | None
    tone: str | None
    fallback_used: bool
    drivers: dict[str, str]
    errors: list[str] = field(default_factory=list)
