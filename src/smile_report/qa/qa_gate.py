"""PASS / FLAG / BLOCK decision over semantic, structural and advisory signals."""

from __future__ import annotations

from smile_report.config.settings import Settings
from smile_report.models.domain import (
    ComposedReport,
    Confidence,
    ContentSelection,
    DriverState,
    LLMEvaluation,
    QAGateResult,
    QAOutcome,
    SemanticScanResult,
    ValidationResult,
)
from smile_report.observability.logger import get_logger
from smile_report.qa.composition_validator import CompositionValidator
from smile_report.qa.llm_evaluator import LLMReportEvaluator
from smile_report.qa.semantic_leakage import SemanticLeakageDetector

logger = get_logger("qa_gate")

ALL_PASSED = "All QA checks passed"


class QAGate:
    def __init__(
        self,
        settings: Settings,
        detector: SemanticLeakageDetector,
        validator: CompositionValidator,
        llm_evaluator: LLMReportEvaluator | None = None,
    ) -> None:
        self._settings = settings
        self._detector = detector
        self._validator = validator
        self._llm = llm_evaluator

    async def check(
        self,
        report: ComposedReport,
        selections: list[ContentSelection],
        state: DriverState | None = None,
    ) -> QAGateResult:
        reasons: list[str] = []
        semantic, validation = self._scan(report, selections)
        outcome = self.rule_based_outcome(semantic, validation, report, reasons)

        evaluation: LLMEvaluation | None = None
        if self._llm is not None and state is not None and outcome != QAOutcome.BLOCK:
            evaluation = await self._llm.evaluate(report, state)
            if evaluation is not None:
                outcome = self.apply_llm_outcome(outcome, evaluation, reasons)

        return self._result(outcome, reasons, semantic, validation, evaluation, report)

    def check_sync(self, report: ComposedReport, selections: list[ContentSelection]) -> QAGateResult:
        reasons: list[str] = []
        semantic, validation = self._scan(report, selections)
        outcome = self.rule_based_outcome(semantic, validation, report, reasons)
        return self._result(outcome, reasons, semantic, validation, None, report)

    def _scan(
        self, report: ComposedReport, selections: list[ContentSelection]
    ) -> tuple[SemanticScanResult, ValidationResult]:
        semantic = self._detector.scan_report(report)
        validation = self._validator.validate(report, selections)
        validation.semantic_violations = semantic.violations
        return semantic, validation

    def rule_based_outcome(
        self,
        semantic: SemanticScanResult,
        validation: ValidationResult,
        report: ComposedReport,
        reasons: list[str],
    ) -> QAOutcome:
        s = self._settings
        outcome = QAOutcome.PASS

        if semantic.critical > s.qa_max_critical_violations:
            outcome = QAOutcome.BLOCK
            reasons.append(f"{semantic.critical} critical semantic violation(s) detected")
        if len(validation.errors) > s.qa_max_validation_errors:
            outcome = QAOutcome.BLOCK
            reasons.append(f"{len(validation.errors)} validation error(s) detected")
        if s.qa_block_on_unresolved_placeholders and report.placeholders_unresolved:
            outcome = QAOutcome.BLOCK
            reasons.append(f"{len(report.placeholders_unresolved)} unresolved placeholder(s)")
        if outcome == QAOutcome.BLOCK:
            return outcome

        if semantic.warning > s.qa_max_warning_violations:
            outcome = QAOutcome.FLAG
            reasons.append(f"{semantic.warning} semantic warning(s) exceed threshold")
        if len(validation.warnings) > s.qa_max_validation_warnings:
            outcome = QAOutcome.FLAG
            reasons.append(f"{len(validation.warnings)} validation warning(s) exceed threshold")
        if report.confidence in (Confidence.LOW, Confidence.FALLBACK):
            outcome = QAOutcome.FLAG
            reasons.append(f"Report confidence is {report.confidence.value}")
        return outcome

    def apply_llm_outcome(self, current: QAOutcome, evaluation: LLMEvaluation, reasons: list[str]) -> QAOutcome:
        """Advisory signals can only make the outcome more conservative."""
        recommended = evaluation.recommended_outcome
        if recommended == QAOutcome.BLOCK:
            if self._settings.llm_evaluator_can_block:
                reasons.append(f"LLM evaluation BLOCKED: {evaluation.outcome_reasoning}")
                return QAOutcome.BLOCK
            reasons.append(f"LLM evaluation flagged (BLOCK downgraded): {evaluation.outcome_reasoning}")
            return QAOutcome.FLAG if current != QAOutcome.BLOCK else current
        if recommended == QAOutcome.FLAG:
            reasons.append(f"LLM evaluation flagged: {evaluation.outcome_reasoning}")
            return QAOutcome.FLAG if current != QAOutcome.BLOCK else current
        if current == QAOutcome.PASS:
            reasons.append(f"LLM evaluation passed (score: {evaluation.overall_score:.1f})")
        return current

    def _result(
        self,
        outcome: QAOutcome,
        reasons: list[str],
        semantic: SemanticScanResult,
        validation: ValidationResult,
        evaluation: LLMEvaluation | None,
        report: ComposedReport,
    ) -> QAGateResult:
        if outcome == QAOutcome.PASS and not reasons:
            reasons.append(ALL_PASSED)
        logger.info(
            "qa_gate_decided",
            session_id=report.session_id,
            outcome=outcome.value,
            reasons=reasons,
            critical=semantic.critical,
            warnings=semantic.warning,
            validation_errors=len(validation.errors),
            validation_warnings=len(validation.warnings),
        )
        return QAGateResult(
            outcome=outcome,
            reasons=reasons,
            semantic_result=semantic,
            validation_result=validation,
            can_deliver=outcome != QAOutcome.BLOCK,
            requires_review=outcome == QAOutcome.FLAG,
            llm_evaluation=evaluation,
        )

    @staticmethod
    def format_violation_report(result: QAGateResult) -> str:
        lines = [f"QA Gate Result: {result.outcome.value}", f"Reasons: {'; '.join(result.reasons)}", ""]

        if result.semantic_result.violations:
            lines.append("Semantic Violations:")
            for v in result.semantic_result.violations:
                lines.append(f'  [{v.severity.value}] "{v.phrase}" in section {v.section} - {v.rule}')
            lines.append("")
        if result.validation_result.errors:
            lines.append("Validation Errors:")
            lines.extend(f"  - {e}" for e in result.validation_result.errors)
            lines.append("")
        if result.validation_result.warnings:
            lines.append("Validation Warnings:")
            lines.extend(f"  - {w}" for w in result.validation_result.warnings)
            lines.append("")
        if result.llm_evaluation is not None:
            llm = result.llm_evaluation
            lines.append("LLM Evaluation:")
            lines.append(f"  Overall Score: {llm.overall_score:.1f}/10")
            for name, score in llm.dimension_scores.items():
                lines.append(f"  {name}: {score}/10")
            lines.append(f"  Recommended: {llm.recommended_outcome.value}")
            lines.append(f"  Assessment: {llm.overall_assessment}")
        return "\n".join(lines)
