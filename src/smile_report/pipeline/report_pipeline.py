"""Report pipeline orchestrator: intake in, PASS/FLAG/BLOCK result and audit out."""

from __future__ import annotations

from datetime import datetime, timezone

from smile_report.composition.report_composer import ReportComposer
from smile_report.config.rules import RuleSet
from smile_report.config.settings import Settings
from smile_report.derivation.driver_deriver import DriverDeriver
from smile_report.extraction.tag_extractor import TagExtractor
from smile_report.models.domain import (
    AuditRecord,
    Confidence,
    IntakeData,
    Layer,
    PipelineResult,
    QAOutcome,
    QuickResult,
    ScenarioMatchResult,
    ToneSelectionResult,
    ValidationResult,
)
from smile_report.observability.logger import get_logger
from smile_report.observability.metrics import log_latency, log_qa_metrics, log_scenario_metrics
from smile_report.observability.tracing import TraceCollector
from smile_report.protocols.audit_store import AuditStore
from smile_report.protocols.content_store import ContentStore
from smile_report.protocols.llm import LLMProvider
from smile_report.qa.composition_validator import CompositionValidator
from smile_report.qa.llm_evaluator import LLMReportEvaluator
from smile_report.qa.qa_gate import QAGate
from smile_report.qa.semantic_leakage import SemanticLeakageDetector
from smile_report.scoring.scenario_scorer import ScenarioScorer
from smile_report.selection.content_selector import ContentSelector
from smile_report.tone.tone_selector import ToneSelector
from smile_report.validation.intake_validator import IntakeValidator

logger = get_logger("report_pipeline")

VALIDATION_ERROR = "VALIDATION_ERROR"
PIPELINE_ERROR = "ERROR"


class ReportPipeline:
    def __init__(
        self,
        validator: IntakeValidator,
        tag_extractor: TagExtractor,
        driver_deriver: DriverDeriver,
        scenario_scorer: ScenarioScorer,
        tone_selector: ToneSelector,
        content_selector: ContentSelector,
        composer: ReportComposer,
        qa_gate: QAGate,
        audit_store: AuditStore | None = None,
    ) -> None:
        self._validator = validator
        self._tags = tag_extractor
        self._drivers = driver_deriver
        self._scorer = scenario_scorer
        self._tones = tone_selector
        self._content = content_selector
        self._composer = composer
        self._qa = qa_gate
        self._audit_store = audit_store

    @classmethod
    def from_rules(
        cls,
        settings: Settings,
        rules: RuleSet,
        content_store: ContentStore,
        llm: LLMProvider | None = None,
        audit_store: AuditStore | None = None,
    ) -> ReportPipeline:
        l3 = [d for d, defn in rules.drivers.drivers.items() if defn.layer == Layer.L3]
        tone_selector = ToneSelector(rules.tones)
        evaluator = LLMReportEvaluator(settings, llm, tone_selector) if settings.llm_evaluator_enabled else None
        return cls(
            validator=IntakeValidator(rules.questions),
            tag_extractor=TagExtractor(rules.tag_extraction, rules.questions),
            driver_deriver=DriverDeriver(rules.drivers),
            scenario_scorer=ScenarioScorer(rules.scenarios, l3_drivers=l3),
            tone_selector=tone_selector,
            content_selector=ContentSelector(rules.content),
            composer=ReportComposer(
                rules.composition,
                rules.content,
                tone_selector,
                content_store,
                content_timeout_s=settings.content_timeout_s,
            ),
            qa_gate=QAGate(
                settings,
                SemanticLeakageDetector(tone_selector),
                CompositionValidator(rules.content, rules.composition),
                evaluator,
            ),
            audit_store=audit_store,
        )

    async def run(self, intake: IntakeData) -> PipelineResult:
        """Run every stage; never raises, every run yields an audit record."""
        trace = TraceCollector(intake.session_id)
        logger.info("pipeline_started", session_id=intake.session_id, answers=len(intake.answers))
        try:
            result = await self._run_stages(intake, trace)
        except Exception as e:
            logger.error("pipeline_failed", session_id=intake.session_id, error=str(e), exc_info=True)
            result = self._failed(intake, trace, PIPELINE_ERROR, str(e) or type(e).__name__, [str(e)])

        await self._persist(result.audit)
        logger.info(
            "pipeline_completed",
            session_id=intake.session_id,
            outcome=result.outcome.value,
            success=result.success,
        )
        return result

    async def _run_stages(self, intake: IntakeData, trace: TraceCollector) -> PipelineResult:
        with trace.stage("input_validation", "validate_intake", {"answers": len(intake.answers)}) as t:
            validation = self._validator.validate(intake)
            t.output = {"valid": validation.valid, "errors": len(validation.errors), "warnings": len(validation.warnings)}
        if not validation.valid:
            messages = [e.message for e in validation.errors]
            logger.warning("intake_rejected", session_id=intake.session_id, errors=messages)
            return self._failed(
                intake,
                trace,
                VALIDATION_ERROR,
                "Input validation failed",
                messages,
                warnings=[w.message for w in validation.warnings],
                error=f"Input validation failed: {'; '.join(messages)}",
            )

        with trace.stage("tag_extraction", "extract_tags", {"answers": len(intake.answers)}) as t:
            tag_result = self._tags.extract(intake)
            t.output = tag_result

        with trace.stage("driver_derivation", "derive_drivers", {"tags": len(tag_result.tags)}) as t:
            state = self._drivers.derive(tag_result)
            t.output = state

        with trace.stage("scenario_scoring", "score_scenarios", {"session_id": intake.session_id}) as t:
            match = self._scorer.score(state)
            t.output = match
        log_scenario_metrics(intake.session_id, match)

        with trace.stage("tone_selection", "select_tone") as t:
            tone = self._tones.select(state)
            t.output = tone

        with trace.stage("content_selection", "select_content", {"scenario": match.matched_scenario}) as t:
            selections = self._content.select(state, match, tone.selected_tone, tag_result.tag_set)
            t.output = selections

        with trace.stage("scenario_content_load", "load_scenario", {"scenario": match.matched_scenario}) as t:
            scenario_content = await self._composer.fetch_content(
                match.matched_scenario, tone.selected_tone, intake.language
            )
            t.output = {"loaded": scenario_content is not None}

        with trace.stage("composition", "compose_report", {"selections": len(selections)}) as t:
            report = await self._composer.compose(
                intake, state, match, selections, tone.selected_tone, scenario_content
            )
            t.output = {
                "sections": [s.section_number for s in report.sections],
                "suppressed_sections": report.suppressed_sections,
                "words": report.total_word_count,
                "placeholders_unresolved": report.placeholders_unresolved,
            }

        with trace.stage("qa_gate", "qa_check", {"session_id": intake.session_id}) as t:
            qa = await self._qa.check(report, selections, state)
            t.output = {"outcome": qa.outcome, "reasons": qa.reasons}
        log_qa_metrics(intake.session_id, qa)
        for event in trace.events:
            log_latency(intake.session_id, event.stage, event.duration_ms)

        audit = AuditRecord(
            session_id=intake.session_id,
            created_at=datetime.now(timezone.utc),
            intake=intake,
            driver_state=state,
            scenario_match=match,
            content_selections=selections,
            tone_selection=tone,
            composed_report=report,
            validation_result=qa.validation_result,
            decision_trace=trace.get_trace(qa.outcome),
            final_outcome=qa.outcome,
            report_delivered=qa.can_deliver,
            llm_evaluation=qa.llm_evaluation,
        )
        return PipelineResult(
            success=qa.can_deliver,
            outcome=qa.outcome,
            audit=audit,
            report=report if qa.can_deliver else None,
            error="; ".join(qa.reasons) if qa.outcome == QAOutcome.BLOCK else None,
            reasons=list(qa.reasons),
        )

    async def run_quick(self, intake: IntakeData) -> QuickResult:
        """Validation through tone selection only; no content is loaded. Never raises."""
        try:
            return self._quick_stages(intake)
        except Exception as e:
            logger.error("quick_run_failed", session_id=intake.session_id, error=str(e), exc_info=True)
            return self._quick_rejected(intake, [str(e) or type(e).__name__])

    def _quick_stages(self, intake: IntakeData) -> QuickResult:
        validation = self._validator.validate(intake)
        if not validation.valid:
            return self._quick_rejected(intake, [e.message for e in validation.errors])
        state = self._drivers.derive(self._tags.extract(intake))
        match = self._scorer.score(state)
        tone = self._tones.select(state)
        return QuickResult(
            session_id=intake.session_id,
            valid=True,
            scenario=match.matched_scenario,
            confidence=match.confidence,
            tone=tone.selected_tone,
            fallback_used=match.fallback_used,
            drivers={d.value: v.value for d, v in state.drivers.items()},
        )

    @staticmethod
    def _quick_rejected(intake: IntakeData, errors: list[str]) -> QuickResult:
        return QuickResult(
            session_id=intake.session_id,
            valid=False,
            scenario=None,
            confidence=None,
            tone=None,
            fallback_used=False,
            drivers={},
            errors=errors,
        )

    def _failed(
        self,
        intake: IntakeData,
        trace: TraceCollector,
        marker: str,
        reason: str,
        errors: list[str],
        warnings: list[str] | None = None,
        error: str | None = None,
    ) -> PipelineResult:
        default_tone = self._tones.default_tone
        audit = AuditRecord(
            session_id=intake.session_id,
            created_at=datetime.now(timezone.utc),
            intake=intake,
            driver_state=None,
            scenario_match=ScenarioMatchResult(
                session_id=intake.session_id,
                matched_scenario=marker,
                confidence=Confidence.FALLBACK,
                score=0.0,
                all_scores=[],
                fallback_used=True,
                fallback_reason=reason,
            ),
            content_selections=[],
            tone_selection=ToneSelectionResult(
                selected_tone=default_tone, reason=f"{reason}, default tone", evaluated_triggers=[]
            ),
            composed_report=None,
            validation_result=ValidationResult(valid=False, errors=errors, warnings=warnings or []),
            decision_trace=trace.get_trace(QAOutcome.BLOCK),
            final_outcome=QAOutcome.BLOCK,
            report_delivered=False,
        )
        return PipelineResult(
            success=False, outcome=QAOutcome.BLOCK, audit=audit, error=error or reason, reasons=[reason]
        )

    async def _persist(self, audit: AuditRecord) -> None:
        if self._audit_store is None:
            return
        try:
            await self._audit_store.save_audit(audit)
        except Exception as e:
            logger.error("audit_persist_failed", session_id=audit.session_id, error=str(e))
