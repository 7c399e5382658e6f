"""Metric recording helpers for pipeline runs."""

from __future__ import annotations

from smile_report.models.domain import QAGateResult, ScenarioMatchResult
from smile_report.observability.logger import get_logger

logger = get_logger("metrics")


def log_scenario_metrics(session_id: str, match: ScenarioMatchResult) -> None:
    ranked = [s for s in match.all_scores if not s.excluded]
    logger.info(
        "scenario_metrics",
        session_id=session_id,
        scenario=match.matched_scenario,
        confidence=match.confidence.value,
        score=match.score,
        fallback_used=match.fallback_used,
        candidates=len(ranked),
        excluded=len(match.all_scores) - len(ranked),
        top=[(s.scenario_id, s.score) for s in ranked[:3]],
    )


def log_qa_metrics(session_id: str, result: QAGateResult) -> None:
    logger.info(
        "qa_metrics",
        session_id=session_id,
        outcome=result.outcome.value,
        critical_violations=result.semantic_result.critical,
        warning_violations=result.semantic_result.warning,
        validation_errors=len(result.validation_result.errors),
        validation_warnings=len(result.validation_result.warnings),
        llm_score=result.llm_evaluation.overall_score if result.llm_evaluation else None,
    )


def log_latency(session_id: str, stage: str, duration_ms: float) -> None:
    logger.info(
        "latency",
        session_id=session_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
    )
