"""Fallback cascade when no scenario clears the LOW threshold."""

from __future__ import annotations

from typing import TYPE_CHECKING

from smile_report.config.rules import ScenarioProfile, ScenarioTable
from smile_report.models.domain import (
    Confidence,
    DriverId,
    DriverState,
    ScenarioMatchResult,
    ScenarioScore,
)
from smile_report.observability.logger import get_logger

if TYPE_CHECKING:
    from smile_report.scoring.scenario_scorer import ScenarioScorer

logger = get_logger("scenario_fallback")

ARCHETYPE_SCORE = 1.0
GENERIC_REASON = "No scenario matched, using generic fallback"


def strip_drivers(profile: ScenarioProfile, drivers: frozenset[DriverId]) -> ScenarioProfile:
    """Return a copy of ``profile`` with every criterion on ``drivers`` removed."""

    def keep(criteria: dict[DriverId, list[str]]) -> dict[DriverId, list[str]]:
        return {d: v for d, v in criteria.items() if d not in drivers}

    return profile.model_copy(
        update={
            "required_drivers": keep(profile.required_drivers),
            "strong_drivers": keep(profile.strong_drivers),
            "supporting_drivers": keep(profile.supporting_drivers),
            "excluding_drivers": keep(profile.excluding_drivers),
        }
    )


class ScenarioFallbackCascade:
    """Relaxed matching, then archetype by mouth situation, then the generic scenario."""

    def __init__(self, scorer: ScenarioScorer, scenario_rules: ScenarioTable, l3_drivers: frozenset[DriverId]) -> None:
        self._scorer = scorer
        self._rules = scenario_rules
        self._l3 = l3_drivers

    def run(self, state: DriverState, ranked: list[ScenarioScore]) -> ScenarioMatchResult:
        thresholds = self._rules.confidence_thresholds

        # Step 1: relaxed matching without narrative drivers
        if self._l3:
            relaxed = self.relaxed_scores(state)
            best = next((s for s in relaxed if not s.excluded), None)
            if best is not None and best.score >= thresholds.LOW:
                logger.info(
                    "relaxed_match",
                    session_id=state.session_id,
                    scenario=best.scenario_id,
                    score=best.score,
                )
                return ScenarioMatchResult(
                    session_id=state.session_id,
                    matched_scenario=best.scenario_id,
                    confidence=Confidence.MEDIUM,
                    score=best.score,
                    all_scores=relaxed,
                    fallback_used=True,
                    fallback_reason="Relaxed matching (L3 drivers ignored)",
                )

        # Step 2: archetype by mouth situation
        situation = state.value(DriverId.MOUTH_SITUATION)
        archetype = self._rules.archetype_map.get(situation or "")
        if archetype is not None and ARCHETYPE_SCORE >= thresholds.FALLBACK:
            logger.info(
                "archetype_match",
                session_id=state.session_id,
                scenario=archetype,
                mouth_situation=situation,
            )
            return ScenarioMatchResult(
                session_id=state.session_id,
                matched_scenario=archetype,
                confidence=Confidence.LOW,
                score=ARCHETYPE_SCORE,
                all_scores=ranked,
                fallback_used=True,
                fallback_reason=f"Archetype match on mouth_situation={situation}",
            )

        # Step 3: generic
        logger.warning("generic_fallback", session_id=state.session_id, scenario=self._rules.generic_fallback)
        return ScenarioMatchResult(
            session_id=state.session_id,
            matched_scenario=self._rules.generic_fallback,
            confidence=Confidence.FALLBACK,
            score=0.0,
            all_scores=ranked,
            fallback_used=True,
            fallback_reason=GENERIC_REASON,
        )

    def relaxed_scores(self, state: DriverState) -> list[ScenarioScore]:
        relaxed = {sid: strip_drivers(p, self._l3) for sid, p in self._rules.scenarios.items()}
        return self._scorer.rank(self._scorer.score_all(state, relaxed))
