"""Score scenario profiles against a driver state and pick the best match."""

from __future__ import annotations

import math
from collections.abc import Iterable

from smile_report.config.rules import ScenarioProfile, ScenarioTable
from smile_report.models.domain import (
    Confidence,
    DriverId,
    DriverState,
    ScenarioMatchResult,
    ScenarioScore,
    ScoreBreakdown,
)
from smile_report.observability.logger import get_logger
from smile_report.scoring.fallback import ScenarioFallbackCascade

logger = get_logger("scenario_scorer")

SAFETY_SCORE = 100.0
EXCLUDED = -math.inf


class ScenarioScorer:
    def __init__(self, scenario_rules: ScenarioTable, l3_drivers: Iterable[DriverId] = ()) -> None:
        self._rules = scenario_rules
        self._order = {sid: i for i, sid in enumerate(scenario_rules.priority_order)}
        self._cascade = ScenarioFallbackCascade(self, scenario_rules, frozenset(l3_drivers))

    @property
    def thresholds(self):
        return self._rules.confidence_thresholds

    def score(self, state: DriverState) -> ScenarioMatchResult:
        safety = self._check_safety_override(state)
        if safety is not None:
            logger.info(
                "safety_override",
                session_id=state.session_id,
                scenario=safety,
                clinical_priority=state.value(DriverId.CLINICAL_PRIORITY),
                medical_constraints=state.value(DriverId.MEDICAL_CONSTRAINTS),
            )
            return ScenarioMatchResult(
                session_id=state.session_id,
                matched_scenario=safety,
                confidence=Confidence.HIGH,
                score=SAFETY_SCORE,
                all_scores=[],
                fallback_used=False,
            )

        ranked = self.rank(self.score_all(state, self._rules.scenarios))
        best = next((s for s in ranked if not s.excluded), None)

        if best is not None and best.score >= self.thresholds.LOW:
            confidence = self.thresholds.band(best.score)
            logger.info(
                "scenario_matched",
                session_id=state.session_id,
                scenario=best.scenario_id,
                score=best.score,
                confidence=confidence.value,
            )
            return ScenarioMatchResult(
                session_id=state.session_id,
                matched_scenario=best.scenario_id,
                confidence=confidence,
                score=best.score,
                all_scores=ranked,
                fallback_used=False,
            )

        logger.warning(
            "scenario_below_threshold",
            session_id=state.session_id,
            best=best.scenario_id if best else None,
            score=best.score if best else None,
        )
        return self._cascade.run(state, ranked)

    def score_all(
        self, state: DriverState, scenarios: dict[str, ScenarioProfile]
    ) -> list[ScenarioScore]:
        return [
            self.score_scenario(sid, profile, state)
            for sid, profile in scenarios.items()
            if not profile.is_fallback
        ]

    def score_scenario(self, scenario_id: str, profile: ScenarioProfile, state: DriverState) -> ScenarioScore:
        weights = self._rules.scoring
        breakdown: list[ScoreBreakdown] = []
        score = 0.0
        matched_required = matched_strong = matched_supporting = 0
        excluded = False

        for driver_id, accepted in profile.required_drivers.items():
            matched = state.value(driver_id) in accepted
            breakdown.append(ScoreBreakdown(driver_id.value, "required", matched, 0.0 if matched else EXCLUDED))
            if matched:
                matched_required += 1
            else:
                excluded = True

        if not excluded:
            for driver_id, rejected in profile.excluding_drivers.items():
                matched = state.value(driver_id) in rejected
                breakdown.append(ScoreBreakdown(driver_id.value, "excluding", matched, EXCLUDED if matched else 0.0))
                if matched:
                    excluded = True

        if not excluded:
            for driver_id, accepted in profile.strong_drivers.items():
                matched = state.value(driver_id) in accepted
                points = weights.strong_weight if matched else 0.0
                breakdown.append(ScoreBreakdown(driver_id.value, "strong", matched, points))
                if matched:
                    matched_strong += 1
                    score += points
            for driver_id, accepted in profile.supporting_drivers.items():
                matched = state.value(driver_id) in accepted
                points = weights.supporting_weight if matched else 0.0
                breakdown.append(ScoreBreakdown(driver_id.value, "supporting", matched, points))
                if matched:
                    matched_supporting += 1
                    score += points

        return ScenarioScore(
            scenario_id=scenario_id,
            score=EXCLUDED if excluded else score,
            matched_required=matched_required,
            matched_strong=matched_strong,
            matched_supporting=matched_supporting,
            excluded=excluded,
            breakdown=breakdown,
        )

    def rank(self, scores: list[ScenarioScore]) -> list[ScenarioScore]:
        """Sort by score descending; ties broken by configured priority order."""
        last = len(self._order)
        return sorted(scores, key=lambda s: (-s.score, self._order.get(s.scenario_id, last)))

    def get_scenario(self, scenario_id: str) -> ScenarioProfile | None:
        return self._rules.scenarios.get(scenario_id)

    def _check_safety_override(self, state: DriverState) -> str | None:
        if state.value(DriverId.CLINICAL_PRIORITY) == "urgent":
            return self._rules.safety_scenario
        if state.value(DriverId.MEDICAL_CONSTRAINTS) == "surgical_contraindicated":
            return self._rules.safety_scenario
        return None
