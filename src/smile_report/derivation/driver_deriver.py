"""Reduce tags to one typed value per driver via priority-ordered rules."""

from __future__ import annotations

from smile_report.config.rules import DriverRule, DriverTable
from smile_report.models.domain import (
    DriverConflict,
    DriverId,
    DriverState,
    DriverValue,
    TagExtractionResult,
)
from smile_report.observability.logger import get_logger

logger = get_logger("driver_deriver")

FALLBACK_CONFIDENCE = 0.5


def derived_confidence(matched_tag_count: int) -> float:
    return round(min(1.0, matched_tag_count * 0.3 + 0.4), 2)


def match_rule(rule: DriverRule, tags: frozenset[str]) -> list[str] | None:
    """Return the tags that satisfied ``rule``, or None when it does not match."""
    if rule.tags is not None:
        return list(rule.tags) if all(t in tags for t in rule.tags) else None
    if rule.tags_all is not None:
        return list(rule.tags_all) if all(t in tags for t in rule.tags_all) else None
    hits = [t for t in rule.tags_any if t in tags]
    return hits or None


class DriverDeriver:
    def __init__(self, driver_rules: DriverTable) -> None:
        self._drivers = driver_rules.drivers

    def derive(self, tag_result: TagExtractionResult) -> DriverState:
        tags = tag_result.tag_set
        drivers: dict[DriverId, DriverValue] = {}
        conflicts: list[DriverConflict] = []
        fallbacks: list[DriverId] = []

        for driver_id in DriverId:
            definition = self._drivers[driver_id]
            matches: list[tuple[DriverRule, list[str]]] = []
            for rule in definition.rules:
                hit = match_rule(rule, tags)
                if hit is not None:
                    matches.append((rule, hit))

            if not matches:
                drivers[driver_id] = DriverValue(
                    driver_id=driver_id,
                    layer=definition.layer,
                    value=definition.fallback.value,
                    source="fallback",
                    source_tags=(),
                    confidence=FALLBACK_CONFIDENCE,
                )
                fallbacks.append(driver_id)
                logger.debug(
                    "driver_fallback",
                    session_id=tag_result.session_id,
                    driver=driver_id.value,
                    value=definition.fallback.value,
                    reason=definition.fallback.reason,
                )
                continue

            # stable sort keeps config order among equal priorities
            matches.sort(key=lambda m: m[0].priority)
            winner, winner_tags = matches[0]

            exclusive = [r for r, _ in matches if not r.additive]
            distinct = list(dict.fromkeys(r.value for r in exclusive))
            if len(exclusive) > 1 and len(distinct) > 1:
                conflict = DriverConflict(
                    driver_id=driver_id,
                    conflicting_values=tuple(distinct),
                    resolved_value=winner.value,
                    resolution_reason=f"Priority-based: rule priority {winner.priority} wins",
                )
                conflicts.append(conflict)
                logger.info(
                    "driver_conflict_resolved",
                    session_id=tag_result.session_id,
                    driver=driver_id.value,
                    values=list(distinct),
                    resolved=winner.value,
                )

            drivers[driver_id] = DriverValue(
                driver_id=driver_id,
                layer=definition.layer,
                value=winner.value,
                source="derived",
                source_tags=tuple(winner_tags),
                confidence=derived_confidence(len(winner_tags)),
            )

        if fallbacks:
            logger.warning(
                "driver_fallbacks_applied",
                session_id=tag_result.session_id,
                drivers=[d.value for d in fallbacks],
            )

        return DriverState(
            session_id=tag_result.session_id,
            drivers=drivers,
            conflicts=tuple(conflicts),
            fallbacks_applied=tuple(fallbacks),
        )

    def layer_of(self, driver_id: DriverId) -> str:
        return self._drivers[driver_id].layer.value

    def is_safety_critical(self, driver_id: DriverId) -> bool:
        return self._drivers[driver_id].safety_critical
