"""Driver-driven content selection with L1 suppression."""

from __future__ import annotations

from collections.abc import Iterable

from smile_report.config.rules import ContentSelectionTable, SectionConfig
from smile_report.models.domain import (
    ContentSelection,
    ContentType,
    DriverId,
    DriverState,
    ScenarioMatchResult,
)
from smile_report.observability.logger import get_logger

logger = get_logger("content_selector")

L1_OVERRIDE = "L1 override"
SECTION_SUPPRESSED = "Section suppressed by L1"
BLOCK_SUPPRESSED = "Block suppressed by L1"


def matches_pattern(content_id: str, patterns: Iterable[str]) -> bool:
    """Exact id match, or prefix match for patterns ending in ``*``."""
    for pattern in patterns:
        if pattern.endswith("*"):
            if content_id.startswith(pattern[:-1]):
                return True
        elif content_id == pattern:
            return True
    return False


class ContentSelector:
    def __init__(self, content_rules: ContentSelectionTable) -> None:
        self._rules = content_rules

    def select(
        self,
        state: DriverState,
        scenario_match: ScenarioMatchResult,
        tone: str,
        tags: Iterable[str] = (),
    ) -> list[ContentSelection]:
        tag_set = frozenset(tags)
        suppressed_sections, suppressed_patterns = self.suppression_sets(state)

        selections: list[ContentSelection] = []
        selections.extend(self._select_a_blocks(state, tone, suppressed_patterns))
        selections.append(
            ContentSelection(
                content_id=scenario_match.matched_scenario,
                type=ContentType.SCENARIO,
                target_section=self._rules.scenario_selection.section,
                tone=tone,
                priority=self._rules.scenario_selection.priority,
            )
        )
        selections.extend(self._select_b_blocks(state, tone, suppressed_sections, suppressed_patterns))
        selections.extend(self._select_modules(state, tone, tag_set, suppressed_sections))
        for static in self._rules.static:
            selections.append(
                ContentSelection(
                    content_id=static.content_id,
                    type=ContentType.STATIC,
                    target_section=static.section,
                    tone=static.tone or tone,
                    priority=static.priority,
                )
            )

        suppressed = [s.content_id for s in selections if s.suppressed]
        logger.info(
            "content_selected",
            session_id=state.session_id,
            selected=len(selections),
            suppressed=suppressed,
            suppressed_sections=sorted(suppressed_sections),
        )
        return selections

    def suppression_sets(self, state: DriverState) -> tuple[set[int], list[str]]:
        sections: set[int] = set()
        patterns: list[str] = []
        for key, rule in self._rules.suppression_rules.items():
            driver, _, value = key.partition(":")
            if state.value(DriverId(driver)) == value:
                sections.update(rule.blocked_sections)
                patterns.extend(rule.blocked_blocks)
        return sections, patterns

    def _select_a_blocks(self, state: DriverState, tone: str, patterns: list[str]) -> list[ContentSelection]:
        selections = []
        for block_id, trigger in self._rules.a_blocks.items():
            if state.value(trigger.driver) not in trigger.values:
                continue
            suppressed = matches_pattern(block_id, patterns)
            selections.append(
                ContentSelection(
                    content_id=block_id,
                    type=ContentType.A_BLOCK,
                    target_section=self._rules.warnings_section,
                    tone=tone,
                    priority=trigger.priority,
                    suppressed=suppressed,
                    suppression_reason=L1_OVERRIDE if suppressed else None,
                )
            )
        return selections

    def _select_b_blocks(
        self, state: DriverState, tone: str, sections: set[int], patterns: list[str]
    ) -> list[ContentSelection]:
        selections = []
        for block_id, trigger in self._rules.b_blocks.items():
            if state.value(trigger.driver) not in trigger.values:
                continue
            section_hit = trigger.section in sections
            block_hit = matches_pattern(block_id, patterns)
            reason = None
            if section_hit:
                reason = SECTION_SUPPRESSED
            elif block_hit:
                reason = BLOCK_SUPPRESSED
            selections.append(
                ContentSelection(
                    content_id=block_id,
                    type=ContentType.B_BLOCK,
                    target_section=trigger.section,
                    tone=tone,
                    priority=1,
                    suppressed=reason is not None,
                    suppression_reason=reason,
                )
            )
        return selections

    def _select_modules(
        self, state: DriverState, tone: str, tags: frozenset[str], sections: set[int]
    ) -> list[ContentSelection]:
        selections = []
        for module_id, trigger in self._rules.modules.items():
            by_driver = trigger.driver is not None and state.value(trigger.driver) in trigger.values
            by_tag = trigger.tag is not None and trigger.tag in tags
            if not (by_driver or by_tag):
                continue
            for section in trigger.sections:
                suppressed = section in sections
                selections.append(
                    ContentSelection(
                        content_id=module_id,
                        type=ContentType.MODULE,
                        target_section=section,
                        tone=tone,
                        priority=trigger.priority,
                        suppressed=suppressed,
                        suppression_reason=SECTION_SUPPRESSED if suppressed else None,
                    )
                )
        return selections

    def get_section_config(self, section_number: int) -> SectionConfig | None:
        return self._rules.sections.get(section_number)

    def get_all_sections(self) -> list[int]:
        return sorted(self._rules.sections)

    def is_section_required(self, section_number: int) -> bool:
        config = self._rules.sections.get(section_number)
        return bool(config and config.required)

    def is_section_suppressible(self, section_number: int) -> bool:
        config = self._rules.sections.get(section_number)
        return bool(config and config.suppressible)
