"""Assemble selected content into the numbered report sections."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field

from smile_report.composition.placeholder_resolver import PlaceholderContext, PlaceholderResolver
from smile_report.config.rules import CompositionTable, ContentSelectionTable, SectionComposition
from smile_report.content.markdown import parse_scenario_sections
from smile_report.models.domain import (
    ComposedReport,
    Confidence,
    ContentSelection,
    ContentType,
    DriverId,
    DriverState,
    IntakeData,
    ReportSection,
    ScenarioMatchResult,
)
from smile_report.observability.logger import get_logger
from smile_report.protocols.content_store import ContentStore
from smile_report.tone.tone_selector import ToneSelector

logger = get_logger("report_composer")

DISCLAIMER_TEXT = """This report is generated from your answers to our questionnaire and is intended for informational purposes only. It does not constitute medical advice, a diagnosis, or a treatment plan.

Please consult a qualified dental professional before making any decisions about your dental care. Your dentist will carry out a thorough examination and discuss options based on your specific situation.

The information presented here is general in nature and may not apply to your individual circumstances. Treatment outcomes vary between patients and depend on many factors that can only be assessed through clinical examination."""

NEXT_STEPS_TEXT = """**Your next steps are entirely up to you.** Here are some options to consider:

- Review this report at your own pace
- Prepare questions for your dental consultation
- Schedule an appointment when you feel ready
- Request additional information on specific topics

Take the time you need to make decisions that feel right for you.

## How to Prepare for Your Consultation

Consider noting down:
- Your main concerns and priorities
- Questions about specific treatment options
- Your timeline preferences
- Budget considerations you'd like to discuss

The choice of how to proceed is yours. Your dentist is there to provide information and guidance, and you remain in control of your dental care decisions."""

BUILTIN_STATIC: dict[str, str] = {
    "STATIC_DISCLAIMER": DISCLAIMER_TEXT,
    "STATIC_NEXT_STEPS": NEXT_STEPS_TEXT,
}

_CALCULATED_BY_SITUATION: dict[str, dict[str, str]] = {
    "single_missing_tooth": {"TREATMENT_COMPLEXITY": "straightforward", "ESTIMATED_VISITS": "3-5 appointments"},
    "multiple_adjacent": {"TREATMENT_COMPLEXITY": "moderate", "ESTIMATED_VISITS": "5-8 appointments"},
    "multiple_dispersed": {"TREATMENT_COMPLEXITY": "moderate", "ESTIMATED_VISITS": "5-8 appointments"},
    "extensive_missing": {
        "TREATMENT_COMPLEXITY": "comprehensive",
        "ESTIMATED_VISITS": "multiple appointments over several months",
    },
    "full_mouth_compromised": {
        "TREATMENT_COMPLEXITY": "comprehensive",
        "ESTIMATED_VISITS": "multiple appointments over several months",
    },
}

_NON_WORD = re.compile(r"[^\w\s]")


def count_words(text: str) -> int:
    return len(_NON_WORD.sub("", text).split())


def build_calculated_values(state: DriverState) -> dict[str, str]:
    return dict(_CALCULATED_BY_SITUATION.get(state.value(DriverId.MOUTH_SITUATION) or "", {}))


@dataclass
class _SectionDraft:
    parts: list[str] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    resolved: int = 0
    unresolved: list[str] = field(default_factory=list)


class ReportComposer:
    def __init__(
        self,
        composition_rules: CompositionTable,
        content_rules: ContentSelectionTable,
        tone_selector: ToneSelector,
        content_store: ContentStore,
        resolver: PlaceholderResolver | None = None,
        content_timeout_s: float = 2.0,
    ) -> None:
        self._rules = composition_rules
        self._sections = content_rules.sections
        self._warnings_section = content_rules.warnings_section
        self._scenario_priority = content_rules.scenario_selection.priority
        self._tones = tone_selector
        self._store = content_store
        self._resolver = resolver or PlaceholderResolver()
        self._timeout_s = content_timeout_s

    def parse_scenario(self, scenario_content: str | None) -> dict[str, str]:
        if not scenario_content:
            return {}
        return parse_scenario_sections(scenario_content, self._rules.scenario_headers)

    async def compose(
        self,
        intake: IntakeData,
        state: DriverState,
        scenario_match: ScenarioMatchResult,
        selections: list[ContentSelection],
        tone: str,
        scenario_content: str | None = None,
    ) -> ComposedReport:
        treatment_blocked = any(
            s.content_id == self._rules.treatment_block_trigger and not s.suppressed for s in selections
        )
        blocked = set(self._rules.treatment_sections) if treatment_blocked else set()
        scenario_sections = self.parse_scenario(scenario_content)
        by_section = self._group_by_section(selections)
        context = PlaceholderContext(intake=intake, calculated=build_calculated_values(state))

        sections: list[ReportSection] = []
        suppressed_sections: list[int] = []
        resolved_total = 0
        unresolved: list[str] = []
        warnings_included = False

        for number in sorted(self._sections):
            if number in blocked:
                suppressed_sections.append(number)
                continue

            section_selections = by_section.get(number, [])
            if section_selections and all(s.suppressed for s in section_selections):
                suppressed_sections.append(number)
                continue

            rule = self._rules.sections.get(number) or SectionComposition(order=[])
            section_tone = rule.tone_override or self._tones.get_tone_for_section(number, tone)
            tone_override = section_tone if section_tone != tone else None
            active = [s for s in section_selections if not s.suppressed]

            draft = await self._compose_section(
                number, active, rule, tone_override, intake.language, context,
                scenario_match.confidence, scenario_sections,
            )
            if not draft.sources:
                expected = bool(active) or any(k in scenario_sections for k in rule.scenario_sections)
                if expected:
                    logger.warning("section_content_missing", session_id=intake.session_id, section=number)
                    suppressed_sections.append(number)
                continue

            content = "\n\n".join(draft.parts)
            if number == self._warnings_section:
                warnings_included = True
            words = count_words(content)
            sections.append(
                ReportSection(
                    section_number=number,
                    section_name=self._sections[number].name,
                    content=content,
                    sources=draft.sources,
                    word_count=words,
                )
            )
            resolved_total += draft.resolved
            unresolved.extend(draft.unresolved)

        report = ComposedReport(
            session_id=intake.session_id,
            scenario_id=scenario_match.matched_scenario,
            tone=tone,
            language=intake.language,
            confidence=scenario_match.confidence,
            sections=sections,
            total_word_count=sum(s.word_count for s in sections),
            warnings_included=warnings_included,
            suppressed_sections=suppressed_sections,
            placeholders_resolved=resolved_total,
            placeholders_unresolved=list(dict.fromkeys(unresolved)),
        )
        logger.info(
            "report_composed",
            session_id=intake.session_id,
            sections=[s.section_number for s in sections],
            suppressed_sections=suppressed_sections,
            word_count=report.total_word_count,
            unresolved=report.placeholders_unresolved,
        )
        return report

    async def _compose_section(
        self,
        number: int,
        selections: list[ContentSelection],
        rule: SectionComposition,
        tone_override: str | None,
        language: str,
        context: PlaceholderContext,
        confidence: Confidence,
        scenario_sections: dict[str, str],
    ) -> _SectionDraft:
        draft = _SectionDraft()
        scenario_key = next((k for k in rule.scenario_sections if k in scenario_sections), None)
        by_type: dict[ContentType, list[ContentSelection]] = {}
        for selection in selections:
            by_type.setdefault(selection.type, []).append(selection)

        for source, items in self._ordered_sources(rule, by_type):
            if source == ContentType.SCENARIO:
                if scenario_key is not None:
                    self._add(draft, scenario_sections[scenario_key], f"SCENARIO:{scenario_key}", context)
                continue
            # scenario text takes precedence over explanatory blocks
            if source == ContentType.B_BLOCK and scenario_key is not None:
                continue

            limit = rule.max_cardinality.get(source)
            if limit is not None:
                items = items[:limit]
            for selection in items:
                text = await self.fetch_content(selection.content_id, tone_override or selection.tone, language)
                if text is None and source == ContentType.STATIC:
                    text = BUILTIN_STATIC.get(selection.content_id)
                if text:
                    self._add(draft, text, selection.content_id, context)

        if draft.sources and number in self._rules.uncertainty_sections and confidence != Confidence.HIGH:
            phrases = self._rules.uncertainty_language.get(confidence, [])
            if phrases:
                draft.parts.insert(0, phrases[0])
        return draft

    def _ordered_sources(
        self, rule: SectionComposition, by_type: dict[ContentType, list[ContentSelection]]
    ) -> list[tuple[ContentType, list[ContentSelection]]]:
        """Expand the section's source order into concrete steps.

        Where a section carries both modules and scenario text, modules with a
        priority below the scenario's are placed before it and the rest after.
        """
        modules = by_type.get(ContentType.MODULE, [])
        split = ContentType.MODULE in rule.order and ContentType.SCENARIO in rule.order
        steps: list[tuple[ContentType, list[ContentSelection]]] = []
        for source in rule.order:
            if split and source == ContentType.MODULE:
                continue
            if split and source == ContentType.SCENARIO:
                steps.append((ContentType.MODULE, [m for m in modules if m.priority < self._scenario_priority]))
                steps.append((ContentType.SCENARIO, []))
                steps.append((ContentType.MODULE, [m for m in modules if m.priority >= self._scenario_priority]))
                continue
            steps.append((source, by_type.get(source, [])))
        return steps

    def _add(self, draft: _SectionDraft, text: str, source: str, context: PlaceholderContext) -> None:
        result = self._resolver.resolve(text, context)
        draft.parts.append(result.content)
        draft.sources.append(source)
        draft.resolved += len(result.resolved)
        draft.unresolved.extend(result.unresolved)

    async def fetch_content(self, content_id: str, tone: str, language: str) -> str | None:
        """Bounded store lookup; a timeout or store error reads as missing content."""
        try:
            return await asyncio.wait_for(
                self._store.get_content(content_id, tone, language), timeout=self._timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning("content_fetch_timeout", content_id=content_id, tone=tone)
        except Exception as e:
            logger.warning(
                "content_fetch_failed", content_id=content_id, tone=tone, error=str(e), error_type=type(e).__name__
            )
        return None

    @staticmethod
    def _group_by_section(selections: list[ContentSelection]) -> dict[int, list[ContentSelection]]:
        grouped: dict[int, list[ContentSelection]] = {}
        for selection in selections:
            grouped.setdefault(selection.target_section, []).append(selection)
        for items in grouped.values():
            items.sort(key=lambda s: s.priority)
        return grouped

