"""First-match tone selection over the configured tone priority order."""

from __future__ import annotations

import re

from smile_report.config.rules import ToneTable
from smile_report.models.domain import DriverState, EvaluatedTrigger, ToneSelectionResult
from smile_report.observability.logger import get_logger

logger = get_logger("tone_selector")


class ToneSelector:
    def __init__(self, tone_rules: ToneTable) -> None:
        self._rules = tone_rules
        self._tones = tone_rules.tones

    @property
    def default_tone(self) -> str:
        return self._rules.default_tone

    def select(self, state: DriverState) -> ToneSelectionResult:
        evaluated: list[EvaluatedTrigger] = []

        for tone_id in self._rules.priority_order:
            if tone_id == self._rules.default_tone:
                continue
            triggers = self._tones[tone_id].triggers
            if not triggers:
                evaluated.append(EvaluatedTrigger(tone=tone_id, matched=False))
                continue

            for driver_id, accepted in triggers.items():
                if state.value(driver_id) in accepted:
                    evaluated.append(EvaluatedTrigger(tone=tone_id, matched=True, trigger_driver=driver_id.value))
                    reason = f"Triggered by {driver_id.value}={state.value(driver_id)}"
                    logger.info("tone_selected", session_id=state.session_id, tone=tone_id, reason=reason)
                    return ToneSelectionResult(selected_tone=tone_id, reason=reason, evaluated_triggers=evaluated)
            evaluated.append(EvaluatedTrigger(tone=tone_id, matched=False))

        logger.info("tone_selected", session_id=state.session_id, tone=self._rules.default_tone, reason="default")
        return ToneSelectionResult(
            selected_tone=self._rules.default_tone,
            reason="No tone triggers matched, using default tone",
            evaluated_triggers=evaluated,
        )

    def get_tone_for_section(self, section_number: int, selected_tone: str) -> str:
        return self._rules.section_overrides.get(section_number, selected_tone)

    def get_fallback_chain(self, tone_id: str) -> list[str]:
        tone = self._tones.get(tone_id)
        return list(tone.fallback_chain) if tone else []

    def get_banned_phrases(self, tone_id: str) -> list[str]:
        tone = self._tones.get(tone_id)
        return list(tone.banned_lexical_set) if tone else []

    def is_phrase_banned(self, text: str, tone_id: str) -> bool:
        lowered = text.lower()
        return any(
            re.search(rf"\b{re.escape(phrase.lower())}\b", lowered)
            for phrase in self.get_banned_phrases(tone_id)
        )

    def get_tone_name(self, tone_id: str) -> str:
        tone = self._tones.get(tone_id)
        return tone.name if tone else tone_id
