"""Resolve {{UPPER_SNAKE_CASE}} tokens in content text."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from smile_report.models.domain import IntakeData

PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Z_]+)\}\}")

DEFAULT_FALLBACKS: dict[str, str] = {
    "PATIENT_NAME": "you",
    "TOOTH_LOCATION": "the affected area",
    "TOOTH_POSITION": "the missing tooth",
    "TREATMENT_DURATION": "the treatment period",
    "ESTIMATED_VISITS": "multiple appointments",
    "AGE_BRACKET": "your age group",
    "CLINIC_NAME": "your dental clinic",
    "DENTIST_NAME": "your dental professional",
}

# placeholder name -> intake metadata key; anything else is looked up lowercased
METADATA_KEYS: dict[str, str] = {
    "PATIENT_NAME": "patient_name",
    "TOOTH_LOCATION": "tooth_location",
    "TOOTH_POSITION": "tooth_position",
}


@dataclass
class PlaceholderContext:
    intake: IntakeData
    calculated: dict[str, str | int | float] = field(default_factory=dict)
    custom: dict[str, str] = field(default_factory=dict)


@dataclass
class ResolvedPlaceholder:
    key: str
    value: str
    source: str  # "intake", "calculated", "custom", "fallback"


@dataclass
class PlaceholderResolution:
    content: str
    resolved: list[ResolvedPlaceholder]
    unresolved: list[str]


def _present(value: object) -> bool:
    return value is not None and str(value) != ""


class PlaceholderResolver:
    def __init__(self, fallbacks: dict[str, str] | None = None) -> None:
        self._fallbacks = {**DEFAULT_FALLBACKS, **(fallbacks or {})}

    def resolve(
        self,
        content: str,
        context: PlaceholderContext,
        definitions: dict[str, str] | None = None,
    ) -> PlaceholderResolution:
        """Substitute every token; unresolved tokens are left verbatim.

        ``definitions`` maps a placeholder name to its own fallback text and
        is consulted before the default fallback table.
        """
        resolved: list[ResolvedPlaceholder] = []
        unresolved: list[str] = []
        definitions = definitions or {}

        def substitute(match: re.Match) -> str:
            key = match.group(1)
            hit = self._resolve_key(key, context, definitions.get(key))
            if hit is None:
                unresolved.append(key)
                return match.group(0)
            resolved.append(hit)
            return hit.value

        text = PLACEHOLDER_PATTERN.sub(substitute, content)
        return PlaceholderResolution(content=text, resolved=resolved, unresolved=unresolved)

    def _resolve_key(self, key: str, context: PlaceholderContext, definition: str | None) -> ResolvedPlaceholder | None:
        metadata_key = METADATA_KEYS.get(key, key.lower())
        value = context.intake.metadata.get(metadata_key)
        if _present(value):
            return ResolvedPlaceholder(key, str(value), "intake")
        if _present(context.calculated.get(key)):
            return ResolvedPlaceholder(key, str(context.calculated[key]), "calculated")
        if _present(context.custom.get(key)):
            return ResolvedPlaceholder(key, str(context.custom[key]), "custom")
        if _present(definition):
            return ResolvedPlaceholder(key, str(definition), "fallback")
        if _present(self._fallbacks.get(key)):
            return ResolvedPlaceholder(key, self._fallbacks[key], "fallback")
        return None

    @staticmethod
    def extract_placeholders(content: str) -> list[str]:
        return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(content)))

    def validate_placeholders(
        self, content: str, context: PlaceholderContext, definitions: dict[str, str] | None = None
    ) -> list[str]:
        """Return the placeholders in ``content`` that no source can resolve."""
        definitions = definitions or {}
        return [
            key
            for key in self.extract_placeholders(content)
            if self._resolve_key(key, context, definitions.get(key)) is None
        ]

    def set_default_fallback(self, key: str, value: str) -> None:
        self._fallbacks[key] = value

    def get_default_fallbacks(self) -> dict[str, str]:
        return dict(self._fallbacks)
