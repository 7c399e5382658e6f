"""Structural checks on a composed report."""

from __future__ import annotations

from collections import Counter

from smile_report.config.rules import CompositionTable, ContentSelectionTable
from smile_report.models.domain import ComposedReport, ContentSelection, ValidationResult

# section -> (min, max) recommended words
WORD_COUNT_LIMITS: dict[int, tuple[int, int]] = {
    0: (0, 200),
    1: (50, 200),
    2: (100, 400),
    3: (100, 500),
    4: (50, 300),
    5: (0, 600),
    6: (0, 400),
    7: (0, 300),
    8: (0, 400),
    9: (0, 300),
    10: (50, 300),
    11: (50, 200),
}

# section -> (content id prefix, max active blocks)
CARDINALITY_LIMITS: dict[int, tuple[str, int]] = {
    5: ("B_OPT_", 2),
    6: ("B_COMPARE_", 1),
}


class CompositionValidator:
    def __init__(self, content_rules: ContentSelectionTable, composition_rules: CompositionTable) -> None:
        self._required = sorted(n for n, cfg in content_rules.sections.items() if cfg.required)
        self._treatment_trigger = composition_rules.treatment_block_trigger
        self._treatment_sections = list(composition_rules.treatment_sections)

    @property
    def required_sections(self) -> list[int]:
        return list(self._required)

    def is_required(self, section_number: int) -> bool:
        return section_number in self._required

    def validate(self, report: ComposedReport, selections: list[ContentSelection]) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []
        present = {s.section_number for s in report.sections}
        suppressed = set(report.suppressed_sections)

        for number in self._required:
            if number in present:
                continue
            if number in suppressed:
                warnings.append(f"Required section {number} was suppressed")
            else:
                errors.append(f"Required section {number} is missing")

        warnings.extend(self._check_cardinality(selections))

        for section in report.sections:
            limits = WORD_COUNT_LIMITS.get(section.section_number)
            if limits is None:
                continue
            low, high = limits
            if section.word_count < low:
                warnings.append(
                    f"Section {section.section_number} has {section.word_count} words, minimum recommended is {low}"
                )
            if section.word_count > high:
                warnings.append(
                    f"Section {section.section_number} has {section.word_count} words, maximum recommended is {high}"
                )

        errors.extend(self._check_l1_consistency(report, selections))

        if report.placeholders_unresolved:
            warnings.append(f"Unresolved placeholders: {', '.join(report.placeholders_unresolved)}")

        for section in report.sections:
            if not section.content.strip():
                errors.append(f"Section {section.section_number} has empty content")

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    @staticmethod
    def _check_cardinality(selections: list[ContentSelection]) -> list[str]:
        warnings = []
        active = [s for s in selections if not s.suppressed]
        for number, (prefix, limit) in CARDINALITY_LIMITS.items():
            count = sum(1 for s in active if s.target_section == number and s.content_id.startswith(prefix))
            if count > limit:
                warnings.append(f"Section {number} has {count} {prefix}* blocks, recommended max is {limit}")

        counts = Counter(s.content_id for s in active)
        for content_id, count in counts.items():
            # modules legitimately target several sections
            if count > 1 and not content_id.startswith("TM_"):
                warnings.append(f"Content block {content_id} appears {count} times")
        return warnings

    def _check_l1_consistency(self, report: ComposedReport, selections: list[ContentSelection]) -> list[str]:
        errors = []
        present = {s.section_number for s in report.sections}
        blocker = any(s.content_id == self._treatment_trigger and not s.suppressed for s in selections)
        if blocker:
            for number in self._treatment_sections:
                if number in present:
                    errors.append(f"Section {number} should be suppressed when {self._treatment_trigger} is active")
        for section in report.sections:
            if section.section_number in report.suppressed_sections:
                errors.append(f"Section {section.section_number} is marked as suppressed but has content")
        return errors
