"""Banned-phrase scan over composed report text."""

from __future__ import annotations

import re

from smile_report.models.domain import (
    ComposedReport,
    ReportSection,
    SemanticScanResult,
    SemanticViolation,
    Severity,
)
from smile_report.tone.tone_selector import ToneSelector

GLOBAL_BANNED_PHRASES: tuple[str, ...] = (
    # absolute medical claims
    "guaranteed",
    "100% success",
    "will definitely",
    "always works",
    "never fails",
    "cure",
    "permanent solution",
    # directive language
    "you must do this",
    "the only option",
    "don't bother with",
    "waste of money",
    # liability
    "we promise",
    "we guarantee",
    "no risk",
    "risk-free",
    # competitive claims
    "better than",
    "the best in",
    "superior to",
    "cheaper than",
)

CRITICAL_PHRASES: tuple[str, ...] = ("guaranteed", "100% success", "we guarantee", "no risk", "cure")

_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("guarantee", "100%"), "Medical claims prohibition: No guarantees of outcomes"),
    (("must", "only option"), "Patient autonomy: Avoid directive language"),
    (("cure", "permanent"), "Accuracy: Avoid absolute medical claims"),
    (("better than", "superior"), "Competitive claims prohibition"),
    (("no risk", "risk-free"), "Risk disclosure: All procedures carry some risk"),
)
GENERIC_RULE = "General banned phrase"


def _pattern(phrase: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(phrase.lower())}\b")


class SemanticLeakageDetector:
    def __init__(self, tone_selector: ToneSelector, extra_phrases: list[str] | None = None) -> None:
        self._tones = tone_selector
        self._global = list(GLOBAL_BANNED_PHRASES) + list(extra_phrases or [])
        self._critical = set(CRITICAL_PHRASES)

    def banned_phrases(self, tone: str) -> list[str]:
        return list(dict.fromkeys([*self._global, *self._tones.get_banned_phrases(tone)]))

    def scan(self, sections: list[ReportSection], tone: str) -> SemanticScanResult:
        phrases = self.banned_phrases(tone)
        violations: list[SemanticViolation] = []
        for section in sections:
            violations.extend(self.scan_text(section.content, section.section_number, phrases))

        critical = sum(1 for v in violations if v.severity == Severity.CRITICAL)
        return SemanticScanResult(
            violations=violations,
            has_violations=bool(violations),
            has_critical_violations=critical > 0,
            total=len(violations),
            critical=critical,
            warning=len(violations) - critical,
        )

    def scan_report(self, report: ComposedReport) -> SemanticScanResult:
        return self.scan(report.sections, report.tone)

    def scan_text(self, text: str, section_number: int, phrases: list[str]) -> list[SemanticViolation]:
        lowered = text.lower()
        violations = []
        for phrase in phrases:
            for match in _pattern(phrase).finditer(lowered):
                violations.append(
                    SemanticViolation(
                        phrase=phrase,
                        section=section_number,
                        position=match.start(),
                        severity=self.severity_of(phrase),
                        rule=self.rule_of(phrase),
                    )
                )
        return violations

    def would_violate(self, text: str, tone: str) -> bool:
        lowered = text.lower()
        return any(_pattern(p).search(lowered) for p in self.banned_phrases(tone))

    def add_banned_phrase(self, phrase: str, severity: Severity | None = None) -> None:
        if phrase not in self._global:
            self._global.append(phrase)
        if severity == Severity.CRITICAL:
            self._critical.add(phrase.lower())

    def severity_of(self, phrase: str) -> Severity:
        lowered = phrase.lower()
        if any(key in lowered for key in self._critical):
            return Severity.CRITICAL
        return Severity.WARNING

    @staticmethod
    def rule_of(phrase: str) -> str:
        lowered = phrase.lower()
        for keys, rule in _RULES:
            if any(k in lowered for k in keys):
                return rule
        return GENERIC_RULE
