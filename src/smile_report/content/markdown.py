"""Markdown helpers for the content library."""

from __future__ import annotations

import re

_FRONTMATTER = re.compile(r"^---\s*\n.*?\n---\s*\n", re.DOTALL)
_HEADER = re.compile(r"^(#{1,3})\s*(?:Section\s*\d+[:.])?\s*(.+?)(?:\s*\*\[\d+\s*words\]\*)?$", re.MULTILINE)
_WORD_MARKER = re.compile(r"\*\[\d+\s*words\]\*")


def strip_frontmatter(text: str) -> str:
    return _FRONTMATTER.sub("", text, count=1).strip()


def parse_scenario_sections(text: str, header_keys: list[tuple[str, str]]) -> dict[str, str]:
    """Split scenario markdown into named sub-sections.

    Each header is lowercased and matched by substring against ``header_keys``
    in order; the first hit names the section. Repeated keys are concatenated.
    Headers with no mapping and empty bodies are dropped.
    """
    body = strip_frontmatter(text)
    headers = list(_HEADER.finditer(body))
    sections: dict[str, str] = {}

    for i, match in enumerate(headers):
        header = match.group(2).strip().lower()
        key = next((k for pattern, k in header_keys if pattern in header), None)
        if key is None:
            continue
        end = headers[i + 1].start() if i + 1 < len(headers) else len(body)
        content = _WORD_MARKER.sub("", body[match.end():end]).strip()
        if not content:
            continue
        sections[key] = f"{sections[key]}\n\n{content}" if key in sections else content

    return sections
