"""Markdown content library on disk: <root>/<language>/<tone>/<CONTENT_ID>.md"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from smile_report.content.markdown import strip_frontmatter
from smile_report.exceptions import ContentStoreError
from smile_report.observability.logger import get_logger

logger = get_logger("file_content_store")


class FileContentStore:
    """Looks up content by tone fallback chain, then by default language.

    Misses and timeouts return None; only a missing library root raises.
    """

    def __init__(
        self,
        root: str | Path,
        fallback_chain: Callable[[str], list[str]] | None = None,
        default_language: str = "en",
        timeout_s: float = 2.0,
    ) -> None:
        self._root = Path(root)
        if not self._root.is_dir():
            raise ContentStoreError(f"Content library not found: {self._root}")
        self._fallback_chain = fallback_chain or (lambda tone: [])
        self._default_language = default_language
        self._timeout_s = timeout_s
        self._cache: dict[tuple[str, str, str], str | None] = {}

    def candidates(self, content_id: str, tone: str, language: str) -> list[Path]:
        languages = list(dict.fromkeys([language, self._default_language]))
        tones = list(dict.fromkeys([tone, *self._fallback_chain(tone)]))
        return [self._root / lang / t / f"{content_id}.md" for lang in languages for t in tones]

    async def get_content(self, content_id: str, tone: str, language: str = "en") -> str | None:
        key = (content_id, tone, language)
        if key in self._cache:
            return self._cache[key]
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self._read_first, content_id, tone, language),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("content_timeout", content_id=content_id, tone=tone, language=language)
            return None

        if text is None:
            logger.debug("content_not_found", content_id=content_id, tone=tone, language=language)
        self._cache[key] = text
        return text

    def _read_first(self, content_id: str, tone: str, language: str) -> str | None:
        for path in self.candidates(content_id, tone, language):
            if path.is_file():
                return strip_frontmatter(path.read_text(encoding="utf-8"))
        return None

    def clear_cache(self) -> None:
        self._cache.clear()
