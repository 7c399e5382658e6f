"""In-process content store keyed by (content_id, tone, language)."""

from __future__ import annotations

from collections.abc import Callable

from smile_report.content.markdown import strip_frontmatter


class InMemoryContentStore:
    def __init__(
        self,
        fallback_chain: Callable[[str], list[str]] | None = None,
        default_language: str = "en",
    ) -> None:
        self._items: dict[tuple[str, str, str], str] = {}
        self._fallback_chain = fallback_chain or (lambda tone: [])
        self._default_language = default_language

    def put(self, content_id: str, tone: str, text: str, language: str = "en") -> None:
        self._items[(content_id, tone, language)] = strip_frontmatter(text)

    async def get_content(self, content_id: str, tone: str, language: str = "en") -> str | None:
        for lang in dict.fromkeys([language, self._default_language]):
            for t in dict.fromkeys([tone, *self._fallback_chain(tone)]):
                text = self._items.get((content_id, t, lang))
                if text is not None:
                    return text
        return None

    def __len__(self) -> int:
        return len(self._items)
