"""Protocol for content text providers."""

from __future__ import annotations

from typing import Protocol


class ContentStore(Protocol):
    async def get_content(self, content_id: str, tone: str, language: str = "en") -> str | None: ...
