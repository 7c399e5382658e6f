"""Protocol for LLM providers."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel


class LLMProvider(Protocol):
    @property
    def model_name(self) -> str: ...

    async def generate_structured(
        self,
        prompt: str,
        response_schema: type[BaseModel],
        system: str | None = None,
        temperature: float = 0.0,
    ) -> BaseModel: ...
