"""Gemini structured-output provider for the report evaluator (google-genai SDK)."""

from __future__ import annotations

import json
import time

from google import genai
from google.genai import types
from pydantic import BaseModel, ValidationError

from smile_report.exceptions import GenerationError
from smile_report.observability.logger import get_logger

logger = get_logger("gemini")


class GeminiProvider:
    def __init__(self, api_key: str, model: str = "gemini-2.0-flash") -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model

    @property
    def model_name(self) -> str:
        return self._model

    def _config(self, schema: type[BaseModel], system: str | None, temperature: float) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=temperature,
            response_mime_type="application/json",
            response_schema=schema,
            system_instruction=system or None,
        )

    async def generate_structured(
        self,
        prompt: str,
        response_schema: type[BaseModel],
        system: str | None = None,
        temperature: float = 0.0,
    ) -> BaseModel:
        """Return the model's answer validated against ``response_schema``.

        The SDK's pre-parsed object is used when present, otherwise the raw JSON
        text is validated. Every failure surfaces as GenerationError.
        """
        start = time.perf_counter()
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=self._config(response_schema, system, temperature),
            )
        except Exception as e:
            raise GenerationError(f"Gemini request failed: {e}") from e

        parsed = getattr(response, "parsed", None)
        try:
            if isinstance(parsed, response_schema):
                result = parsed
            elif not response.text:
                raise GenerationError("Gemini returned an empty response")
            else:
                result = response_schema.model_validate(json.loads(response.text))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("gemini_invalid_payload", model=self._model, error=str(e))
            raise GenerationError(f"Gemini returned an invalid {response_schema.__name__}: {e}") from e

        logger.debug(
            "gemini_structured_completed",
            model=self._model,
            schema=response_schema.__name__,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return result
