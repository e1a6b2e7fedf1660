"""Google Gemini LLM provider using the google-genai SDK."""

from __future__ import annotations

import asyncio
import json

from google import genai
from google.genai import types
from pydantic import BaseModel

from archive_rag.exceptions import GenerationError
from archive_rag.observability.logger import get_logger

logger = get_logger("gemini")


class GeminiProvider:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        temperature: float = 0.2,
        max_tokens: int = 4096,
        timeout_s: float = 60.0,
    ) -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout_s = timeout_s

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        config = types.GenerateContentConfig(
            temperature=self._temperature if temperature is None else temperature,
            max_output_tokens=max_tokens or self._max_tokens,
        )
        if system:
            config.system_instruction = system
        response = await self._call(prompt, config)
        return response.text or ""

    async def generate_structured(
        self,
        prompt: str,
        response_schema: type[BaseModel],
        system: str | None = None,
        temperature: float = 0.0,
    ) -> BaseModel:
        config = types.GenerateContentConfig(
            temperature=temperature,
            response_mime_type="application/json",
            response_schema=response_schema,
        )
        if system:
            config.system_instruction = system
        response = await self._call(prompt, config)
        try:
            return response_schema.model_validate(json.loads(response.text or ""))
        except Exception as e:
            raise GenerationError(f"Gemini returned malformed structured output: {e}") from e

    async def _call(self, prompt: str, config: types.GenerateContentConfig):
        try:
            return await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._model,
                    contents=prompt,
                    config=config,
                ),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as e:
            logger.warning("gemini_timeout", timeout_s=self._timeout_s)
            raise GenerationError(f"Gemini call timed out after {self._timeout_s}s") from e
        except Exception as e:
            raise GenerationError(f"Gemini generation failed: {e}") from e
