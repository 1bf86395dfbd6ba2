"""OpenAI backed completion and transcription providers."""

from __future__ import annotations

import logging

from openai import AsyncOpenAI, OpenAIError

from boardflow.config import LLMSettings
from boardflow.errors import BoardflowError, CompletionError, TranscriptionError

from .base import CompletionOptions, CompletionProvider, TranscriptionHints, TranscriptionProvider

LOGGER = logging.getLogger(__name__)


def _build_client(settings: LLMSettings, error_type: type[BoardflowError] = CompletionError) -> AsyncOpenAI:
    if not settings.api_key:
        raise error_type("OPENAI_API_KEY is not configured")
    # Retries are handled by RateLimitedClient.
    return AsyncOpenAI(api_key=settings.api_key, timeout=settings.timeout, max_retries=0)


class OpenAICompletionProvider(CompletionProvider):
    def __init__(self, settings: LLMSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._client = client or _build_client(settings)
        self.model_name = settings.completion_model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        options: CompletionOptions | None = None,
    ) -> str:
        options = options or CompletionOptions()
        try:
            response = await self._client.chat.completions.create(
                model=options.model or self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
        except OpenAIError as error:
            raise CompletionError(f"Completion request failed: {error}", cause=error) from error

        if not response.choices:
            raise CompletionError("Completion response contained no choices")
        content = response.choices[0].message.content
        if not content:
            raise CompletionError("Completion response was empty")
        return content.strip()


class OpenAITranscriptionProvider(TranscriptionProvider):
    def __init__(self, settings: LLMSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._client = client or _build_client(settings, TranscriptionError)
        self.model_name = settings.transcription_model

    async def transcribe(self, audio: bytes, hints: TranscriptionHints | None = None) -> str:
        hints = hints or TranscriptionHints()
        kwargs = {}
        if hints.language:
            kwargs["language"] = hints.language
        if hints.prompt:
            kwargs["prompt"] = hints.prompt
        try:
            result = await self._client.audio.transcriptions.create(
                model=self.model_name,
                file=(hints.filename, audio, hints.mime_type),
                response_format="text",
                **kwargs,
            )
        except OpenAIError as error:
            raise TranscriptionError(f"Transcription request failed: {error}", cause=error) from error

        text = result if isinstance(result, str) else getattr(result, "text", "")
        LOGGER.debug("Transcribed %s bytes into %s chars", len(audio), len(text))
        return text.strip()


__all__ = ["OpenAICompletionProvider", "OpenAITranscriptionProvider"]
