"""
LLM client for the producer assistant.

Thin httpx wrapper over OpenRouter's OpenAI-compatible endpoints:
- streaming chat completions (raw SSE bytes; framing lives in ``stream``)
- the model catalog, filtered to the allowed providers
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

import httpx

from producer.config import ALLOWED_PROVIDERS, settings
from producer.contracts.llm_types import ChatRequestPayload, ModelEntry, ModelsResponse
from producer.errors import TransportError

logger = logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 500


@dataclass(frozen=True)
class ModelOption:
    """A catalog entry: ``name`` is displayed, ``id`` is stored."""

    id: str
    name: str


class LLMClient:
    """
    OpenRouter client.

    The API key and model can change at runtime (settings dialog / CLI), so
    auth headers are built per request rather than baked into the pool.
    """

    def __init__(
        self,
        api_key: str = "",
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key
        self.model = model or settings.default_model
        self.timeout = timeout or settings.llm_timeout
        self._client: Optional[httpx.AsyncClient] = None

    def configure(self, api_key: str, model: str) -> None:
        self.api_key = api_key
        self.model = model

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": settings.http_referer,
            "X-Title": settings.app_title,
        }

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def open_stream(self, payload: ChatRequestPayload) -> AsyncIterator[AsyncIterator[bytes]]:
        """POST a streaming completion and yield the response byte iterator.

        Raises ``TransportError`` for non-2xx statuses; httpx errors
        (connect failures, timeouts) propagate unchanged.  The response is
        closed when the block exits, including on cancellation.
        """
        logger.info(
            f"🚀 Streaming request: model={payload['model']}, "
            f"messages={len(payload['messages'])}, tools={len(payload['tools'])}"
        )
        async with self.client.stream("POST", settings.completions_url, json=payload, headers=self.headers) as response:
            if response.status_code < 200 or response.status_code >= 300:
                error_text = await response.aread()
                body = error_text.decode("utf-8", errors="replace")[:_ERROR_BODY_LIMIT]
                logger.error(f"❌ Stream error {response.status_code}: {body}")
                raise TransportError(response.status_code, body)
            yield response.aiter_bytes()

    async def list_models(self) -> list[ModelOption]:
        """Fetch the catalog and keep entries from ``ALLOWED_PROVIDERS``."""
        try:
            response = await self.client.get(settings.models_url, headers=self.headers)
        except httpx.HTTPError as e:
            logger.error(f"❌ Model catalog request failed: {e}")
            raise TransportError(0, str(e)) from e
        if response.status_code < 200 or response.status_code >= 300:
            body = response.text[:_ERROR_BODY_LIMIT]
            logger.error(f"❌ Model catalog error {response.status_code}: {body}")
            raise TransportError(response.status_code, body)

        try:
            data: ModelsResponse = response.json()
        except ValueError as e:
            raise TransportError(response.status_code, f"Invalid catalog JSON: {e}") from e

        entries = data.get("data") if isinstance(data, dict) else None
        options: list[ModelOption] = []
        catalog: list[ModelEntry] = entries if isinstance(entries, list) else []
        for entry in catalog:
            model_id = entry.get("id") if isinstance(entry, dict) else None
            if not isinstance(model_id, str) or "/" not in model_id:
                continue
            provider = model_id.split("/", 1)[0]
            if provider not in ALLOWED_PROVIDERS:
                continue
            options.append(ModelOption(id=model_id, name=model_id.rsplit("/", 1)[-1]))

        logger.info(f"📚 Model catalog: {len(options)} models from {len(ALLOWED_PROVIDERS)} providers")
        return options
