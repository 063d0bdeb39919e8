from __future__ import annotations
"""
Inference Gateway.

Manages connectivity to the local inference service: probing, model discovery
and selection, request dispatch (streaming and non-streaming) and a
time-bounded response cache. ``generate`` never raises; every failure
degrades to category-specific fallback content. ``try_generate`` raises instead.
"""

import hashlib
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from studyguide.cache import TTLCache
from studyguide.config import Config, get_config
from studyguide.gateway.fallbacks import fallback_for
from studyguide.gateway.prompts import (
    SUMMARY_TOKENS,
    build_question_prompt,
    build_study_material_prompt,
    build_summary_prompt,
)
from studyguide.gateway.schema import (
    Category,
    ConnectionInfo,
    ConnectionStatus,
    ModelDescriptor,
    SummaryLength,
)

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.NetworkError)


class InferenceGateway:
    """
    Client for an Ollama-compatible inference service.

    Connection failures leave the gateway disconnected; while disconnected,
    ``generate`` returns fallback content without touching the network.
    Callers decide when to re-probe via ``connect`` or ``reconnect``.
    """

    def __init__(
        self,
        config: Config | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        cache: TTLCache | None = None,
    ):
        self.config = config or get_config()
        self._transport = transport
        self.cache = cache or TTLCache(
            ttl_seconds=self.config.cache.ttl_seconds,
            max_entries=self.config.cache.max_entries,
        )

        self.models: list[ModelDescriptor] = []
        self.current_model: ModelDescriptor | None = None
        self.connection_status = ConnectionStatus.DISCONNECTED
        self.request_count = 0

    @property
    def is_connected(self) -> bool:
        return self.connection_status == ConnectionStatus.CONNECTED

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.ollama.host,
            timeout=timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )

    async def _fetch_tags(self, timeout: float) -> list[dict[str, Any]]:
        """GET /api/tags and return the raw model list."""
        async with self._client(timeout) as client:
            response = await client.get("/api/tags")
            response.raise_for_status()
            return response.json().get("models") or []

    # Connection management

    async def test_connection(self) -> bool:
        """Probe the service. True only if it answers with at least one model."""
        try:
            models = await self._fetch_tags(self.config.ollama.probe_timeout_seconds)
            return len(models) > 0
        except Exception as e:
            logger.warning(f"Connection test failed: {e}")
            return False

    def _select_model(self, models: list[ModelDescriptor]) -> ModelDescriptor | None:
        """First preferred model that is available, else the first available one."""
        available = [m for m in models if m.available]
        for preferred in self.config.ollama.preferred_models:
            for model in available:
                if model.name == preferred:
                    return model
        return available[0] if available else None

    async def connect(self) -> bool:
        """Probe, list models and select the current model."""
        self.connection_status = ConnectionStatus.CONNECTING

        try:
            if not await self.test_connection():
                raise ConnectionError("Inference service is not running or not accessible")

            tags = await self._fetch_tags(self.config.ollama.list_timeout_seconds)
            self.models = [ModelDescriptor.from_tag(tag) for tag in tags]

            selected = self._select_model(self.models)
            if selected is None:
                raise ConnectionError("No models available")
            self.current_model = selected

            self.connection_status = ConnectionStatus.CONNECTED
            logger.info(
                f"Connected to {self.config.ollama.host} with model {selected.name} "
                f"({len(self.models)} models available)"
            )
            return True

        except Exception as e:
            logger.error(f"Failed to connect to inference service: {e}")
            self.connection_status = ConnectionStatus.ERROR
            return False

    async def connect_with_retry(
        self,
        attempts: int | None = None,
        delay_seconds: float | None = None,
    ) -> bool:
        """Repeat ``connect`` until it succeeds or the attempts run out."""
        attempts = attempts or self.config.ollama.connect_attempts
        if delay_seconds is None:
            delay_seconds = self.config.ollama.connect_retry_delay_seconds

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(delay_seconds),
            retry=retry_if_result(lambda connected: not connected),
            retry_error_callback=lambda state: state.outcome.result(),
        )
        connected = await retrying(self.connect)

        if not connected:
            logger.warning(f"Connection failed after {attempts} attempts, using fallback mode")
        return connected

    async def reconnect(self) -> bool:
        """Forget the current models and connect again."""
        logger.info("Reconnection requested")
        self.connection_status = ConnectionStatus.DISCONNECTED
        self.current_model = None
        self.models = []
        return await self.connect()

    def set_current_model(self, name: str) -> bool:
        """Switch to a listed model by name."""
        for model in self.models:
            if model.name == name and model.available:
                self.current_model = model
                logger.info(f"Switched model to {name}")
                return True
        logger.warning(f"Model {name} is not available")
        return False

    def get_connection_info(self) -> ConnectionInfo:
        return ConnectionInfo(
            status=self.connection_status,
            model=self.current_model.name if self.current_model else "None",
            models_count=len(self.models),
        )

    async def health_check(self) -> dict[str, Any]:
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            tags = await self._fetch_tags(self.config.ollama.probe_timeout_seconds)
            return {"status": "healthy", "details": {"models": len(tags), "timestamp": timestamp}}
        except Exception as e:
            return {"status": "unhealthy", "details": {"error": str(e), "timestamp": timestamp}}

    # Generation

    def cache_key(self, model: str, category: Category, prompt: str, max_tokens: int) -> str:
        """Hash of model, category, prompt prefix and token budget."""
        prefix = prompt[: self.config.cache.key_prefix_chars]
        raw = f"{model}|{category.value}|{prefix}|{max_tokens}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    @staticmethod
    async def _read_stream(response: httpx.Response) -> str:
        """Reassemble newline-delimited JSON chunks up to the ``done`` flag."""
        parts: list[str] = []
        async for line in response.aiter_lines():
            if not line.strip():
                continue
            try:
                chunk = json.loads(line)
            except json.JSONDecodeError:
                logger.debug(f"Skipping malformed stream line: {line[:80]}")
                continue
            if not isinstance(chunk, dict):
                continue
            if chunk.get("response"):
                parts.append(chunk["response"])
            if chunk.get("done"):
                break
        return "".join(parts).strip()

    async def _post_generate(self, prompt: str, max_tokens: int, streaming: bool) -> str:
        """One POST /api/generate round trip."""
        payload = {
            "model": self.current_model.name,
            "prompt": prompt,
            "stream": streaming,
            "options": {
                "temperature": self.config.ollama.temperature,
                "top_p": self.config.ollama.top_p,
                "num_predict": max_tokens,
                "stop": self.config.ollama.stop,
            },
        }
        self.request_count += 1

        async with self._client(self.config.ollama.generate_timeout_seconds) as client:
            if streaming:
                async with client.stream("POST", "/api/generate", json=payload) as response:
                    response.raise_for_status()
                    return await self._read_stream(response)

            response = await client.post("/api/generate", json=payload)
            response.raise_for_status()
            data = response.json()
            return (data.get("response") or "").strip()

    async def try_generate(
        self,
        prompt: str,
        *,
        category: Category = Category.NOTES,
        max_tokens: int = 500,
        streaming: bool = False,
    ) -> str:
        """
        Generate text for a prompt, raising on failure.

        Same cache and request path as ``generate``, for callers that pick
        their own fallback content.

        Raises:
            ConnectionError: If the gateway is not connected
            httpx.HTTPError: On transport, timeout or status failures
            ValueError: If the response body is not valid JSON
        """
        if not self.is_connected or self.current_model is None:
            raise ConnectionError("Inference service is not connected")

        key = self.cache_key(self.current_model.name, category, prompt, max_tokens)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Using cached response for {category.value}")
            return cached

        start_time = time.time()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.ollama.generation_retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )
        text = await retrying(self._post_generate, prompt, max_tokens, streaming)

        latency = (time.time() - start_time) * 1000
        logger.info(f"Generated {category.value} in {latency:.0f}ms using {self.current_model.name}")

        if text:
            self.cache.set(key, text)
        return text

    async def generate(
        self,
        prompt: str,
        *,
        category: Category = Category.NOTES,
        max_tokens: int = 500,
        streaming: bool = False,
        summary_length: SummaryLength = SummaryLength.MEDIUM,
    ) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Full prompt text
            category: Content category, used to pick fallback text
            max_tokens: Generation budget (``num_predict``)
            streaming: Read the response as newline-delimited JSON chunks
            summary_length: Selects the summary fallback variant

        Returns:
            Trimmed generated text, or fallback text on any failure
        """
        fallback = fallback_for(category, summary_length)

        if not self.is_connected or self.current_model is None:
            logger.debug(f"Not connected, using fallback for {category.value}")
            return fallback

        try:
            return await self.try_generate(
                prompt,
                category=category,
                max_tokens=max_tokens,
                streaming=streaming,
            )
        except Exception as e:
            logger.warning(f"Generation failed for {category.value}, using fallback: {e}")
            return fallback

    async def generate_summary(
        self,
        content: str,
        length: SummaryLength = SummaryLength.MEDIUM,
        format: str | None = None,
    ) -> str:
        """Summary of the first part of ``content``."""
        preview = content[: self.config.synthesis.summary_char_limit]
        return await self.generate(
            build_summary_prompt(preview, length, format),
            category=Category.SUMMARY,
            max_tokens=SUMMARY_TOKENS[length],
            streaming=True,
            summary_length=length,
        )

    async def generate_study_material(self, content: str, kind: Category) -> str:
        """Flashcards, questions, notes, examples or annotations for ``content``."""
        preview = content[: self.config.synthesis.prompt_char_limit]
        return await self.generate(
            build_study_material_prompt(preview, kind),
            category=kind,
            max_tokens=500,
            streaming=True,
        )

    async def ask_question(self, question: str, context: str) -> str:
        """Answer a question against a context excerpt."""
        return await self.generate(
            build_question_prompt(question, context[:1500]),
            category=Category.ANSWER,
            max_tokens=400,
            streaming=True,
        )

    # Cache management

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Response cache cleared")

    def cache_stats(self) -> dict[str, Any]:
        return self.cache.stats()
