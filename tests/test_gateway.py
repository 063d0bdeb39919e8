from __future__ import annotations
"""
Tests for the Gateway module.

The inference service is replaced by httpx.MockTransport handlers.
"""

import asyncio
import json

import httpx
import pytest

from studyguide.config import Config
from studyguide.gateway import (
    Category,
    ConnectionStatus,
    InferenceGateway,
    ModelDescriptor,
    SummaryLength,
    fallback_for,
)
from studyguide.gateway.schema import format_bytes


TAGS = {
    "models": [
        {
            "name": "llama2:latest",
            "digest": "sha256:aaa",
            "size": 3825819519,
            "modified_at": "2024-03-01T10:00:00Z",
        },
        {
            "name": "phi3:mini",
            "digest": "sha256:bbb",
            "size": 2176178913,
            "modified_at": "2024-04-01T10:00:00Z",
        },
    ]
}


class FakeService:
    """Records requests and answers like a local inference service."""

    def __init__(self, tags=None, generate=None):
        self.tags = TAGS if tags is None else tags
        self.generate = generate or (lambda request: httpx.Response(200, json={"response": "  ok  "}))
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/tags":
            return httpx.Response(200, json=self.tags)
        if request.url.path == "/api/generate":
            return self.generate(request)
        return httpx.Response(404)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def generate_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/api/generate"]


def make_gateway(service: FakeService, config: Config | None = None) -> InferenceGateway:
    config = config or Config(ollama={"connect_retry_delay_seconds": 0})
    return InferenceGateway(config, transport=httpx.MockTransport(service))


def connected_gateway(service: FakeService) -> InferenceGateway:
    gateway = make_gateway(service)
    assert asyncio.run(gateway.connect())
    return gateway


class TestModelDescriptor:
    """Tests for ModelDescriptor."""

    def test_from_tag(self):
        """Test parsing a model listing entry."""
        model = ModelDescriptor.from_tag(TAGS["models"][1])

        assert model.name == "phi3:mini"
        assert model.id == "sha256:bbb"
        assert model.size_bytes == 2176178913
        assert model.last_modified.year == 2024
        assert model.available

    def test_from_tag_minimal(self):
        """Test missing digest and bad timestamp are tolerated."""
        model = ModelDescriptor.from_tag({"name": "tiny", "modified_at": "yesterday"})

        assert model.id == "tiny"
        assert model.size_bytes == 0
        assert model.last_modified is None

    def test_format_bytes(self):
        """Test human-readable sizes."""
        assert format_bytes(0) == "0 B"
        assert format_bytes(1024) == "1 KB"
        assert format_bytes(1536 * 1024 * 1024) == "1.5 GB"


class TestConnection:
    """Tests for connect and model selection."""

    def test_connect_selects_preferred_model(self):
        """Test the first preferred model wins over listing order."""
        gateway = connected_gateway(FakeService())

        assert gateway.is_connected
        assert gateway.current_model.name == "phi3:mini"
        assert len(gateway.models) == 2

    def test_connect_falls_back_to_first_available(self):
        """Test a non-preferred listing selects its first model."""
        tags = {"models": [{"name": "mistral:7b"}, {"name": "qwen:1.8b"}]}
        gateway = connected_gateway(FakeService(tags=tags))

        assert gateway.current_model.name == "mistral:7b"

    def test_connect_probes_then_lists(self):
        """Test connect issues the probe and the listing."""
        service = FakeService()
        connected_gateway(service)

        assert service.paths() == ["/api/tags", "/api/tags"]

    def test_empty_model_list_is_error(self):
        """Test a service without models is not a connection."""
        gateway = make_gateway(FakeService(tags={"models": []}))

        assert asyncio.run(gateway.connect()) is False
        assert gateway.connection_status == ConnectionStatus.ERROR
        assert gateway.current_model is None

    def test_unreachable_service(self):
        """Test network errors leave the gateway in error state."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = InferenceGateway(
            Config(ollama={"connect_retry_delay_seconds": 0}),
            transport=httpx.MockTransport(handler),
        )

        assert asyncio.run(gateway.test_connection()) is False
        assert asyncio.run(gateway.connect()) is False
        assert gateway.connection_status == ConnectionStatus.ERROR

    def test_connect_with_retry_recovers(self):
        """Test a later attempt can succeed."""
        service = FakeService()
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            if calls["count"] == 1:
                raise httpx.ConnectError("starting up", request=request)
            return service(request)

        gateway = InferenceGateway(
            Config(ollama={"connect_retry_delay_seconds": 0}),
            transport=httpx.MockTransport(handler),
        )

        assert asyncio.run(gateway.connect_with_retry(attempts=3)) is True
        assert gateway.is_connected
        assert calls["count"] == 3

    def test_connect_with_retry_gives_up(self):
        """Test retries stop after the configured attempts."""
        service = FakeService(tags={"models": []})
        gateway = make_gateway(service)

        assert asyncio.run(gateway.connect_with_retry(attempts=2)) is False
        assert len(service.requests) == 2

    def test_reconnect(self):
        """Test reconnect re-runs discovery."""
        service = FakeService()
        gateway = connected_gateway(service)

        assert asyncio.run(gateway.reconnect()) is True
        assert len(service.requests) == 4

    def test_set_current_model(self):
        """Test switching between listed models."""
        gateway = connected_gateway(FakeService())

        assert gateway.set_current_model("llama2:latest") is True
        assert gateway.current_model.name == "llama2:latest"
        assert gateway.set_current_model("gpt-9") is False
        assert gateway.current_model.name == "llama2:latest"

    def test_connection_info(self):
        """Test the status snapshot."""
        gateway = make_gateway(FakeService())
        info = gateway.get_connection_info()
        assert info.status == ConnectionStatus.DISCONNECTED
        assert info.model == "None"

        asyncio.run(gateway.connect())
        info = gateway.get_connection_info()
        assert info.status == ConnectionStatus.CONNECTED
        assert info.model == "phi3:mini"
        assert info.models_count == 2

    def test_health_check(self):
        """Test healthy and unhealthy reports."""
        healthy = asyncio.run(make_gateway(FakeService()).health_check())
        assert healthy["status"] == "healthy"
        assert healthy["details"]["models"] == 2

        def handler(request):
            return httpx.Response(503)

        gateway = InferenceGateway(Config(), transport=httpx.MockTransport(handler))
        unhealthy = asyncio.run(gateway.health_check())
        assert unhealthy["status"] == "unhealthy"
        assert "error" in unhealthy["details"]


class TestGenerate:
    """Tests for generation, fallback and caching."""

    def test_disconnected_returns_fallback_without_requests(self):
        """Test no network calls happen while disconnected."""
        service = FakeService()
        gateway = make_gateway(service)

        text = asyncio.run(gateway.generate("Explain osmosis", category=Category.QUESTIONS))

        assert text == fallback_for(Category.QUESTIONS)
        assert service.requests == []
        assert gateway.request_count == 0

    def test_non_streaming_payload(self):
        """Test the request body and trimmed response."""
        service = FakeService()
        gateway = connected_gateway(service)

        text = asyncio.run(gateway.generate("Explain osmosis", max_tokens=123))

        assert text == "ok"
        body = json.loads(service.generate_requests()[0].content)
        assert body["model"] == "phi3:mini"
        assert body["prompt"] == "Explain osmosis"
        assert body["stream"] is False
        assert body["options"]["num_predict"] == 123
        assert body["options"]["temperature"] == 0.7
        assert body["options"]["stop"] == ["\n\n", "---", "##", "###"]

    def test_streaming_reassembly(self):
        """Test chunks are joined, malformed lines skipped, reading stops at done."""
        lines = [
            json.dumps({"response": "Cells ", "done": False}),
            "{not json",
            "",
            json.dumps({"response": "divide.", "done": False}),
            json.dumps({"response": "", "done": True}),
            json.dumps({"response": " ignored", "done": False}),
        ]
        service = FakeService(generate=lambda request: httpx.Response(
            200, content="\n".join(lines).encode("utf-8")
        ))
        gateway = connected_gateway(service)

        text = asyncio.run(gateway.generate("Explain mitosis", streaming=True))

        assert text == "Cells divide."
        assert json.loads(service.generate_requests()[0].content)["stream"] is True

    def test_server_error_returns_fallback(self):
        """Test non-2xx responses degrade to the category fallback."""
        service = FakeService(generate=lambda request: httpx.Response(500, text="boom"))
        gateway = connected_gateway(service)

        text = asyncio.run(gateway.generate("Summarize", category=Category.SUMMARY,
                                            summary_length=SummaryLength.SHORT))

        assert text == fallback_for(Category.SUMMARY, SummaryLength.SHORT)

    def test_timeout_returns_fallback(self):
        """Test timeouts degrade to fallback without retrying by default."""
        def timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        service = FakeService(generate=timeout)
        gateway = connected_gateway(service)

        text = asyncio.run(gateway.generate("Give examples", category=Category.EXAMPLES))

        assert text == fallback_for(Category.EXAMPLES)
        assert len(service.generate_requests()) == 1

    def test_malformed_body_returns_fallback(self):
        """Test an unparsable body degrades to fallback."""
        service = FakeService(generate=lambda request: httpx.Response(200, content=b"<html>"))
        gateway = connected_gateway(service)

        text = asyncio.run(gateway.generate("Write notes", category=Category.NOTES))

        assert text == fallback_for(Category.NOTES)

    def test_cache_hit_skips_network(self):
        """Test an identical call is served from the cache."""
        service = FakeService()
        gateway = connected_gateway(service)

        async def run_twice():
            first = await gateway.generate("Explain osmosis", max_tokens=200)
            second = await gateway.generate("Explain osmosis", max_tokens=200)
            return first, second

        first, second = asyncio.run(run_twice())

        assert first == second == "ok"
        assert len(service.generate_requests()) == 1
        assert gateway.request_count == 1
        assert gateway.cache_stats()["size"] == 1

    def test_cache_key_varies(self):
        """Test the key depends on category and token budget."""
        gateway = make_gateway(FakeService())
        base = gateway.cache_key("m", Category.NOTES, "prompt", 100)

        assert base == gateway.cache_key("m", Category.NOTES, "prompt", 100)
        assert base != gateway.cache_key("m", Category.QUESTIONS, "prompt", 100)
        assert base != gateway.cache_key("m", Category.NOTES, "prompt", 200)

    def test_cache_key_uses_prompt_prefix(self):
        """Test prompts sharing their first 100 characters share a key."""
        gateway = make_gateway(FakeService())
        prefix = "p" * 100

        assert gateway.cache_key("m", Category.NOTES, prefix + "a", 100) == \
            gateway.cache_key("m", Category.NOTES, prefix + "b", 100)

    def test_empty_response_not_cached(self):
        """Test empty generations are returned but not stored."""
        service = FakeService(generate=lambda request: httpx.Response(200, json={"response": "   "}))
        gateway = connected_gateway(service)

        assert asyncio.run(gateway.generate("Explain osmosis")) == ""
        assert gateway.cache_stats()["size"] == 0

    def test_clear_cache(self):
        """Test clearing forces a new request."""
        service = FakeService()
        gateway = connected_gateway(service)

        asyncio.run(gateway.generate("Explain osmosis"))
        gateway.clear_cache()
        asyncio.run(gateway.generate("Explain osmosis"))

        assert len(service.generate_requests()) == 2


class TestTryGenerate:
    """Tests for the raising generation path."""

    def test_disconnected_raises(self):
        """Test a disconnected gateway raises instead of returning fallback."""
        service = FakeService()
        gateway = make_gateway(service)

        with pytest.raises(ConnectionError):
            asyncio.run(gateway.try_generate("Write notes"))
        assert service.requests == []

    def test_server_error_raises(self):
        """Test non-2xx responses surface as HTTP errors."""
        service = FakeService(generate=lambda request: httpx.Response(500, text="boom"))
        gateway = connected_gateway(service)

        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(gateway.try_generate("Write notes", category=Category.NOTES))

    def test_timeout_raises(self):
        """Test a timeout reaches the caller."""
        def timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        gateway = connected_gateway(FakeService(generate=timeout))

        with pytest.raises(httpx.TimeoutException):
            asyncio.run(gateway.try_generate("Give examples", category=Category.EXAMPLES))

    def test_malformed_body_raises(self):
        """Test an unparsable body raises a ValueError."""
        service = FakeService(generate=lambda request: httpx.Response(200, content=b"<html>"))
        gateway = connected_gateway(service)

        with pytest.raises(ValueError):
            asyncio.run(gateway.try_generate("Write notes"))

    def test_success_is_cached_and_shared_with_generate(self):
        """Test a successful result is stored and served to later generate calls."""
        service = FakeService()
        gateway = connected_gateway(service)

        async def run():
            first = await gateway.try_generate("Explain osmosis", max_tokens=200)
            second = await gateway.generate("Explain osmosis", max_tokens=200)
            return first, second

        assert asyncio.run(run()) == ("ok", "ok")
        assert len(service.generate_requests()) == 1


class TestConvenienceCalls:
    """Tests for summary, study material and question helpers."""

    @pytest.fixture
    def service(self):
        return FakeService()

    @pytest.fixture
    def gateway(self, service):
        return connected_gateway(service)

    def test_generate_summary(self, gateway, service):
        """Test summary prompt and token budget."""
        asyncio.run(gateway.generate_summary("Cells are units of life.", SummaryLength.LONG))

        body = json.loads(service.generate_requests()[0].content)
        assert "long summary" in body["prompt"]
        assert body["options"]["num_predict"] == 600
        assert body["stream"] is True

    def test_generate_study_material(self, gateway, service):
        """Test study material prompt truncation."""
        content = "x" * 5000
        asyncio.run(gateway.generate_study_material(content, Category.FLASHCARDS))

        body = json.loads(service.generate_requests()[0].content)
        assert "flashcards" in body["prompt"]
        assert "x" * 2500 in body["prompt"]
        assert "x" * 2501 not in body["prompt"]

    def test_unsupported_study_material(self, gateway):
        """Test unsupported kinds are rejected."""
        with pytest.raises(ValueError):
            asyncio.run(gateway.generate_study_material("text", Category.ANSWER))

    def test_ask_question_offline(self):
        """Test the answer fallback while disconnected."""
        gateway = make_gateway(FakeService())
        answer = asyncio.run(gateway.ask_question("What is ATP?", "ATP stores energy."))

        assert answer == fallback_for(Category.ANSWER)
