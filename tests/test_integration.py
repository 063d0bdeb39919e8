from __future__ import annotations
"""
Integration tests for the study guide synthesizer.

The live tests need a running Ollama service and are marked as slow.
"""

import asyncio

import pytest

from studyguide.config import Config
from studyguide.gateway import InferenceGateway
from studyguide.synthesis import Document, SynthesisOrchestrator

LECTURE = """# The Water Cycle

Water moves between the **Atmosphere** and the **Hydrosphere**.
For example, a puddle evaporates on a sunny day.
1. Evaporation
2. Condensation
3. Precipitation
"""


@pytest.fixture
def config():
    """Create test config."""
    return Config(ollama={"connect_attempts": 1})


class TestOfflineIntegration:
    """Full runs against a real gateway with nothing listening."""

    def test_unreachable_service_degrades(self, config):
        """Test a real gateway pointed at a closed port still produces a guide."""
        config.ollama.host = "http://127.0.0.1:9"
        gateway = InferenceGateway(config)

        assert asyncio.run(gateway.connect_with_retry(attempts=1)) is False

        orchestrator = SynthesisOrchestrator(gateway=gateway, config=config)
        result = orchestrator.synthesize_sync([Document.from_text("water.md", LECTURE)])

        assert result.source == "fallback"
        assert gateway.request_count == 0
        assert result.sections[0].keywords[:3] == ("Water Cycle", "Atmosphere", "Hydrosphere")


@pytest.mark.slow
@pytest.mark.integration
class TestLiveIntegration:
    """Integration tests that require a running inference service."""

    @pytest.fixture
    def gateway(self, config):
        gateway = InferenceGateway(config)
        if not asyncio.run(gateway.connect()):
            pytest.skip("Inference service not available")
        return gateway

    def test_generate(self, gateway):
        """Test a real generation returns text."""
        text = asyncio.run(gateway.generate("List three facts about water.", max_tokens=100))
        assert text

    def test_two_document_guide(self, gateway, config):
        """Test a live synthesis run over two documents."""
        documents = [
            Document.from_text("water.md", LECTURE),
            Document.from_text("clouds.md", "# Clouds\nClouds form when **Water Vapor** condenses."),
        ]
        orchestrator = SynthesisOrchestrator(gateway=gateway, config=config)

        result = orchestrator.synthesize_sync(documents)

        assert len(result.sections) == 3
        assert result.sections[0].id == "overview"
        assert all(section.questions for section in result.sections)
