from __future__ import annotations
"""
Study Guide Synthesizer.

Turns a set of extracted documents into a structured study guide, using a
local Ollama service when available and deterministic fallback content
otherwise.
"""

from studyguide.config import Config, get_config
from studyguide.gateway import InferenceGateway
from studyguide.synthesis import (
    Document,
    SynthesisError,
    SynthesisOrchestrator,
    SynthesisResult,
)

__version__ = "0.1.0"

__all__ = [
    "Config",
    "get_config",
    "InferenceGateway",
    "Document",
    "SynthesisError",
    "SynthesisOrchestrator",
    "SynthesisResult",
]
