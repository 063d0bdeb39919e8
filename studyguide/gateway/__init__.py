from __future__ import annotations
"""
Gateway module for the study guide synthesizer.

This module handles connectivity to the local inference service, model
selection, generation and response caching.
"""

from studyguide.gateway.client import InferenceGateway
from studyguide.gateway.fallbacks import fallback_for
from studyguide.gateway.schema import (
    Category,
    ConnectionInfo,
    ConnectionStatus,
    ModelDescriptor,
    SummaryLength,
)

__all__ = [
    "InferenceGateway",
    "fallback_for",
    "Category",
    "ConnectionInfo",
    "ConnectionStatus",
    "ModelDescriptor",
    "SummaryLength",
]
