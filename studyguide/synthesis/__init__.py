from __future__ import annotations
"""
Synthesis module for the study guide synthesizer.

Combines analyzer features with generated content into ordered study guide
sections, cached per document set.
"""

from studyguide.synthesis.orchestrator import (
    SynthesisError,
    SynthesisOrchestrator,
    compute_fingerprint,
)
from studyguide.synthesis.postprocess import clean_lines, templated_fallback
from studyguide.synthesis.prompts import StudyPromptBuilder
from studyguide.synthesis.schema import (
    SYNTHESIS_CATEGORIES,
    CombinedAnalysis,
    Document,
    FanoutPolicy,
    PerDocumentAnalysis,
    StudyGuideSection,
    SynthesisResult,
    SynthesisStatus,
)

__all__ = [
    "SynthesisError",
    "SynthesisOrchestrator",
    "compute_fingerprint",
    "clean_lines",
    "templated_fallback",
    "StudyPromptBuilder",
    "SYNTHESIS_CATEGORIES",
    "CombinedAnalysis",
    "Document",
    "FanoutPolicy",
    "PerDocumentAnalysis",
    "StudyGuideSection",
    "SynthesisResult",
    "SynthesisStatus",
]
