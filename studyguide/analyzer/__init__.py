from __future__ import annotations
"""
Analyzer module for the study guide synthesizer.

Pattern-based extraction of key terms, examples and content statistics.
"""

from studyguide.analyzer.features import (
    ExtractedFeatures,
    analyze,
    extract_examples,
    extract_key_terms,
    frequent_terms,
    unique,
)
from studyguide.analyzer.profile import ContentProfile, profile_content

__all__ = [
    "ExtractedFeatures",
    "analyze",
    "extract_examples",
    "extract_key_terms",
    "frequent_terms",
    "unique",
    "ContentProfile",
    "profile_content",
]
