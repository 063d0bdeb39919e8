from __future__ import annotations
"""
Content Profiling.

Cheap size and complexity statistics for a document, used to describe the
material in overview sections and to size prompts.
"""

import math
import re
from dataclasses import dataclass

TECHNICAL_TERMS = (
    "theory", "analysis", "methodology", "framework", "algorithm",
    "concept", "principle", "paradigm", "hypothesis", "theorem",
    "function", "variable", "parameter", "equation", "formula",
)

COMPLEXITY_LEVELS = (
    (3, "simple"),
    (5, "medium"),
    (7, "complex"),
    (9, "very complex"),
)

# Roughly 0.75 words per token
TOKENS_PER_WORD = 1.33


@dataclass(frozen=True)
class ContentProfile:
    """Size and complexity statistics for a piece of text."""

    word_count: int
    sentence_count: int
    average_sentence_length: float
    topic_density: float
    complexity_score: int
    complexity_level: str
    estimated_tokens: int


def _word_count_score(word_count: int) -> int:
    if word_count < 500:
        return 1
    elif word_count < 2000:
        return 2
    elif word_count < 5000:
        return 3
    return 4


def _sentence_length_score(average: float) -> int:
    if average < 15:
        return 1
    elif average < 25:
        return 2
    return 3


def _density_score(density: float) -> int:
    if density < 0.5:
        return 1
    elif density < 1.0:
        return 2
    return 3


def complexity_level(score: int) -> str:
    for upper, label in COMPLEXITY_LEVELS:
        if score <= upper:
            return label
    return "expert"


def profile_content(raw_text: str) -> ContentProfile:
    """
    Compute word/sentence statistics and a 3-10 complexity score.

    The score sums three bands: document length, average sentence length and
    the density of technical vocabulary (matches per 100 words).
    """
    words = raw_text.split()
    sentences = [s for s in re.split(r"[.!?]+", raw_text) if s.strip()]

    word_count = len(words)
    sentence_count = len(sentences)
    average = word_count / sentence_count if sentence_count else 0.0

    lowered = raw_text.lower()
    matches = sum(lowered.count(term) for term in TECHNICAL_TERMS)
    density = (matches / word_count) * 100 if word_count else 0.0

    score = _word_count_score(word_count) + _sentence_length_score(average) + _density_score(density)

    return ContentProfile(
        word_count=word_count,
        sentence_count=sentence_count,
        average_sentence_length=average,
        topic_density=density,
        complexity_score=score,
        complexity_level=complexity_level(score),
        estimated_tokens=math.ceil(word_count * TOKENS_PER_WORD),
    )
