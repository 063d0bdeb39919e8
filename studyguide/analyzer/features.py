from __future__ import annotations
"""
Heuristic Feature Extraction.

Pulls key terms and examples out of raw document text with pattern matching.
No network or model calls happen here, so the results double as fallback
content when the inference service is unreachable.
"""

import re
from collections import Counter
from dataclasses import dataclass, field

MAX_KEY_TERMS = 10
MAX_EXAMPLES = 8

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "can", "do",
    "does", "for", "from", "has", "have", "how", "if", "in", "into", "is",
    "it", "its", "of", "on", "or", "our", "so", "that", "the", "their",
    "then", "there", "these", "this", "those", "to", "was", "we", "were",
    "what", "when", "where", "which", "who", "why", "will", "with", "you",
    "your", "chapter", "section", "introduction", "summary", "conclusion",
    "overview", "note", "notes", "table", "figure", "contents", "page",
})

EXAMPLE_CUES = ("case study", "similar to", "for example", "e.g.")
STEP_MARKERS = ("first", "next", "finally")

_HEADING = re.compile(r"^[ \t]{0,3}#{1,6}[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)
_BOLD = re.compile(r"\*\*(.+?)\*\*|__(.+?)__", re.DOTALL)
_UNDERLINE = re.compile(r"<u>(.+?)</u>", re.IGNORECASE | re.DOTALL)
_ITALIC = re.compile(r"(?<![\w*])\*(?![\s*])([^*\n]+?)(?<!\s)\*(?![\w*])|(?<![\w_])_(?![\s_])([^_\n]+?)(?<!\s)_(?![\w_])")
_CAPITALIZED_RUN = re.compile(r"\b[A-Z][a-zA-Z]+(?:[ \t]+[A-Z][a-zA-Z]+)+\b")

_FENCED_CODE = re.compile(r"```[^\n]*\n?(.*?)```", re.DOTALL)
_INLINE_CODE = re.compile(r"`([^`\n]+)`")
_NUMBERED_ITEM = re.compile(r"^\s*\d+[.)]\s+(.+)$")
_BULLET_ITEM = re.compile(r"^\s*[-*•+]\s+(.+)$")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")
_LIKE = re.compile(r"\blike\b", re.IGNORECASE)
_MARKUP = re.compile(r"</?u>|[*_`#]", re.IGNORECASE)
_WORD = re.compile(r"\b[a-z]{4,}\b")

# Placeholder keeps "e.g." intact through sentence splitting
_EG_TOKEN = "\x00EG\x00"


@dataclass
class ExtractedFeatures:
    """Structural features of one document."""

    key_terms: list[str] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.key_terms and not self.examples


def unique(items, limit: int | None = None) -> list[str]:
    """Order-preserving dedup, optionally truncated."""
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
            if limit is not None and len(result) >= limit:
                break
    return result


def _clean_term(candidate: str) -> str:
    text = _MARKUP.sub("", candidate)
    words = re.sub(r"\s+", " ", text).strip(" \t:;,.!?-()[]\"'").split(" ")
    # "The Krebs Cycle" -> "Krebs Cycle"
    while len(words) > 1 and words[0].lower() in STOP_WORDS:
        words.pop(0)
    return " ".join(words)


def _is_key_term(term: str) -> bool:
    if len(term) <= 2:
        return False
    words = term.lower().split()
    return not all(word in STOP_WORDS for word in words)


def extract_key_terms(raw_text: str, limit: int = MAX_KEY_TERMS) -> list[str]:
    """Headings, emphasized spans and capitalized runs, in that order."""
    candidates: list[str] = []

    candidates.extend(m.group(1) for m in _HEADING.finditer(raw_text))

    # Bold first, then strip it so the italic pattern does not re-match
    candidates.extend(m.group(1) or m.group(2) for m in _BOLD.finditer(raw_text))
    remaining = _BOLD.sub(" ", raw_text)

    candidates.extend(m.group(1) for m in _UNDERLINE.finditer(remaining))
    candidates.extend(m.group(1) or m.group(2) for m in _ITALIC.finditer(remaining))

    # Headings are already counted; keep them out of capitalized runs
    prose = _HEADING.sub(" ", remaining)
    candidates.extend(m.group(0) for m in _CAPITALIZED_RUN.finditer(prose))

    terms = (_clean_term(c) for c in candidates)
    return unique((t for t in terms if _is_key_term(t)), limit=limit)


def _split_sentences(line: str) -> list[str]:
    protected = re.sub(r"\be\.g\.", _EG_TOKEN, line, flags=re.IGNORECASE)
    sentences = _SENTENCE_BREAK.split(protected)
    return [s.replace(_EG_TOKEN, "e.g.").strip() for s in sentences if s.strip()]


def _has_cue(sentence: str) -> bool:
    lowered = sentence.lower()
    return any(cue in lowered for cue in EXAMPLE_CUES) or bool(_LIKE.search(sentence))


def _starts_with_step(sentence: str) -> bool:
    first_word = re.split(r"[\s,:;]+", sentence.lower(), maxsplit=1)[0]
    return first_word in STEP_MARKERS


def extract_examples(raw_text: str, limit: int = MAX_EXAMPLES) -> list[str]:
    """Code spans, cue-phrase sentences, step sentences and list items."""
    code: list[str] = [m.group(1).strip() for m in _FENCED_CODE.finditer(raw_text)]
    text = _FENCED_CODE.sub("\n", raw_text)
    code.extend(m.group(1).strip() for m in _INLINE_CODE.finditer(text))

    cue_sentences: list[str] = []
    step_sentences: list[str] = []
    list_items: list[str] = []

    for line in text.splitlines():
        item = _NUMBERED_ITEM.match(line) or _BULLET_ITEM.match(line)
        if item:
            list_items.append(item.group(1).strip())
            continue
        if _HEADING.match(line):
            continue
        for sentence in _split_sentences(line):
            if _has_cue(sentence):
                cue_sentences.append(sentence)
            elif _starts_with_step(sentence):
                step_sentences.append(sentence)

    return unique(code + cue_sentences + step_sentences + list_items, limit=limit)


def analyze(raw_text: str) -> ExtractedFeatures:
    """
    Extract key terms and examples from raw text.

    Pure and total: unparsable or empty input yields empty lists.
    """
    if not raw_text or not raw_text.strip():
        return ExtractedFeatures()

    return ExtractedFeatures(
        key_terms=extract_key_terms(raw_text),
        examples=extract_examples(raw_text),
    )


def frequent_terms(raw_text: str, limit: int = 10, min_count: int = 3) -> list[str]:
    """Words of four or more letters seen at least ``min_count`` times, most frequent first."""
    words = [w for w in _WORD.findall(raw_text.lower()) if w not in STOP_WORDS]
    counts = Counter(words)
    ranked = sorted(
        (w for w, c in counts.items() if c >= min_count),
        key=lambda w: -counts[w],
    )
    return ranked[:limit]
