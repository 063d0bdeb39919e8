from __future__ import annotations
"""
Synthesis Schema Definitions.

Input documents are validated Pydantic models. Outputs are frozen dataclasses
holding tuples, so results handed to callers (and kept in the result cache)
are read-only snapshots.
"""

import hashlib
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from studyguide.gateway.schema import Category


class Document(BaseModel):
    """A document with its text already extracted upstream."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    raw_text: str = Field(default="")
    word_count: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def fill_word_count(cls, data: Any) -> Any:
        """Count words when the caller did not supply a count."""
        if isinstance(data, dict) and data.get("word_count") is None:
            data = {**data, "word_count": len(str(data.get("raw_text") or "").split())}
        return data

    @classmethod
    def from_text(cls, name: str, raw_text: str, id: str | None = None) -> "Document":
        """Create a document, deriving the ID from name and content when omitted."""
        if id is None:
            digest = hashlib.md5(f"{name}\n{raw_text}".encode("utf-8")).hexdigest()
            id = digest[:12]
        return cls(id=id, name=name, raw_text=raw_text)


class SynthesisStatus(str, Enum):
    """Lifecycle of one synthesis run."""
    IDLE = "idle"
    ANALYZING = "analyzing"
    AI_FANOUT = "ai_fanout"
    FALLBACK = "fallback"
    MERGING = "merging"
    COMPLETE = "complete"
    ERROR = "error"


class FanoutPolicy(str, Enum):
    """How a failed category call affects the other categories."""
    ALL_OR_NOTHING = "all_or_nothing"
    PER_CATEGORY = "per_category"


# Categories requested for every synthesis run, in dispatch order
SYNTHESIS_CATEGORIES = (
    Category.QUESTIONS,
    Category.NOTES,
    Category.SUMMARY,
    Category.ANNOTATIONS,
    Category.EXAMPLES,
)


@dataclass(frozen=True)
class PerDocumentAnalysis:
    """Study content attributed to one document."""

    document_id: str
    key_terms: tuple[str, ...] = ()
    examples: tuple[str, ...] = ()
    questions: tuple[str, ...] = ()
    study_notes: tuple[str, ...] = ()
    key_takeaways: tuple[str, ...] = ()
    annotations: tuple[str, ...] = ()


@dataclass(frozen=True)
class CombinedAnalysis:
    """Duplicate-free union of every per-document analysis."""

    key_terms: tuple[str, ...] = ()
    examples: tuple[str, ...] = ()
    questions: tuple[str, ...] = ()
    study_notes: tuple[str, ...] = ()
    key_takeaways: tuple[str, ...] = ()
    annotations: tuple[str, ...] = ()
    marked_document: str = ""
    document_names: tuple[str, ...] = ()
    total_words: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StudyGuideSection:
    """One section of the study guide."""

    id: str
    title: str
    content: str
    keywords: tuple[str, ...] = ()
    examples: tuple[str, ...] = ()
    questions: tuple[str, ...] = ()
    annotations: tuple[str, ...] = ()
    summaries: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()
    level: int = 2

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SynthesisResult:
    """Output of one synthesis run, as stored in the result cache."""

    fingerprint: str
    analysis: CombinedAnalysis
    sections: tuple[StudyGuideSection, ...]
    per_document: tuple[PerDocumentAnalysis, ...] = ()
    source: str = "fallback"  # "ai", "fallback" or "mixed"
    fallback_categories: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_overview(self) -> bool:
        return bool(self.sections) and self.sections[0].id == "overview"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "fingerprint": self.fingerprint,
            "source": self.source,
            "fallback_categories": list(self.fallback_categories),
            "analysis": self.analysis.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
        }
