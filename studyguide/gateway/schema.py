from __future__ import annotations
"""
Gateway Schema Definitions.

Types shared by the inference gateway and its callers: content categories,
connection state and model descriptors parsed from the model listing.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Category(str, Enum):
    """Kinds of generated study content. Selects the fallback text."""
    SUMMARY = "summary"
    QUESTIONS = "questions"
    NOTES = "notes"
    EXAMPLES = "examples"
    ANNOTATIONS = "annotations"
    FLASHCARDS = "flashcards"
    ANSWER = "answer"


class SummaryLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


def format_bytes(size: int) -> str:
    """Human readable size, e.g. 1717986918 -> '1.6 GB'."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    exponent = min(int(math.log(size, 1024)), len(units) - 1)
    value = size / (1024 ** exponent)
    return f"{round(value, 1):g} {units[exponent]}"


class ModelDescriptor(BaseModel):
    """A model reported by the inference service."""

    name: str = Field(..., min_length=1)
    id: str = Field(..., description="Digest when reported, otherwise the name")
    size_bytes: int = Field(default=0, ge=0)
    last_modified: datetime | None = None
    available: bool = True

    @property
    def size_label(self) -> str:
        return format_bytes(self.size_bytes)

    @classmethod
    def from_tag(cls, tag: dict[str, Any]) -> "ModelDescriptor":
        """Build from one entry of the ``/api/tags`` model list."""
        modified = tag.get("modified_at")
        last_modified = None
        if modified:
            try:
                last_modified = datetime.fromisoformat(str(modified).replace("Z", "+00:00"))
            except ValueError:
                last_modified = None

        return cls(
            name=tag["name"],
            id=tag.get("digest") or tag["name"],
            size_bytes=int(tag.get("size") or 0),
            last_modified=last_modified,
            available=True,
        )


class ConnectionInfo(BaseModel):
    """Snapshot of gateway connectivity for status indicators."""

    status: ConnectionStatus
    model: str
    models_count: int
