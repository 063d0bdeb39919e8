from __future__ import annotations
"""
Response Post-processing.

Turns raw generated text into clean per-category line lists and supplies
document-aware templates when a category comes back empty.
"""

import re

from studyguide.analyzer import unique
from studyguide.gateway.schema import Category
from studyguide.synthesis.prompts import format_names

BOILERPLATE_PREFIXES = ("i apologize", "i cannot", "here are", "based on")

_LIST_MARKER = re.compile(r"^(?:[-•*+]|\d+[.)])\s*")


TEMPLATED_FALLBACKS = {
    Category.QUESTIONS: [
        "What are the main topics covered in {names}?",
        "How do the key concepts in {names} relate to each other?",
        "What practical applications can you identify in {names}?",
        "What are the most important takeaways from {names}?",
        "How would you explain the ideas in {names} to someone else?",
    ],
    Category.NOTES: [
        "Review the main headings and structure of {names}",
        "Identify the key terms defined in {names} and their meanings",
        "Note any processes, formulas, or procedures described in {names}",
        "Highlight important dates, numbers, or statistics in {names}",
    ],
    Category.SUMMARY: [
        "{names} covers concepts that build upon each other",
        "Understanding how the topics in {names} relate to one another is crucial",
        "Practical applications reinforce the theory presented in {names}",
        "Regular review of {names} will improve retention",
    ],
    Category.ANNOTATIONS: [
        "{names} provides foundational knowledge for the topic",
        "Pay attention to the examples in {names}; they illustrate the key concepts",
        "The material in {names} follows a logical progression",
        "Consider how {names} relates to real-world applications",
    ],
    Category.EXAMPLES: [
        "Consider how the concepts in {names} apply in different scenarios",
        "Look for patterns that repeat throughout {names}",
        "Connect the examples in {names} to your own experiences",
    ],
}


def is_boilerplate(line: str) -> bool:
    return line.lower().startswith(BOILERPLATE_PREFIXES)


def clean_lines(raw: str, limit: int = 10) -> list[str]:
    """
    Split a response into study lines.

    Strips list markers, drops empty and boilerplate lines, removes
    duplicates and keeps at most ``limit`` lines.
    """
    lines = []
    for line in raw.splitlines():
        text = _LIST_MARKER.sub("", line.strip(), count=1).strip()
        if not text or is_boilerplate(text):
            continue
        lines.append(text)
    return unique(lines, limit=limit)


def templated_fallback(category: Category, names: list[str]) -> list[str]:
    """Deterministic lines for a category, naming the documents."""
    templates = TEMPLATED_FALLBACKS.get(category, TEMPLATED_FALLBACKS[Category.NOTES])
    label = format_names(names)
    return unique(t.format(names=label) for t in templates)
