from __future__ import annotations
"""
Fallback Content.

Deterministic text returned by the gateway whenever the inference service is
unavailable or a generation call fails.
"""

from studyguide.gateway.schema import Category, SummaryLength

SUMMARY_FALLBACKS = {
    SummaryLength.SHORT: "Key concepts and main points from your study materials.",
    SummaryLength.MEDIUM: (
        "This is a comprehensive overview of your study materials, covering the main "
        "concepts and important details that will help you understand the subject "
        "matter effectively."
    ),
    SummaryLength.LONG: (
        "This is a detailed analysis of your study materials, providing comprehensive "
        "coverage of all key concepts, themes, and important information. The content "
        "has been carefully analyzed to ensure you have a complete understanding of "
        "the subject matter."
    ),
}

FALLBACK_LINES = {
    Category.QUESTIONS: [
        "What are the main concepts discussed in this material?",
        "How do these concepts relate to each other?",
        "What practical applications can you identify?",
        "What are the key takeaways from this content?",
        "How would you explain this to someone else?",
    ],
    Category.NOTES: [
        "Review the main headings and subheadings for structure",
        "Identify key terms and their definitions",
        "Look for examples and case studies provided",
        "Note any formulas, processes, or procedures mentioned",
        "Highlight important dates, numbers, or statistics",
    ],
    Category.EXAMPLES: [
        "Consider how this concept applies in different scenarios",
        "Think about similar situations you may have encountered",
        "Look for patterns that repeat throughout the material",
        "Identify what makes each example unique or important",
        "Connect these examples to your own experiences",
    ],
    Category.ANNOTATIONS: [
        "This section provides foundational knowledge for the topic",
        "Pay attention to the examples given - they illustrate key concepts",
        "The structure here follows a logical progression",
        "These points are essential for understanding the broader context",
        "Consider how this relates to real-world applications",
    ],
    Category.FLASHCARDS: [
        "Q: What is the main topic of this material?",
        "A: The main topic covers the key concepts from your study materials.",
        "Q: What are the important details?",
        "A: The important details include the specific information from your content.",
    ],
    Category.ANSWER: [
        "The AI assistant is offline. Review the related sections of your material "
        "to answer this question.",
    ],
}


def fallback_for(category: Category, length: SummaryLength = SummaryLength.MEDIUM) -> str:
    """Fallback text for a category. Unknown categories get study notes."""
    if category == Category.SUMMARY:
        return SUMMARY_FALLBACKS[length]
    lines = FALLBACK_LINES.get(category, FALLBACK_LINES[Category.NOTES])
    return "\n".join(lines)
