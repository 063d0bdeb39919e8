from __future__ import annotations
"""
Study Material Prompt Templates.

Instruction text for each content category. The gateway's convenience calls
and the synthesis orchestrator both build their prompts from these.
"""

from studyguide.gateway.schema import Category, SummaryLength


STUDY_MATERIAL_INSTRUCTIONS = {
    Category.QUESTIONS: """You are an expert study guide creator. Generate 5-7 high-quality study questions for this academic material. Make them:
- Thought-provoking and analytical
- Focused on understanding key concepts
- Suitable for exam preparation
- Covering different levels of complexity

Format each question on a new line, starting with a number (1., 2., etc.):""",
    Category.NOTES: """You are an expert study guide creator. Create 5-7 structured study notes for this material. Each note should be:
- Clear and actionable
- Focused on key concepts and important information
- Easy to understand and remember
- Directly related to the content

Format each note on a new line as a bullet point:""",
    Category.EXAMPLES: """You are an expert study guide creator. Provide 3-5 practical examples that illustrate the concepts in this material. Each example should be:
- Specific and relevant to the content
- Easy to understand
- Demonstrating real-world applications
- Supporting the main concepts

Format each example on a new line as a bullet point:""",
    Category.ANNOTATIONS: """You are an expert study guide creator. Create 5-7 helpful study annotations and insights for this material. Each annotation should be:
- Focused on key points and connections
- Providing learning tips and strategies
- Highlighting important relationships
- Offering study guidance

Format each annotation on a new line as a bullet point:""",
    Category.FLASHCARDS: """Create 5-7 flashcards for this study material. Format each as "Q: [Question] A: [Answer]". Focus on key concepts:""",
}


SUMMARY_TEMPLATE = """You are an expert study guide creator. Create a {length} {format} of this study material.

Requirements:
- Be concise but comprehensive
- Focus on key concepts and main points
- Highlight important relationships between concepts
- Make it suitable for study and review
- Use clear, academic language

Format each key takeaway on a new line:"""


QUESTION_TEMPLATE = """Answer this question based on the provided context. Be helpful and specific:

Question: {question}

Context: {context}"""


SUMMARY_TOKENS = {
    SummaryLength.SHORT: 200,
    SummaryLength.MEDIUM: 400,
    SummaryLength.LONG: 600,
}


def build_study_material_prompt(content: str, kind: Category) -> str:
    """Instruction block followed by the material."""
    if kind not in STUDY_MATERIAL_INSTRUCTIONS:
        raise ValueError(f"Unsupported study material type: {kind.value}")
    return f"{STUDY_MATERIAL_INSTRUCTIONS[kind]}\n\n{content}"


def build_summary_prompt(
    content: str,
    length: SummaryLength = SummaryLength.MEDIUM,
    format: str | None = None,
) -> str:
    header = SUMMARY_TEMPLATE.format(length=length.value, format=format or "summary")
    return f"{header}\n\n{content}"


def build_question_prompt(question: str, context: str) -> str:
    return QUESTION_TEMPLATE.format(question=question, context=context)
