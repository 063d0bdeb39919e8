from __future__ import annotations
"""
Synthesis Prompt Templates.

Builds the combined prompt body over all documents and the per-category
prompts dispatched during fan-out.
"""

import hashlib

from studyguide.analyzer import ExtractedFeatures
from studyguide.gateway.prompts import STUDY_MATERIAL_INSTRUCTIONS, SUMMARY_TEMPLATE
from studyguide.gateway.schema import Category, SummaryLength
from studyguide.synthesis.schema import Document


DOCUMENT_BLOCK_TEMPLATE = """=== Document {index}: {name} ===
Key terms: {key_terms}
Examples: {examples}

{text}"""

# The digest must sit within the response cache key prefix (cache.key_prefix_chars)
HEADER_TEMPLATE = "Study material [{digest}]: {names}"
DIGEST_CHARS = 12


def format_names(names: list[str]) -> str:
    """'a', 'a and b', 'a, b and c'."""
    if not names:
        return "your study materials"
    if len(names) == 1:
        return names[0]
    return f"{', '.join(names[:-1])} and {names[-1]}"


class StudyPromptBuilder:
    """Builds prompts for the category fan-out."""

    def __init__(self, document_char_limit: int = 1500, prompt_char_limit: int = 2500):
        self.document_char_limit = document_char_limit
        self.prompt_char_limit = prompt_char_limit

    def build_header(self, documents: list[Document]) -> str:
        """First line of every prompt: a digest of the document texts, then their names."""
        hasher = hashlib.sha256()
        for doc in documents:
            hasher.update(f"{doc.name}\0{doc.raw_text}\0".encode("utf-8"))
        return HEADER_TEMPLATE.format(
            digest=hasher.hexdigest()[:DIGEST_CHARS],
            names=format_names([d.name for d in documents]),
        )

    def build_combined_body(
        self,
        documents: list[Document],
        features: list[ExtractedFeatures],
    ) -> str:
        """Every document's excerpt with its extracted key terms and examples."""
        blocks = []
        for index, (doc, feat) in enumerate(zip(documents, features), start=1):
            blocks.append(DOCUMENT_BLOCK_TEMPLATE.format(
                index=index,
                name=doc.name,
                key_terms=", ".join(feat.key_terms) or "none identified",
                examples="; ".join(feat.examples) or "none identified",
                text=doc.raw_text[: self.document_char_limit].strip(),
            ))
        return "\n\n".join(blocks)

    def build_instruction(self, category: Category) -> str:
        if category == Category.SUMMARY:
            return SUMMARY_TEMPLATE.format(
                length=SummaryLength.LONG.value,
                format="list of key takeaways",
            )
        return STUDY_MATERIAL_INSTRUCTIONS[category]

    def build_category_prompt(self, category: Category, header: str, body: str) -> str:
        """Header, category instruction, then the (truncated) combined body."""
        return (
            f"{header}\n\n"
            f"{self.build_instruction(category)}\n\n"
            f"{body[: self.prompt_char_limit]}"
        )
