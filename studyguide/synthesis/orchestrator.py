from __future__ import annotations
"""
Study Guide Synthesis Orchestrator.

Runs the synthesis pipeline:
1. Result cache lookup by document fingerprint
2. Per-document feature extraction
3. Combined prompt assembly
4. Category fan-out to the inference gateway
5. Post-processing and templated fallback
6. Per-document slicing, merging and section assembly
"""

import asyncio
import logging
import time
from itertools import chain
from pathlib import Path
from typing import Iterable

from studyguide.analyzer import ExtractedFeatures, analyze, frequent_terms, profile_content, unique
from studyguide.cache import TTLCache
from studyguide.config import Config, get_config
from studyguide.gateway import Category, InferenceGateway
from studyguide.synthesis.postprocess import clean_lines, templated_fallback
from studyguide.synthesis.prompts import StudyPromptBuilder, format_names
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

logger = logging.getLogger(__name__)

OVERVIEW_SECTION_ID = "overview"


class SynthesisError(Exception):
    """Unexpected failure while assembling a study guide. Safe to retry."""

    def __init__(self, message: str, fingerprint: str | None = None, retryable: bool = True):
        super().__init__(message)
        self.fingerprint = fingerprint
        self.retryable = retryable


def compute_fingerprint(documents: Iterable[Document]) -> str:
    """Identity of a document set: name and text length of each document, in order."""
    return "|".join(f"{d.name}-{len(d.raw_text)}" for d in documents)


def _name_term(name: str) -> str:
    """Readable term from a file name, e.g. 'cell_biology.md' -> 'cell biology'."""
    stem = Path(name).stem.replace("_", " ").replace("-", " ").strip()
    return stem or name


class SynthesisOrchestrator:
    """
    Builds study guides from a set of documents.

    Results are cached by fingerprint, so a repeated document set never
    reaches the gateway. Concurrent requests for the same fingerprint share
    one synthesis run.
    """

    def __init__(
        self,
        gateway: InferenceGateway | None = None,
        config: Config | None = None,
        result_cache: TTLCache | None = None,
    ):
        self.config = config or get_config()
        self.gateway = gateway or InferenceGateway(self.config)
        self.result_cache = result_cache or TTLCache(
            ttl_seconds=None,
            max_entries=self.config.synthesis.result_cache_size,
        )
        self.prompt_builder = StudyPromptBuilder(
            document_char_limit=self.config.synthesis.document_char_limit,
            prompt_char_limit=self.config.synthesis.prompt_char_limit,
        )
        self.policy = FanoutPolicy(self.config.synthesis.fanout_policy)

        self.status = SynthesisStatus.IDLE
        self.last_error: SynthesisError | None = None
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    async def synthesize(self, documents: Iterable[Document]) -> SynthesisResult:
        """
        Build the study guide for a document set.

        Args:
            documents: Documents with extracted text, in display order

        Returns:
            SynthesisResult with combined analysis and ordered sections

        Raises:
            ValueError: If no documents are given
            SynthesisError: If assembling the guide fails unexpectedly
        """
        documents = list(documents)
        if not documents:
            raise ValueError("At least one document is required")

        fingerprint = compute_fingerprint(documents)
        cached = self.result_cache.get(fingerprint)
        if cached is not None:
            logger.info(f"Using cached study guide for {len(documents)} document(s)")
            return cached

        lock = self._locks.setdefault(fingerprint, asyncio.Lock())
        self._lock_users[fingerprint] = self._lock_users.get(fingerprint, 0) + 1
        try:
            async with lock:
                # Another run may have finished while we waited
                cached = self.result_cache.get(fingerprint)
                if cached is not None:
                    return cached

                result = await self._run(documents, fingerprint)
                self.result_cache.set(fingerprint, result)
                return result
        finally:
            # Drop the lock only once no caller holds or awaits it
            self._lock_users[fingerprint] -= 1
            if not self._lock_users[fingerprint]:
                del self._lock_users[fingerprint]
                del self._locks[fingerprint]

    def synthesize_sync(self, documents: Iterable[Document]) -> SynthesisResult:
        """Synchronous wrapper for synthesize."""
        return asyncio.run(self.synthesize(documents))

    async def _run(self, documents: list[Document], fingerprint: str) -> SynthesisResult:
        start_time = time.time()
        names = [d.name for d in documents]

        logger.info(f"Stage 1: Analyzing {len(documents)} document(s)")
        self.status = SynthesisStatus.ANALYZING
        features = [analyze(d.raw_text) for d in documents]

        try:
            logger.info("Stage 2: Building combined prompt")
            header = self.prompt_builder.build_header(documents)
            body = self.prompt_builder.build_combined_body(documents, features)

            logger.info("Stage 3: Generating category content")
            category_lines, fallback_categories = await self._generate_categories(names, header, body)

            logger.info("Stage 4: Merging results")
            self.status = SynthesisStatus.MERGING
            per_document = self._build_per_document(documents, features, category_lines)
            analysis = self._combine(documents, per_document)
            sections = self._build_sections(documents, per_document, analysis)

        except Exception as e:
            self.status = SynthesisStatus.ERROR
            error = SynthesisError(f"Study guide synthesis failed: {e}", fingerprint=fingerprint)
            self.last_error = error
            logger.error(f"Synthesis failed for {format_names(names)}: {e}")
            raise error from e

        if not fallback_categories:
            source = "ai"
        elif len(fallback_categories) == len(SYNTHESIS_CATEGORIES):
            source = "fallback"
        else:
            source = "mixed"

        self.status = SynthesisStatus.COMPLETE
        self.last_error = None
        latency = (time.time() - start_time) * 1000
        logger.info(f"Complete! {len(sections)} section(s) from {source} content in {latency:.0f}ms")

        return SynthesisResult(
            fingerprint=fingerprint,
            analysis=analysis,
            sections=tuple(sections),
            per_document=tuple(per_document),
            source=source,
            fallback_categories=tuple(c.value for c in fallback_categories),
        )

    async def _generate_category(self, category: Category, header: str, body: str) -> str:
        """One category call. Failures propagate so the fan-out policy sees them."""
        prompt = self.prompt_builder.build_category_prompt(category, header, body)
        return await self.gateway.try_generate(
            prompt,
            category=category,
            max_tokens=getattr(self.config.synthesis.tokens, category.value),
            streaming=self.config.synthesis.use_streaming,
        )

    def _all_fallback(self, names: list[str]) -> tuple[dict[Category, list[str]], list[Category]]:
        self.status = SynthesisStatus.FALLBACK
        lines = {c: templated_fallback(c, names) for c in SYNTHESIS_CATEGORIES}
        return lines, list(SYNTHESIS_CATEGORIES)

    async def _generate_categories(
        self,
        names: list[str],
        header: str,
        body: str,
    ) -> tuple[dict[Category, list[str]], list[Category]]:
        """
        Fan out one generation per category and post-process the responses.

        Returns the cleaned lines per category and the categories that ended
        up on templated fallback content.
        """
        if not self.gateway.is_connected:
            logger.info("Gateway not connected, using templated fallback content")
            return self._all_fallback(names)

        self.status = SynthesisStatus.AI_FANOUT
        responses = await asyncio.gather(
            *(self._generate_category(c, header, body) for c in SYNTHESIS_CATEGORIES),
            return_exceptions=True,
        )

        failed = []
        for category, response in zip(SYNTHESIS_CATEGORIES, responses):
            if isinstance(response, BaseException):
                logger.warning(f"Generation for {category.value} failed: {response}")
                failed.append(category)

        if failed and self.policy == FanoutPolicy.ALL_OR_NOTHING:
            logger.warning(f"{len(failed)} category call(s) failed, reverting every category to fallback")
            return self._all_fallback(names)

        limit = self.config.synthesis.max_lines_per_category
        category_lines: dict[Category, list[str]] = {}
        fallback_categories = []
        for category, response in zip(SYNTHESIS_CATEGORIES, responses):
            lines = [] if category in failed else clean_lines(response, limit=limit)
            if not lines:
                lines = templated_fallback(category, names)
                fallback_categories.append(category)
            category_lines[category] = lines

        if fallback_categories:
            logger.info(f"Templated fallback used for: {', '.join(c.value for c in fallback_categories)}")
        return category_lines, fallback_categories

    def _build_per_document(
        self,
        documents: list[Document],
        features: list[ExtractedFeatures],
        category_lines: dict[Category, list[str]],
    ) -> list[PerDocumentAnalysis]:
        """Give each document its window of every category, backfilled from the start."""
        per_doc = self.config.synthesis.lines_per_document

        results = []
        for index, (doc, feat) in enumerate(zip(documents, features)):

            def window(category: Category) -> list[str]:
                lines = category_lines[category]
                return lines[index * per_doc:(index + 1) * per_doc] or lines[:per_doc]

            key_terms = feat.key_terms or frequent_terms(doc.raw_text) or [_name_term(doc.name)]
            examples = unique(
                chain(feat.examples, window(Category.EXAMPLES)),
                limit=self.config.synthesis.max_document_examples,
            )

            results.append(PerDocumentAnalysis(
                document_id=doc.id,
                key_terms=tuple(unique(key_terms)),
                examples=tuple(examples),
                questions=tuple(unique(window(Category.QUESTIONS))),
                study_notes=tuple(unique(window(Category.NOTES))),
                key_takeaways=tuple(unique(window(Category.SUMMARY))),
                annotations=tuple(unique(window(Category.ANNOTATIONS))),
            ))
        return results

    @staticmethod
    def _combine(documents: list[Document], per_document: list[PerDocumentAnalysis]) -> CombinedAnalysis:
        def union(field_name: str) -> tuple[str, ...]:
            return tuple(unique(chain.from_iterable(getattr(p, field_name) for p in per_document)))

        marked = "\n\n".join(f"=== {d.name} ===\n{d.raw_text}" for d in documents)
        return CombinedAnalysis(
            key_terms=union("key_terms"),
            examples=union("examples"),
            questions=union("questions"),
            study_notes=union("study_notes"),
            key_takeaways=union("key_takeaways"),
            annotations=union("annotations"),
            marked_document=marked,
            document_names=tuple(d.name for d in documents),
            total_words=sum(d.word_count for d in documents),
        )

    def _build_sections(
        self,
        documents: list[Document],
        per_document: list[PerDocumentAnalysis],
        analysis: CombinedAnalysis,
    ) -> list[StudyGuideSection]:
        preview_chars = self.config.synthesis.section_preview_chars

        sections = []
        for doc, doc_analysis in zip(documents, per_document):
            content = doc.raw_text[:preview_chars].strip() or f"No text was extracted from {doc.name}."
            sections.append(StudyGuideSection(
                id=f"section-{doc.id}",
                title=doc.name,
                content=content,
                keywords=doc_analysis.key_terms,
                examples=doc_analysis.examples,
                questions=doc_analysis.questions,
                annotations=doc_analysis.annotations,
                summaries=doc_analysis.key_takeaways,
                notes=doc_analysis.study_notes,
                level=2,
            ))

        if len(documents) > 1:
            sections.insert(0, self._build_overview(documents, analysis))
        return sections

    def _build_overview(self, documents: list[Document], analysis: CombinedAnalysis) -> StudyGuideSection:
        limits = self.config.synthesis.overview
        names = list(analysis.document_names)
        profile = profile_content("\n".join(d.raw_text for d in documents))
        content = (
            f"This study guide combines {len(names)} documents: {format_names(names)}. "
            f"Total content: {analysis.total_words} words, {profile.complexity_level} complexity."
        )
        return StudyGuideSection(
            id=OVERVIEW_SECTION_ID,
            title="Study Overview",
            content=content,
            keywords=analysis.key_terms[: limits.keywords],
            examples=analysis.examples[: limits.examples],
            questions=analysis.questions[: limits.questions],
            annotations=analysis.annotations[: limits.annotations],
            summaries=analysis.key_takeaways[: limits.summaries],
            notes=analysis.study_notes[: limits.notes],
            level=1,
        )

    # Cache management

    def invalidate(self, documents: Iterable[Document]) -> bool:
        """Drop the cached result for a document set."""
        return self.result_cache.delete(compute_fingerprint(documents))

    def clear_cache(self) -> None:
        self.result_cache.clear()
        logger.info("Result cache cleared")
