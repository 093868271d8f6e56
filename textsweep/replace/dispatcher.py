"""
Replacement dispatcher: turns a replacement mode into per-document rewrites.
"""

import asyncio
import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from ..search.code_search import SEARCH_BATCH_SIZE
from ..search.models import MatchRecord, MatchRegistry, SearchOptions
from ..search.pattern_matcher import DEFAULT_PATTERN_TIMEOUT, CompiledPattern, PatternCompiler
from .models import (
    ReplaceCorpus,
    ReplaceDocument,
    ReplacementMode,
    ReplacementOutcome,
    ReplaceOne,
    ReplaceSelected,
    RewriteResult,
)
from .rewriter import DocumentRewriter
from .template import has_expansion_tokens

# (registry index or None when replacing by value, record)
Entry = Tuple[Optional[int], MatchRecord]


class ReplacementDispatcher:
    """
    Groups the matches a replacement mode names by document and rewrites each
    document independently.

    Failures are collected per document on the outcome; only an invalid
    pattern aborts the whole dispatch.
    """

    def __init__(self,
                 store,
                 compiler: Optional[PatternCompiler] = None,
                 rewriter: Optional[DocumentRewriter] = None,
                 notifier=None,
                 batch_size: int = SEARCH_BATCH_SIZE,
                 pattern_timeout: float = DEFAULT_PATTERN_TIMEOUT,
                 failure_summary_threshold: int = 5):
        """Initialize the replacement dispatcher."""
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.compiler = compiler or PatternCompiler()
        self.rewriter = rewriter or DocumentRewriter(store, self.compiler, pattern_timeout)
        self.notifier = notifier
        self.batch_size = batch_size
        self.failure_summary_threshold = failure_summary_threshold
        self.logger = logging.getLogger("textsweep.dispatcher")

    async def dispatch(self,
                       mode: ReplacementMode,
                       registry: MatchRegistry,
                       template: str,
                       options: SearchOptions) -> ReplacementOutcome:
        """
        Apply ``template`` to the matches selected by ``mode``.

        Args:
            mode: Which matches to replace
            registry: Result of the scan the matches came from
            template: Replacement template
            options: Options the scan ran with

        Returns:
            ReplacementOutcome describing partial or full success

        Raises:
            InvalidPatternError: If a recorded pattern no longer compiles
        """
        started = time.monotonic()
        outcome = ReplacementOutcome(mode=mode)

        buckets = self.group_by_document(mode, registry, outcome.errors)

        # Compile up front so a bad pattern aborts before any document changes
        patterns: Dict[str, CompiledPattern] = {}
        for entries in buckets.values():
            for _, record in entries:
                if record.pattern not in patterns:
                    patterns[record.pattern] = self.compiler.compile(record.pattern, options)

        semaphore = asyncio.Semaphore(self.batch_size)
        documents = list(buckets)
        results = await asyncio.gather(*[
            self._rewrite_document(semaphore, document, buckets[document], template, options,
                                   patterns, mode.replace_all_in_document, outcome)
            for document in documents
        ])

        affected = outcome.affected
        for document, document_results in zip(documents, results):
            indices = {record: index for index, record in buckets[document]}
            for result in document_results:
                outcome.total_replacements += result.replacements
                outcome.skipped += len(result.skipped)
                for record in result.applied:
                    if indices.get(record) is not None:
                        affected.replaced_indices.append(indices[record])
                if result.written:
                    affected.modified_documents.add(document)
                    affected.modified_lines.setdefault(document, set()).update(result.modified_lines)

        affected.replaced_indices.sort()
        outcome.failed_documents.sort()
        affected.requires_full_revalidation = (
            isinstance(mode, ReplaceCorpus)
            or (options.use_regex and has_expansion_tokens(template))
        )
        outcome.documents_modified = len(affected.modified_documents)
        outcome.duration_ms = int((time.monotonic() - started) * 1000)

        self.logger.info(
            f"Replacement ({mode.kind}) finished: {outcome.total_replacements} replacements in "
            f"{outcome.documents_modified} documents, {len(outcome.errors)} errors"
        )
        self._notify(outcome, registry)
        return outcome

    def group_by_document(self,
                          mode: ReplacementMode,
                          registry: MatchRegistry,
                          errors: List[str]) -> Dict[str, List[Entry]]:
        """Partition the matches named by ``mode`` into per-document buckets."""
        buckets: Dict[str, List[Entry]] = defaultdict(list)

        if isinstance(mode, ReplaceOne):
            buckets[mode.match.document].append((registry.index_of(mode.match), mode.match))
        elif isinstance(mode, ReplaceSelected):
            for index in sorted(mode.indices):
                if 0 <= index < len(registry):
                    record = registry[index]
                    buckets[record.document].append((index, record))
                else:
                    errors.append(f"Match index {index} is out of range")
        elif isinstance(mode, ReplaceDocument):
            for index, record in registry.indexed():
                if record.document == mode.document:
                    buckets[record.document].append((index, record))
        elif isinstance(mode, ReplaceCorpus):
            for index, record in registry.indexed():
                buckets[record.document].append((index, record))
        else:
            raise TypeError(f"Unknown replacement mode: {mode!r}")

        return dict(buckets)

    async def _rewrite_document(self,
                                semaphore: asyncio.Semaphore,
                                document: str,
                                entries: List[Entry],
                                template: str,
                                options: SearchOptions,
                                patterns: Dict[str, CompiledPattern],
                                replace_all: bool,
                                outcome: ReplacementOutcome) -> List[RewriteResult]:
        by_pattern: Dict[str, List[MatchRecord]] = defaultdict(list)
        for _, record in entries:
            by_pattern[record.pattern].append(record)

        results = []
        async with semaphore:
            try:
                for pattern, records in by_pattern.items():
                    results.append(await self.rewriter.rewrite(
                        document, records, template, options,
                        replace_all_in_document=replace_all,
                        compiled=patterns[pattern]
                    ))
            except Exception as e:
                self.logger.error(f"Failed to rewrite {document}: {e}")
                outcome.errors.append(f"{document}: {e}")
                outcome.failed_documents.append(document)
            finally:
                await asyncio.sleep(0)
        return results

    def _notify(self, outcome: ReplacementOutcome, registry: MatchRegistry):
        if self.notifier is None:
            return

        if outcome.total_replacements > 0:
            # A capped registry never covers the whole corpus
            if isinstance(outcome.mode, ReplaceCorpus) and not registry.truncated:
                self.notifier.notify("All matches replaced")
            else:
                noun = "match" if outcome.total_replacements == 1 else "matches"
                self.notifier.notify(f"{outcome.total_replacements} {noun} replaced")

        if outcome.failed_documents:
            self.notifier.notify(outcome.failure_summary(self.failure_summary_threshold))
