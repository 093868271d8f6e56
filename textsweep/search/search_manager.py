"""
Search manager that coordinates the pattern compiler, the document scanner
and the replacement engine behind one caller-facing surface.
"""

import logging
import time
from typing import Iterable, Optional

from ..collaborators import DocumentStore, HistoryKind, HistoryRecorder, Notifier
from ..config import Config
from ..replace.dispatcher import ReplacementDispatcher
from ..replace.models import ReplacementMode, ReplacementOutcome
from ..replace.rewriter import DocumentRewriter
from ..replace.template import validate_replacement_text
from .code_search import DocumentScanner
from .file_search import DocumentFilter
from .models import MatchRegistry, SearchOptions, SearchStatistics
from .pattern_matcher import PatternCompiler


class SearchManager:
    """
    Find and replace across the documents of one store.

    Owns a single pattern compiler shared by scanning and replacement.
    Callers running unrelated searches concurrently should each use their
    own manager.
    """

    def __init__(self,
                 store: DocumentStore,
                 config: Optional[Config] = None,
                 notifier: Optional[Notifier] = None,
                 history: Optional[HistoryRecorder] = None):
        """Initialize the search manager."""
        self.store = store
        self.config = config or Config()
        self.notifier = notifier
        self.history = history
        self.logger = logging.getLogger("textsweep.search")

        batch_size = self.config.get_batch_size()
        pattern_timeout = self.config.get_pattern_timeout()
        self.failure_summary_threshold = self.config.get_failure_summary_threshold()

        self.compiler = PatternCompiler()
        self.scanner = DocumentScanner(store, self.compiler, batch_size, pattern_timeout)
        self.dispatcher = ReplacementDispatcher(
            store,
            compiler=self.compiler,
            rewriter=DocumentRewriter(store, self.compiler, pattern_timeout),
            notifier=notifier,
            batch_size=batch_size,
            pattern_timeout=pattern_timeout,
            failure_summary_threshold=self.failure_summary_threshold
        )
        self.last_statistics: Optional[SearchStatistics] = None

    async def scan(self,
                   query: str,
                   options: Optional[SearchOptions] = None,
                   documents: Optional[Iterable[str]] = None,
                   document_filter: Optional[DocumentFilter] = None,
                   max_results: Optional[int] = None) -> MatchRegistry:
        """
        Scan documents for ``query`` and cap the result at the configured maximum.

        Args:
            query: Search text or regular expression
            options: Search flags; configured defaults when omitted
            documents: Documents to scan; the whole store when omitted
            document_filter: Restricts which documents are scanned
            max_results: Result cap; the configured value when omitted, 0 for none

        Returns:
            Ordered MatchRegistry, marked ``truncated`` when capped

        Raises:
            InvalidPatternError: If the query does not compile
        """
        options = options or self.config.get_search_options()
        start_time = time.monotonic()

        registry = await self.scanner.scan(query, options, documents, document_filter)
        if max_results is None:
            max_results = self.config.get_max_results()
        registry = registry.limit(max_results)

        duration_ms = int((time.monotonic() - start_time) * 1000)
        self.last_statistics = registry.statistics(duration_ms)

        if registry.truncated:
            self.logger.info(f"Results for {query!r} truncated to {len(registry)}")
        if registry.failures and self.notifier is not None:
            self.notifier.notify(registry.failure_summary(self.failure_summary_threshold))
        if self.history is not None and query and query.strip():
            self.history.record(HistoryKind.SEARCH, query)

        return registry

    def validate(self, query: str, options: Optional[SearchOptions] = None) -> bool:
        return self.compiler.validate(query, options or self.config.get_search_options())

    async def dispatch(self,
                       mode: ReplacementMode,
                       registry: MatchRegistry,
                       template: str,
                       options: Optional[SearchOptions] = None) -> ReplacementOutcome:
        """
        Replace the matches ``mode`` selects from ``registry`` with ``template``.

        Template warnings (suspicious ``$`` usage) are attached to the outcome,
        as is a warning when a whole-document or corpus replacement runs on a
        capped registry; scan with ``max_results=0`` to replace every match.

        Raises:
            InvalidPatternError: If a recorded pattern does not compile
        """
        options = options or self.config.get_search_options()
        validation = validate_replacement_text(template, options)
        warnings = list(validation.warnings)
        if registry.truncated and mode.replace_all_in_document:
            warnings.append(
                f"Results were capped at {len(registry)} matches; "
                f"matches beyond the cap were not replaced"
            )
        for warning in warnings:
            self.logger.warning(warning)

        outcome = await self.dispatcher.dispatch(mode, registry, template, options)
        outcome.warnings.extend(warnings)

        if self.history is not None:
            self.history.record(HistoryKind.REPLACE, template)
        return outcome

    def clear_pattern_cache(self) -> None:
        self.compiler.clear_cache()
