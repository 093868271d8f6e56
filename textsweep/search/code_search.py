"""
Document scanner: applies a query to a set of documents with bounded concurrency.
"""

import asyncio
import bisect
import logging
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional, Tuple

from .errors import DocumentIOError, PatternTimeoutError
from .file_search import DocumentFilter
from .models import MatchRecord, MatchRegistry, ScanFailure, SearchOptions
from .pattern_matcher import (
    DEFAULT_PATTERN_TIMEOUT,
    CompiledPattern,
    Deadline,
    PatternCompiler,
    bounded_search,
)

if TYPE_CHECKING:
    from ..collaborators import DocumentStore

SEARCH_BATCH_SIZE = 10


def iter_pattern_matches(compiled: CompiledPattern, text: str, deadline: Deadline) -> Iterator:
    """Yield the non-empty matches of ``compiled`` in ``text``, left to right.

    Zero-length matches are stepped over one character at a time so the loop
    always makes progress.
    """
    pattern = compiled.compiled
    pos = 0
    while pos <= len(text):
        match = bounded_search(pattern, text, pos, deadline)
        if match is None:
            return
        if match.end() == match.start():
            pos = match.end() + 1
            continue
        yield match
        pos = match.end()


def iter_literal_matches(line: str, needle: str) -> Iterator[int]:
    """Yield start offsets of ``needle`` in ``line``, case-sensitively and without overlap."""
    start = 0
    while True:
        index = line.find(needle, start)
        if index == -1:
            return
        yield index
        start = index + max(len(needle), 1)


class LineIndex:
    """Maps absolute character offsets to (line, column)."""

    def __init__(self, text: str):
        self.starts = [0]
        self.starts.extend(i + 1 for i, ch in enumerate(text) if ch == "\n")

    def locate(self, offset: int) -> Tuple[int, int]:
        line = bisect.bisect_right(self.starts, offset) - 1
        return line, offset - self.starts[line]


class DocumentScanner:
    """Scans documents for a query and produces ordered match records."""

    def __init__(self,
                 store: "DocumentStore",
                 compiler: Optional[PatternCompiler] = None,
                 batch_size: int = SEARCH_BATCH_SIZE,
                 pattern_timeout: float = DEFAULT_PATTERN_TIMEOUT):
        """Initialize the document scanner."""
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.compiler = compiler or PatternCompiler()
        self.batch_size = batch_size
        self.pattern_timeout = pattern_timeout
        self.logger = logging.getLogger("textsweep.scanner")

    async def scan(self,
                   query: str,
                   options: SearchOptions,
                   documents: Optional[Iterable[str]] = None,
                   document_filter: Optional[DocumentFilter] = None) -> MatchRegistry:
        """
        Search ``documents`` for ``query``.

        Args:
            query: Search text or regular expression
            options: Search flags
            documents: Documents to scan; all documents of the store when omitted
            document_filter: Pre-pass restricting which documents are read

        Returns:
            MatchRegistry ordered by document, line and column; per-document
            failures are listed on its ``failures`` attribute

        Raises:
            InvalidPatternError: If the query does not compile
        """
        if not query or not query.strip():
            return MatchRegistry()

        # Compile before touching any document so a bad query aborts the scan.
        # Case-insensitive literal search uses the pattern too, so it folds
        # case exactly like the rewriter that re-locates its matches.
        compiled = self.compiler.compile(query, options) if options.uses_pattern else None

        if documents is None:
            documents = await self.store.list_documents(document_filter)
        documents = list(documents)
        if document_filter is not None:
            documents = document_filter.apply(documents)

        semaphore = asyncio.Semaphore(self.batch_size)
        outcomes = await asyncio.gather(*[
            self._scan_document(semaphore, document, query, options, compiled)
            for document in documents
        ])

        records: List[MatchRecord] = []
        failures: List[ScanFailure] = []
        for document_records, failure in outcomes:
            records.extend(document_records)
            if failure is not None:
                failures.append(failure)

        registry = MatchRegistry(records, sorted(failures, key=lambda f: f.document))
        self.logger.info(
            f"Scanned {len(documents)} documents for {query!r}: "
            f"{len(registry)} matches, {len(failures)} failures"
        )
        return registry

    async def _scan_document(self,
                             semaphore: asyncio.Semaphore,
                             document: str,
                             query: str,
                             options: SearchOptions,
                             compiled: Optional[CompiledPattern]) -> Tuple[List[MatchRecord], Optional[ScanFailure]]:
        async with semaphore:
            try:
                content = await self.store.read_document(document)
            except (DocumentIOError, OSError) as e:
                self.logger.warning(f"Failed to read document {document}: {e}")
                return [], ScanFailure(document, str(e))

            try:
                records = self.scan_content(document, content, query, options, compiled)
            except PatternTimeoutError as e:
                self.logger.warning(e.message)
                return [], ScanFailure(document, e.message)
            finally:
                # Let other documents make progress between CPU-bound scans
                await asyncio.sleep(0)

        return records, None

    def scan_content(self,
                     document: str,
                     content: str,
                     query: str,
                     options: SearchOptions,
                     compiled: Optional[CompiledPattern] = None) -> List[MatchRecord]:
        """Find every match of ``query`` in one document's ``content``."""
        deadline = Deadline(self.pattern_timeout, document)

        if compiled is None and options.uses_pattern:
            compiled = self.compiler.compile(query, options)

        if compiled is not None and options.spans_lines:
            return self._scan_multiline(document, content, query, compiled, deadline)

        lines = content.split("\n")

        if compiled is not None and compiled.matches_everything:
            return [
                MatchRecord(document, i, 0, line, line, query)
                for i, line in enumerate(lines)
                if line.strip()
            ]

        if compiled is not None:
            return self._scan_lines_with_pattern(document, lines, query, compiled, deadline)

        return self._scan_lines_literal(document, lines, query)

    def _scan_lines_with_pattern(self, document, lines, query, compiled, deadline) -> List[MatchRecord]:
        records = []
        for i, line in enumerate(lines):
            if not line.strip():
                continue
            for match in iter_pattern_matches(compiled, line, deadline):
                records.append(MatchRecord(document, i, match.start(), line, match.group(), query))
        return records

    def _scan_lines_literal(self, document, lines, query) -> List[MatchRecord]:
        records = []
        for i, line in enumerate(lines):
            if not line.strip():
                continue
            for index in iter_literal_matches(line, query):
                records.append(MatchRecord(document, i, index, line, query, query))
        return records

    def _scan_multiline(self, document, content, query, compiled, deadline) -> List[MatchRecord]:
        lines = content.split("\n")
        index = LineIndex(content)
        records = []
        for match in iter_pattern_matches(compiled, content, deadline):
            line, col = index.locate(match.start())
            records.append(MatchRecord(document, line, col, lines[line], match.group(), query))
        return records
