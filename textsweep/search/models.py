"""
Data model shared by the scanner and the replacement engine.
"""

import json
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, overload

DocumentRef = str


@dataclass(frozen=True)
class SearchOptions:
    """Flags controlling how a query is interpreted."""
    match_case: bool = False
    whole_word: bool = False
    use_regex: bool = False
    multiline: bool = False

    @property
    def uses_pattern(self) -> bool:
        """False only for case-sensitive substring search; everything else goes through the compiled pattern."""
        return self.use_regex or self.whole_word or not self.match_case

    @property
    def spans_lines(self) -> bool:
        """Multi-line matching is only meaningful for regular expressions."""
        return self.use_regex and self.multiline

    def cache_key(self, query: str) -> str:
        return json.dumps({"query": query, "options": asdict(self)}, sort_keys=True)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "SearchOptions":
        data = data or {}
        return cls(
            match_case=bool(data.get("match_case", False)),
            whole_word=bool(data.get("whole_word", False)),
            use_regex=bool(data.get("use_regex", False)),
            multiline=bool(data.get("multiline", False)),
        )


@dataclass(frozen=True)
class MatchRecord:
    """One located occurrence of a pattern within a document.

    ``content`` is the line the match starts on; ``col`` is the start offset
    within it. For multi-line matches ``match_text`` may contain line breaks
    and therefore run past the end of ``content``.
    """
    document: DocumentRef
    line: int
    col: int
    content: str
    match_text: str
    pattern: str

    @property
    def end_line(self) -> int:
        return self.line + self.match_text.count("\n")

    def sort_key(self):
        return (self.document, self.line, self.col)


@dataclass(frozen=True)
class ScanFailure:
    """A document that could not be scanned."""
    document: DocumentRef
    reason: str


@dataclass
class SearchStatistics:
    total_results: int
    documents_with_results: int
    duration_ms: int
    average_results_per_document: float


def summarize_failed_documents(documents: Sequence[str], threshold: int = 5, action: str = "scanned") -> str:
    """Describe failed documents: the failing paths when few, a count when many."""
    if not documents:
        return ""
    if len(documents) > threshold:
        return f"{len(documents)} documents could not be {action}"
    noun = "document" if len(documents) == 1 else "documents"
    return f"{len(documents)} {noun} could not be {action}: {', '.join(documents)}"


class MatchRegistry(Sequence[MatchRecord]):
    """Ordered collection of match records produced by one scan.

    Records are kept sorted by (document, line, column); indices into the
    registry are stable for its lifetime and are what selections refer to.
    """

    def __init__(self,
                 records: Iterable[MatchRecord] = (),
                 failures: Iterable[ScanFailure] = (),
                 truncated: bool = False):
        self._records: List[MatchRecord] = sorted(records, key=MatchRecord.sort_key)
        self.failures: List[ScanFailure] = list(failures)
        self.truncated = truncated

    @overload
    def __getitem__(self, index: int) -> MatchRecord: ...

    @overload
    def __getitem__(self, index: slice) -> List[MatchRecord]: ...

    def __getitem__(self, index):
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[MatchRecord]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"MatchRegistry({len(self._records)} matches, {len(self.failures)} failures)"

    def documents(self) -> List[DocumentRef]:
        """Documents with at least one match, in registry order."""
        seen: Dict[DocumentRef, None] = {}
        for record in self._records:
            seen.setdefault(record.document, None)
        return list(seen)

    def for_document(self, document: DocumentRef) -> List[MatchRecord]:
        return [record for record in self._records if record.document == document]

    def indexed(self) -> Iterator:
        return enumerate(self._records)

    def index_of(self, record: MatchRecord) -> Optional[int]:
        try:
            return self._records.index(record)
        except ValueError:
            return None

    def first(self) -> Optional[MatchRecord]:
        return self._records[0] if self._records else None

    def next_after(self, index: int) -> Optional[MatchRecord]:
        """The match following ``index``, wrapping to the first one."""
        if not self._records:
            return None
        return self._records[(index + 1) % len(self._records)]

    def limit(self, max_results: int) -> "MatchRegistry":
        """A copy holding at most ``max_results`` records (0 means no limit)."""
        if max_results <= 0 or len(self._records) <= max_results:
            return self
        return MatchRegistry(self._records[:max_results], self.failures, truncated=True)

    def failure_summary(self, threshold: int = 5) -> str:
        return summarize_failed_documents([f.document for f in self.failures], threshold, "scanned")

    def statistics(self, duration_ms: int = 0) -> SearchStatistics:
        documents = len(self.documents())
        return SearchStatistics(
            total_results=len(self._records),
            documents_with_results=documents,
            duration_ms=duration_ms,
            average_results_per_document=(len(self._records) / documents) if documents else 0.0
        )
