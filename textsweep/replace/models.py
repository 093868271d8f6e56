"""
Replacement modes and the results reported back to callers.
"""

from dataclasses import dataclass, field
from typing import ClassVar, Dict, FrozenSet, List, Set, Union

from ..search.models import DocumentRef, MatchRecord, summarize_failed_documents


@dataclass(frozen=True)
class ReplaceOne:
    """Replace a single match, given by value."""
    match: MatchRecord
    kind: ClassVar[str] = "one"
    replace_all_in_document: ClassVar[bool] = False


@dataclass(frozen=True)
class ReplaceSelected:
    """Replace the matches at the given registry indices."""
    indices: FrozenSet[int]
    kind: ClassVar[str] = "selected"
    replace_all_in_document: ClassVar[bool] = False

    def __post_init__(self):
        object.__setattr__(self, "indices", frozenset(self.indices))


@dataclass(frozen=True)
class ReplaceDocument:
    """Replace every match found in one document."""
    document: DocumentRef
    kind: ClassVar[str] = "document"
    replace_all_in_document: ClassVar[bool] = True


@dataclass(frozen=True)
class ReplaceCorpus:
    """Replace every match found in the scan."""
    kind: ClassVar[str] = "corpus"
    replace_all_in_document: ClassVar[bool] = True


ReplacementMode = Union[ReplaceOne, ReplaceSelected, ReplaceDocument, ReplaceCorpus]


@dataclass
class RewriteResult:
    """What the rewriter did to one document."""
    document: DocumentRef
    replacements: int = 0
    applied: List[MatchRecord] = field(default_factory=list)
    skipped: List[MatchRecord] = field(default_factory=list)
    modified_lines: Set[int] = field(default_factory=set)
    written: bool = False


@dataclass
class AffectedMatches:
    """Which displayed results a replacement touched.

    ``requires_full_revalidation`` means offsets of untouched matches can no
    longer be trusted and the caller should re-scan instead of patching its
    result list.
    """
    replaced_indices: List[int] = field(default_factory=list)
    modified_documents: Set[DocumentRef] = field(default_factory=set)
    modified_lines: Dict[DocumentRef, Set[int]] = field(default_factory=dict)
    requires_full_revalidation: bool = False


@dataclass
class ReplacementOutcome:
    """Aggregate result of one dispatch."""
    mode: ReplacementMode
    total_replacements: int = 0
    documents_modified: int = 0
    duration_ms: int = 0
    errors: List[str] = field(default_factory=list)
    affected: AffectedMatches = field(default_factory=AffectedMatches)
    failed_documents: List[DocumentRef] = field(default_factory=list)
    skipped: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def failure_summary(self, threshold: int = 5) -> str:
        return summarize_failed_documents(self.failed_documents, threshold, "updated")
