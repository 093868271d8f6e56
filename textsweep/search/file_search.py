"""
Document filtering by extension, folder and glob patterns.
"""

import fnmatch
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Union


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if ext and not ext.startswith('.'):
        ext = '.' + ext
    return ext


def _normalize_folder(folder: str) -> str:
    folder = folder.strip().replace('\\', '/').strip('/')
    return folder + '/' if folder else ''


def parse_list(value: Union[str, Iterable[str], None]) -> List[str]:
    """Split a comma-separated string (or flatten an iterable of them) into entries."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    entries = []
    for item in value:
        entries.extend(part.strip() for part in item.split(',') if part.strip())
    return entries


@dataclass
class DocumentFilter:
    """Restricts the scan set before any document is read.

    A document passes when its extension is allowed, it lives under one of
    the included folders (if any), not under an excluded folder, matches at
    least one include pattern (if any) and no exclude pattern. Patterns are
    matched against both the full path and the file name.
    """
    extensions: List[str] = field(default_factory=list)
    include_folders: List[str] = field(default_factory=list)
    exclude_folders: List[str] = field(default_factory=list)
    include_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.extensions = [e for e in (_normalize_extension(x) for x in self.extensions) if e]
        self.include_folders = [f for f in (_normalize_folder(x) for x in self.include_folders) if f]
        self.exclude_folders = [f for f in (_normalize_folder(x) for x in self.exclude_folders) if f]

    @classmethod
    def from_options(cls,
                     extensions: Union[str, Iterable[str], None] = None,
                     include_folders: Union[str, Iterable[str], None] = None,
                     exclude_folders: Union[str, Iterable[str], None] = None,
                     include_patterns: Union[str, Iterable[str], None] = None,
                     exclude_patterns: Union[str, Iterable[str], None] = None) -> "DocumentFilter":
        """Build a filter from comma-separated strings or lists of them."""
        return cls(
            extensions=parse_list(extensions),
            include_folders=parse_list(include_folders),
            exclude_folders=parse_list(exclude_folders),
            include_patterns=parse_list(include_patterns),
            exclude_patterns=parse_list(exclude_patterns),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.extensions or self.include_folders or self.exclude_folders
                    or self.include_patterns or self.exclude_patterns)

    def matches(self, document: str) -> bool:
        """Check if a document should be scanned."""
        path = document.replace('\\', '/').lstrip('/')
        name = PurePosixPath(path).name

        if self.extensions and PurePosixPath(name).suffix.lower() not in self.extensions:
            return False

        if self.include_folders and not any(path.startswith(f) for f in self.include_folders):
            return False

        if any(path.startswith(f) for f in self.exclude_folders):
            return False

        if self.include_patterns and not self._matches_any(path, name, self.include_patterns):
            return False

        if self._matches_any(path, name, self.exclude_patterns):
            return False

        return True

    def apply(self, documents: Iterable[str]) -> List[str]:
        if self.is_empty:
            return list(documents)
        return [doc for doc in documents if self.matches(doc)]

    def merged_with(self, other: Optional["DocumentFilter"]) -> "DocumentFilter":
        """Combine two filters by concatenating their entries."""
        if other is None:
            return self
        return DocumentFilter(
            extensions=self.extensions + other.extensions,
            include_folders=self.include_folders + other.include_folders,
            exclude_folders=self.exclude_folders + other.exclude_folders,
            include_patterns=self.include_patterns + other.include_patterns,
            exclude_patterns=self.exclude_patterns + other.exclude_patterns,
        )

    @staticmethod
    def _matches_any(path: str, name: str, patterns: List[str]) -> bool:
        for pattern in patterns:
            if "**/" in pattern:
                # Recursive pattern - the file name part decides
                if fnmatch.fnmatch(name, pattern.split("**/")[-1]):
                    return True
            elif fnmatch.fnmatch(path, pattern) or fnmatch.fnmatch(name, pattern):
                return True
        return False
