"""
Pattern compilation and time-bounded pattern execution.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import regex

from .errors import InvalidPatternError, PatternTimeoutError
from .models import SearchOptions

DEFAULT_PATTERN_TIMEOUT = 5.0

# Anchors, lookarounds or explicit word boundaries already present in a pattern
BOUNDARY_PATTERN = regex.compile(r"(^\\b|\\b$|\^|\$|\(\?<!|\(\?=|\(\?!|\(\?<=)")

# Sources treated as "every non-blank line is one match"
MATCH_EVERYTHING_SOURCES = frozenset({".", ".*"})


@dataclass(frozen=True)
class CompiledPattern:
    """An executable pattern plus the key it was built from."""
    query: str
    options: SearchOptions
    source: str
    compiled: "regex.Pattern"
    cache_key: str

    @property
    def matches_everything(self) -> bool:
        return (self.options.use_regex
                and not self.options.spans_lines
                and self.source in MATCH_EVERYTHING_SOURCES)


class Deadline:
    """Wall-clock budget shared by every pattern call for one document."""

    def __init__(self, budget: float = DEFAULT_PATTERN_TIMEOUT, document: Optional[str] = None):
        self.budget = budget
        self.document = document
        self.expires_at = time.monotonic() + budget

    def remaining(self) -> float:
        remaining = self.expires_at - time.monotonic()
        if remaining <= 0:
            raise PatternTimeoutError(self.document, self.budget)
        return remaining


def bounded_search(pattern: "regex.Pattern", text: str, pos: int, deadline: Deadline):
    """Run ``pattern.search`` from ``pos`` without exceeding ``deadline``."""
    try:
        return pattern.search(text, pos, timeout=deadline.remaining())
    except TimeoutError:
        raise PatternTimeoutError(deadline.document, deadline.budget) from None


def bounded_subn(pattern: "regex.Pattern",
                 replacement: Callable,
                 text: str,
                 deadline: Deadline) -> Tuple[str, int]:
    """Run ``pattern.subn`` over ``text`` without exceeding ``deadline``."""
    try:
        return pattern.subn(replacement, text, timeout=deadline.remaining())
    except TimeoutError:
        raise PatternTimeoutError(deadline.document, deadline.budget) from None


class PatternCompiler:
    """Turns a query and its options into a compiled pattern.

    Holds a single cache slot keyed by (query, options). Each logically
    independent caller should own its own compiler: a compile for a new key
    replaces whatever the slot held before.
    """

    def __init__(self):
        """Initialize the pattern compiler."""
        self._cached: Optional[CompiledPattern] = None
        self.logger = logging.getLogger("textsweep.patterns")

    @property
    def cached(self) -> Optional[CompiledPattern]:
        return self._cached

    def compile(self, query: str, options: SearchOptions) -> CompiledPattern:
        """
        Compile ``query`` under ``options``, reusing the cached pattern on a key hit.

        Args:
            query: Raw search text or regular expression
            options: Search flags

        Returns:
            CompiledPattern ready for execution

        Raises:
            InvalidPatternError: If the resulting expression does not parse
        """
        cache_key = options.cache_key(query)

        if self._cached is not None and self._cached.cache_key == cache_key:
            self.logger.debug(f"Pattern cache hit for {query!r}")
            return self._cached

        source = self.build_source(query, options)
        try:
            compiled = regex.compile(source, self.build_flags(options))
        except regex.error as e:
            raise InvalidPatternError(query, str(e)) from e

        self.logger.debug(f"Compiled pattern {source!r} for {query!r}")
        self._cached = CompiledPattern(
            query=query,
            options=options,
            source=source,
            compiled=compiled,
            cache_key=cache_key
        )
        return self._cached

    def validate(self, query: str, options: SearchOptions) -> bool:
        """Check whether ``query`` can be searched for under ``options``."""
        if not query or not query.strip():
            return False
        try:
            self.compile(query, options)
        except InvalidPatternError:
            return False
        return True

    def clear_cache(self) -> None:
        self._cached = None

    @staticmethod
    def build_source(query: str, options: SearchOptions) -> str:
        """Build the expression source for ``query``: escaping, then word boundaries."""
        pattern = query or ""

        if not options.use_regex:
            pattern = regex.escape(pattern)

        if options.whole_word and not BOUNDARY_PATTERN.search(pattern):
            # Non-capturing group keeps user group numbers stable for $1..$N
            if options.use_regex:
                pattern = rf"\b(?:{pattern})\b"
            else:
                pattern = rf"\b{pattern}\b"

        return pattern

    @staticmethod
    def build_flags(options: SearchOptions) -> int:
        flags = regex.V0
        if not options.match_case:
            flags |= regex.IGNORECASE
        if options.multiline:
            flags |= regex.MULTILINE
        return flags
