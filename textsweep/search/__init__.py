"""
Search utilities for textsweep: pattern compilation, document filtering and scanning.
"""

from .code_search import DocumentScanner
from .errors import (
    DocumentIOError,
    InvalidPatternError,
    PatternTimeoutError,
    PositionMismatchWarning,
    TextSweepError,
)
from .file_search import DocumentFilter
from .models import MatchRecord, MatchRegistry, ScanFailure, SearchOptions, SearchStatistics
from .pattern_matcher import CompiledPattern, PatternCompiler

__all__ = [
    'CompiledPattern',
    'DocumentFilter',
    'DocumentIOError',
    'DocumentScanner',
    'InvalidPatternError',
    'MatchRecord',
    'MatchRegistry',
    'PatternCompiler',
    'PatternTimeoutError',
    'PositionMismatchWarning',
    'ScanFailure',
    'SearchOptions',
    'SearchStatistics',
    'TextSweepError',
]
