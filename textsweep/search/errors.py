"""
Exception types raised by the search and replacement engines.
"""

from typing import Any, Dict, Optional


class TextSweepError(Exception):
    """Base error for textsweep operations."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to error dictionary."""
        error = {
            "type": type(self).__name__,
            "message": self.message
        }
        if self.data:
            error["data"] = self.data
        return error


class InvalidPatternError(TextSweepError):
    """The query could not be compiled into a pattern."""

    def __init__(self, pattern: str, reason: str = ""):
        message = f"Invalid regular expression pattern: {pattern!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, {"pattern": pattern, "reason": reason})
        self.pattern = pattern


class PatternTimeoutError(TextSweepError):
    """Pattern execution exceeded its wall-clock budget."""

    def __init__(self, document: Optional[str], timeout: float):
        where = f" in {document}" if document else ""
        super().__init__(
            f"Pattern execution timed out after {timeout:g}s{where}",
            {"document": document, "timeout": timeout}
        )
        self.document = document
        self.timeout = timeout


class DocumentIOError(TextSweepError):
    """A document could not be read or written."""

    def __init__(self, document: str, reason: str):
        super().__init__(
            f"Cannot access document {document}: {reason}",
            {"document": document, "reason": reason}
        )
        self.document = document
        self.reason = reason


class PositionMismatchWarning(UserWarning):
    """Recorded match text no longer sits at its stored offset."""
