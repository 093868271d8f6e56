"""
Interfaces the engines need from the host application.
"""

from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Protocol, runtime_checkable

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from .search.file_search import DocumentFilter


@runtime_checkable
class DocumentStore(Protocol):
    """Owns document content. Reads and writes may suspend."""

    async def list_documents(self, document_filter: Optional["DocumentFilter"] = None) -> List[str]:
        ...

    async def read_document(self, document: str) -> str:
        """Raises DocumentIOError on a missing or unreadable document."""
        ...

    async def write_document(self, document: str, content: str) -> None:
        """Raises DocumentIOError on write failure."""
        ...


class Notifier(Protocol):
    """Best-effort user feedback."""

    def notify(self, message: str) -> None:
        ...


class HistoryKind(Enum):
    SEARCH = "search"
    REPLACE = "replace"


class HistoryRecorder(Protocol):
    """Append-only history of queries and templates."""

    def record(self, kind: HistoryKind, text: str) -> None:
        ...


class ConsoleNotifier:
    """Prints notifications on a rich console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def notify(self, message: str) -> None:
        self.console.print(f"[green]✓ {escape(message)}[/green]")
