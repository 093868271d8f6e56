"""
Document stores backing scans and rewrites: in-memory and on-disk.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from ..search.errors import DocumentIOError
from ..search.file_search import DocumentFilter

# Directories never walked by the filesystem store
IGNORED_DIRECTORIES = {
    '.git', '.svn', '.hg', '.bzr',
    'node_modules', 'venv', 'env', '.env', '__pycache__',
    '.pytest_cache', '.tox', '.idea', '.vscode',
}


class InMemoryDocumentStore:
    """Documents held in a dictionary keyed by path.

    ``fail_reads_for`` and ``fail_writes_for`` name documents whose reads or
    writes raise ``DocumentIOError``, for exercising partial-failure paths.
    """

    def __init__(self, documents: Optional[Dict[str, str]] = None):
        self.documents: Dict[str, str] = dict(documents or {})
        self.fail_reads_for: Set[str] = set()
        self.fail_writes_for: Set[str] = set()
        self.write_count = 0

    async def list_documents(self, document_filter: Optional[DocumentFilter] = None) -> List[str]:
        paths = sorted(self.documents)
        return document_filter.apply(paths) if document_filter else paths

    async def read_document(self, document: str) -> str:
        if document in self.fail_reads_for:
            raise DocumentIOError(document, "read failed")
        if document not in self.documents:
            raise DocumentIOError(document, "no such document")
        return self.documents[document]

    async def write_document(self, document: str, content: str) -> None:
        if document in self.fail_writes_for:
            raise DocumentIOError(document, "write failed")
        self.documents[document] = content
        self.write_count += 1

    def add(self, document: str, content: str) -> None:
        self.documents[document] = content

    def content(self, document: str) -> str:
        return self.documents[document]


class FileSystemDocumentStore:
    """
    Text files below a root directory, addressed by POSIX relative path.

    Blocking file access runs in worker threads so reads and writes suspend
    the calling coroutine instead of the event loop.
    """

    def __init__(self, root: Union[str, Path] = None, encoding: str = "utf-8"):
        """Initialize the filesystem store."""
        self.root = Path(root) if root else Path.cwd()
        self.encoding = encoding
        self.logger = logging.getLogger("textsweep.filesystem")

    async def list_documents(self, document_filter: Optional[DocumentFilter] = None) -> List[str]:
        paths = await asyncio.to_thread(self._walk)
        return document_filter.apply(paths) if document_filter else paths

    async def read_document(self, document: str) -> str:
        """
        Read the complete contents of a document.

        Raises:
            DocumentIOError: If the file cannot be read or decoded
        """
        path = self._resolve(document)
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error(f"Failed to read document {document}: {e}")
            raise DocumentIOError(document, str(e)) from e

    async def write_document(self, document: str, content: str) -> None:
        """
        Overwrite a document with ``content``.

        Raises:
            DocumentIOError: If the file cannot be written
        """
        path = self._resolve(document)
        try:
            await asyncio.to_thread(self._write, path, content)
        except (OSError, UnicodeEncodeError) as e:
            self.logger.error(f"Failed to write document {document}: {e}")
            raise DocumentIOError(document, str(e)) from e
        self.logger.info(f"Successfully wrote document: {document}")

    def _resolve(self, document: str) -> Path:
        path = (self.root / document).resolve()
        root = self.root.resolve()
        if path != root and root not in path.parents:
            raise DocumentIOError(document, "path escapes the store root")
        return path

    def _read(self, path: Path) -> str:
        # newline="" keeps \r\n intact so writes round-trip line endings
        with open(path, 'r', encoding=self.encoding, newline='') as f:
            return f.read()

    def _write(self, path: Path, content: str) -> None:
        with open(path, 'w', encoding=self.encoding, newline='') as f:
            f.write(content)

    def _walk(self) -> List[str]:
        documents = []
        for root, dirs, files in os.walk(self.root):
            # Skip hidden directories and common ignore patterns
            dirs[:] = [d for d in dirs if not d.startswith('.') and d not in IGNORED_DIRECTORIES]
            root_path = Path(root)
            for file_name in files:
                if file_name.startswith('.'):
                    continue
                documents.append((root_path / file_name).relative_to(self.root).as_posix())
        return sorted(documents)
