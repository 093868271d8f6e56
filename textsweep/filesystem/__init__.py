"""
Document stores for textsweep.
"""

from .document_store import FileSystemDocumentStore, InMemoryDocumentStore

__all__ = ['FileSystemDocumentStore', 'InMemoryDocumentStore']
