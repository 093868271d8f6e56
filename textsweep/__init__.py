"""
textsweep - find and replace across many text documents

Scans a corpus for literal or regular-expression queries and applies
replacements back to the documents, with capture-group templates.
"""

__version__ = "1.0.1"
__description__ = "Find and replace across many text documents"

from .search.search_manager import SearchManager

__all__ = ["SearchManager"]
