"""
Replacement engine: template expansion, document rewriting and dispatch.
"""

from .dispatcher import ReplacementDispatcher
from .models import (
    AffectedMatches,
    ReplaceCorpus,
    ReplaceDocument,
    ReplacementMode,
    ReplacementOutcome,
    ReplaceOne,
    ReplaceSelected,
    RewriteResult,
)
from .rewriter import DocumentRewriter
from .template import (
    CapturedMatch,
    ReplacementValidation,
    expand_replacement,
    has_expansion_tokens,
    validate_replacement_text,
)

__all__ = [
    'AffectedMatches',
    'CapturedMatch',
    'DocumentRewriter',
    'ReplaceCorpus',
    'ReplaceDocument',
    'ReplaceOne',
    'ReplaceSelected',
    'ReplacementDispatcher',
    'ReplacementMode',
    'ReplacementOutcome',
    'ReplacementValidation',
    'RewriteResult',
    'expand_replacement',
    'has_expansion_tokens',
    'validate_replacement_text',
]
