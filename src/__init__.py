"""
seqn - SeqN sequencing language compiler and decompiler

Parses SeqN spacecraft command sequences into typed sequence documents and
renders documents back into canonical SeqN text.
"""

__version__ = "1.0.0"

from .lib import (
    Parser,
    Extractor,
    Serializer,
    seqn_toDocument,
    document_toSeqn,
    document_fromJson,
    document_toJson,
    SeqnError,
    LOG,
    state_connectToLogger,
)
from .models import Document

__all__ = [
    "Parser",
    "Extractor",
    "Serializer",
    "seqn_toDocument",
    "document_toSeqn",
    "document_fromJson",
    "document_toJson",
    "SeqnError",
    "Document",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
