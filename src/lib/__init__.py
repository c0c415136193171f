"""
seqn - SeqN sequencing language compiler and decompiler

Converts between SeqN text and sequence documents.
"""

__version__ = "1.0.0"

from .parser import Parser, grammar_load
from .extractor import Extractor
from .serializer import Serializer
from .convert import (
    seqn_toDocument,
    document_toSeqn,
    document_fromJson,
    document_toJson,
    seqn_toJson,
    json_toSeqn,
)
from .errors import SeqnError, FormatError, SeqnParseError, ExtractionError, SerializationError
from .log import LOG, WARN, state_connectToLogger

__all__ = [
    "Parser",
    "grammar_load",
    "Extractor",
    "Serializer",
    "seqn_toDocument",
    "document_toSeqn",
    "document_fromJson",
    "document_toJson",
    "seqn_toJson",
    "json_toSeqn",
    "SeqnError",
    "FormatError",
    "SeqnParseError",
    "ExtractionError",
    "SerializationError",
    "LOG",
    "WARN",
    "state_connectToLogger",
    "__version__",
]
