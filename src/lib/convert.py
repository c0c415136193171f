"""
Conversion entry points

One-call wrappers over the Parser -> Extractor -> Serializer pipeline plus
seq-json (de)serialization of documents:

    seqn_toDocument(text)      SeqN text  -> Document
    document_toSeqn(document)  Document   -> SeqN text
    document_fromJson(text)    seq-json   -> Document
    document_toJson(document)  Document   -> seq-json
    seqn_toJson(text)          SeqN text  -> seq-json
    json_toSeqn(text)          seq-json   -> SeqN text
"""

import json

from pydantic import ValidationError

from ..models.document import Document
from .errors import ExtractionError
from .extractor import Extractor
from .parser import Parser
from .serializer import Serializer


def seqn_toDocument(text: str, debug: bool = False) -> Document:
    """
    Compile SeqN text into a Document

    Raises:
        SeqnParseError: If the text violates the grammar
        ExtractionError: If the text does not describe a valid document
    """
    return Extractor(Parser(text, debug=debug).parse()).extract()


def document_toSeqn(document: Document) -> str:
    """
    Decompile a Document into canonical SeqN text

    Raises:
        SerializationError: If the document cannot be rendered
    """
    return Serializer(document).serialize()


def document_fromJson(text: str) -> Document:
    """
    Read a seq-json document

    Raises:
        ExtractionError: If the JSON is malformed or not a valid document
    """
    try:
        return Document.model_validate_json(text)
    except ValidationError as e:
        raise ExtractionError(f"Invalid sequence document: {e}") from e


def document_toJson(document: Document, indent: int = 2) -> str:
    """Write a Document as seq-json, omitting unset optional fields."""
    return json.dumps(document.json_dump(), indent=indent, ensure_ascii=False)


def seqn_toJson(text: str, indent: int = 2) -> str:
    return document_toJson(seqn_toDocument(text), indent=indent)


def json_toSeqn(text: str) -> str:
    return document_toSeqn(document_fromJson(text))
