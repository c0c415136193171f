"""
Extractor-specific data models

Intermediate values the Extractor builds from parse tree nodes before they
are folded into their owning document node. A directive line such as
``@ENGINE 2`` becomes an ``EngineEntry``; the enclosing ``step`` then
decides where it belongs (and whether it is allowed there).
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional


@dataclass(frozen=True)
class IdEntry:
    """``@ID "name"``"""
    id: str


@dataclass(frozen=True)
class LoadAndGoEntry:
    """``@LOAD_AND_GO``"""


@dataclass(frozen=True)
class DescriptionEntry:
    """
    Inline ``# text`` after a command

    Attributes:
        text: Comment text without the ``#`` and the one space after it
    """
    text: str


@dataclass(frozen=True)
class MetadataEntry:
    """
    ``@METADATA "key" <json>``

    Attributes:
        key: Metadata key
        value: Decoded JSON value
    """
    key: str
    value: Any


@dataclass(frozen=True)
class EngineEntry:
    """``@ENGINE n`` with its source position for error reporting."""
    engine: int
    line: Optional[int] = None
    column: Optional[int] = None


@dataclass(frozen=True)
class EpochEntry:
    """``@EPOCH "tag"`` with its source position for error reporting."""
    epoch: str
    line: Optional[int] = None
    column: Optional[int] = None


@dataclass(frozen=True)
class DeclarationBlock:
    """
    An ``@INPUT_PARAMS`` or ``@LOCALS`` block

    Attributes:
        kind: Document field the declarations belong to
        declarations: VariableDeclaration models in source order
    """
    kind: Literal["parameters", "locals"]
    declarations: tuple


@dataclass(frozen=True)
class SectionBlock:
    """
    An ``@IMMEDIATE`` or ``@HARDWARE`` section

    Attributes:
        kind: Document field the commands belong to
        commands: ImmediateCommand or HardwareCommand models in source order
    """
    kind: Literal["immediate_commands", "hardware_commands"]
    commands: tuple


@dataclass(frozen=True)
class StepLine:
    """
    The part of a step line after its time tag

    Attributes:
        type: Step variant (``command``, ``activate``, ``load``,
              ``ground_block``, ``ground_event``)
        fields: Variant-specific model fields (stem/sequence/name and args)

    Example:
        For ``C @ACTIVATE("seq.mod") 1 2``:
        StepLine(type="activate", fields={"sequence": "seq.mod", "args": (...)})
    """
    type: str
    fields: dict = field(default_factory=dict)
