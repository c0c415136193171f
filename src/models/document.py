"""
Sequence document model

Typed, immutable representation of a command sequence, shaped after the
seq-json interchange format. Field names are the wire contract: a document
dumped with ``model_dump(mode="json", exclude_none=True)`` is a seq-json
object, and ``Document.model_validate`` reads one back.

Variants (steps, arguments, times) are closed unions discriminated on their
``type`` field. Sequences are tuples so that a whole document is hashable
in spirit and never changes after construction.

Optional groups that are rendered only when non-empty (declaration groups,
step metadata, models, and so on) reject empty values here, which keeps
"absent" and "empty" from meaning two different things.
"""

from __future__ import annotations

import math
import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator

Tag = Annotated[str, Field(min_length=1)]
Metadata = Annotated[dict[str, Any], Field(min_length=1)]

# section stems the lexer would take for a request's time tag
TIME_TAG_STEM = re.compile(r"^(?:C|[AREG](?:[0-9][0-9T]*)?)$")


def sectionStem_check(stem: str) -> str:
    if TIME_TAG_STEM.match(stem):
        raise ValueError(f"stem {stem!r} reads as a time tag at the start of a section line")
    return stem


class SeqModel(BaseModel):
    """Common configuration for every document node."""

    model_config = ConfigDict(frozen=True, extra="forbid")


# ============================================================================
# Time
# ============================================================================


class AbsoluteTime(SeqModel):
    """``A<tag>``: an absolute day-of-year timestamp."""

    type: Literal["ABSOLUTE"] = "ABSOLUTE"
    tag: Optional[Tag] = None


class CommandCompleteTime(SeqModel):
    """``C``: run when the previous command completes."""

    type: Literal["COMMAND_COMPLETE"] = "COMMAND_COMPLETE"


class CommandRelativeTime(SeqModel):
    """``R<tag>``: offset from the previous command."""

    type: Literal["COMMAND_RELATIVE"] = "COMMAND_RELATIVE"
    tag: Optional[Tag] = None


class EpochRelativeTime(SeqModel):
    """``E<tag>``: offset from the sequence epoch."""

    type: Literal["EPOCH_RELATIVE"] = "EPOCH_RELATIVE"
    tag: Optional[Tag] = None


Time = Annotated[
    Union[AbsoluteTime, CommandCompleteTime, CommandRelativeTime, EpochRelativeTime],
    Field(discriminator="type"),
]


# ============================================================================
# Arguments
# ============================================================================


class StringArgument(SeqModel):
    type: Literal["string"] = "string"
    value: StrictStr
    name: Optional[str] = None


class NumberArgument(SeqModel):
    type: Literal["number"] = "number"
    value: Union[StrictInt, StrictFloat]
    name: Optional[str] = None

    @field_validator("value")
    @classmethod
    def value_checkFinite(cls, value: Union[int, float]) -> Union[int, float]:
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("number arguments must be finite")
        return value


class BooleanArgument(SeqModel):
    type: Literal["boolean"] = "boolean"
    value: StrictBool
    name: Optional[str] = None


class SymbolArgument(SeqModel):
    """A bare identifier argument, e.g. an enum member or a variable name."""

    type: Literal["symbol"] = "symbol"
    value: Annotated[str, Field(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")]
    name: Optional[str] = None

    @field_validator("value")
    @classmethod
    def value_checkNotBoolean(cls, value: str) -> str:
        if value in ("true", "false"):
            raise ValueError(f"{value!r} is a boolean literal, use a boolean argument")
        return value


class HexArgument(SeqModel):
    """Hex literal, kept exactly as written (``0x1F``)."""

    type: Literal["hex"] = "hex"
    value: Annotated[str, Field(pattern=r"^0[xX][0-9A-Fa-f]+$")]
    name: Optional[str] = None


BaseArgument = Annotated[
    Union[StringArgument, NumberArgument, BooleanArgument, SymbolArgument, HexArgument],
    Field(discriminator="type"),
]


class RepeatArgument(SeqModel):
    """
    Variable-length group of argument-sets, written ``[a b c ...]``.

    Each element of ``value`` is one argument-set. The text form flattens
    the sets, so parsing always yields a single set.
    """

    type: Literal["repeat"] = "repeat"
    value: tuple[tuple[BaseArgument, ...], ...]
    name: Optional[str] = None


Argument = Annotated[
    Union[StringArgument, NumberArgument, BooleanArgument, SymbolArgument, HexArgument, RepeatArgument],
    Field(discriminator="type"),
]
Args = tuple[Argument, ...]


# ============================================================================
# Steps
# ============================================================================


class Model(SeqModel):
    """``@MODEL``: set a modelled variable to a value at an offset."""

    variable: str
    value: Union[StrictBool, StrictInt, StrictFloat, StrictStr]
    offset: str


class StepBase(SeqModel):
    time: Time
    description: Optional[str] = None
    metadata: Optional[Metadata] = None
    models: Optional[Annotated[tuple[Model, ...], Field(min_length=1)]] = None


class Command(StepBase):
    type: Literal["command"] = "command"
    stem: Annotated[str, Field(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")]
    args: Args = ()


class Activate(StepBase):
    type: Literal["activate"] = "activate"
    sequence: str
    args: Optional[Annotated[Args, Field(min_length=1)]] = None
    engine: Optional[int] = None
    epoch: Optional[str] = None


class Load(StepBase):
    type: Literal["load"] = "load"
    sequence: str
    args: Optional[Annotated[Args, Field(min_length=1)]] = None
    engine: Optional[int] = None
    epoch: Optional[str] = None


class GroundBlock(StepBase):
    type: Literal["ground_block"] = "ground_block"
    name: str
    args: Optional[Annotated[Args, Field(min_length=1)]] = None


class GroundEvent(StepBase):
    type: Literal["ground_event"] = "ground_event"
    name: str
    args: Optional[Annotated[Args, Field(min_length=1)]] = None


Step = Annotated[
    Union[Command, Activate, Load, GroundBlock, GroundEvent],
    Field(discriminator="type"),
]


# ============================================================================
# Requests and out-of-band commands
# ============================================================================


class GroundEpoch(SeqModel):
    """``G<delta> "<name>"``: request timing relative to a ground epoch."""

    name: Optional[Tag] = None
    delta: Optional[Tag] = None


class Request(SeqModel):
    """
    Named block of steps, ``@REQUEST_BEGIN("name")`` ... ``@REQUEST_END``.

    Timed either by ``time`` or by ``ground_epoch``; ``time`` wins when
    both are given. A request with neither cannot be serialized.
    """

    type: Literal["request"] = "request"
    name: str
    steps: Annotated[tuple[Step, ...], Field(min_length=1)]
    time: Optional[Time] = None
    ground_epoch: Optional[GroundEpoch] = None
    description: Optional[str] = None
    metadata: Optional[Metadata] = None


class ImmediateCommand(SeqModel):
    stem: Annotated[str, Field(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")]
    args: Args = ()
    description: Optional[str] = None
    metadata: Optional[Metadata] = None

    @field_validator("stem")
    @classmethod
    def stem_checkNotTimeTag(cls, stem: str) -> str:
        return sectionStem_check(stem)


class HardwareCommand(SeqModel):
    stem: Annotated[str, Field(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")]
    description: Optional[str] = None
    metadata: Optional[Metadata] = None

    @field_validator("stem")
    @classmethod
    def stem_checkNotTimeTag(cls, stem: str) -> str:
        return sectionStem_check(stem)


# ============================================================================
# Declarations and the document root
# ============================================================================


class Range(SeqModel):
    min: Union[StrictInt, StrictFloat]
    max: Union[StrictInt, StrictFloat]


VariableType = Literal["FLOAT", "INT", "STRING", "UINT", "ENUM"]


class VariableDeclaration(SeqModel):
    """
    One line of an ``@INPUT_PARAMS`` or ``@LOCALS`` block.

    Attributes:
        name: Variable name
        type: One of FLOAT, INT, STRING, UINT, ENUM
        enum_name: Enumeration the variable draws from
        allowable_ranges: Inclusive ``min...max`` ranges
        allowable_values: Discrete allowed values
    """

    name: Annotated[str, Field(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")]
    type: Optional[VariableType] = None
    enum_name: Optional[Annotated[str, Field(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")]] = None
    allowable_ranges: Optional[Annotated[tuple[Range, ...], Field(min_length=1)]] = None
    allowable_values: Optional[
        Annotated[tuple[Union[StrictInt, StrictFloat, StrictStr], ...], Field(min_length=1)]
    ] = None


Declarations = Annotated[tuple[VariableDeclaration, ...], Field(min_length=1)]


class Document(SeqModel):
    """
    Root of a sequence document.

    The load-and-go flag travels as the reserved metadata key ``lgo``; see
    ``load_and_go``.
    """

    id: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    parameters: Optional[Declarations] = None
    locals: Optional[Declarations] = None
    steps: Optional[Annotated[tuple[Step, ...], Field(min_length=1)]] = None
    immediate_commands: Optional[Annotated[tuple[ImmediateCommand, ...], Field(min_length=1)]] = None
    hardware_commands: Optional[Annotated[tuple[HardwareCommand, ...], Field(min_length=1)]] = None
    requests: Optional[Annotated[tuple[Request, ...], Field(min_length=1)]] = None

    @property
    def load_and_go(self) -> bool:
        """True when the sequence runs immediately on load."""
        return bool(self.metadata.get("lgo"))

    def json_dump(self) -> dict[str, Any]:
        """Seq-json dictionary for this document."""
        return self.model_dump(mode="json", exclude_none=True)
