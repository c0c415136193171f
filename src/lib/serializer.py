"""
Serializer: Document to canonical SeqN text

The exact inverse of Parser + Extractor. Output layout:

    @ID "<id>"
    @INPUT_PARAMS_BEGIN ... @INPUT_PARAMS_END      (if parameters)
    @LOCALS_BEGIN ... @LOCALS_END                  (if locals)
    @METADATA "<key>" <json>                       (one per key, lgo excluded)

    @LOAD_AND_GO                                   (if metadata.lgo)

    <time> <stem> [args] [# description]           (each step)
    @ENGINE / @EPOCH / @METADATA / @MODEL lines    (per step)

    @IMMEDIATE ...                                 (if immediate commands)

    @HARDWARE ...                                  (if hardware commands)

    <time> @REQUEST_BEGIN("<name>") ... @REQUEST_END  (each request)

A line gets its newline only if it does not already end in one (an inline
description already carries it). Output is byte-for-byte stable: the same
document always renders to the same text.

Example:
    >>> doc = Document(id="demo", steps=(Command(time=CommandCompleteTime(), stem="NOOP"),))
    >>> Serializer(doc).serialize()
    '@ID "demo"\\n\\nC NOOP\\n'
"""

import json
import math
from typing import Any, Iterable, Union, assert_never

from ..config import appsettings
from ..models.document import (
    AbsoluteTime,
    Activate,
    BooleanArgument,
    Command,
    CommandCompleteTime,
    CommandRelativeTime,
    Document,
    EpochRelativeTime,
    GroundBlock,
    GroundEvent,
    HexArgument,
    Load,
    Model,
    NumberArgument,
    RepeatArgument,
    Request,
    StringArgument,
    SymbolArgument,
    VariableDeclaration,
)
from .errors import SerializationError
from .escape import quote_escape
from .extractor import number_parse
from .log import LOG, WARN

BASE_ARGUMENTS = (StringArgument, NumberArgument, BooleanArgument, SymbolArgument, HexArgument)
# characters an allowable value list cannot carry unescaped
VALUE_UNSAFE = frozenset(",\"\\\r\n")


def number_format(value: Union[int, float]) -> str:
    """Literal text of a number; floats keep their shortest round-trip form."""
    if isinstance(value, bool):
        raise SerializationError(f"Expected a number, got {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError(f"Cannot serialize non-finite number {value!r}")
        return repr(value)
    return str(value)


def line_terminate(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"


class Serializer:
    """
    Render a Document as SeqN text

    Handles:
    - Header: @ID, declaration blocks, metadata, @LOAD_AND_GO
    - Steps of every variant with their trailing directive lines
    - @IMMEDIATE and @HARDWARE sections
    - @REQUEST_BEGIN/@REQUEST_END blocks
    """

    def __init__(self, document: Document):
        """
        Args:
            document: Document to render
        """
        self.document = document
        self.indent = appsettings.metadataIndent_get()

    def serialize(self) -> str:
        """
        Render the whole document

        Returns:
            SeqN text

        Raises:
            SerializationError: If the document cannot be rendered
        """
        document = self.document
        parts = [f"@ID {quote_escape(document.id)}\n"]

        if document.parameters:
            parts.append(self.variables_render(document.parameters, "INPUT_PARAMS"))
        if document.locals:
            parts.append(self.variables_render(document.locals, "LOCALS"))

        parts.append(self.metadata_render({key: value for key, value in document.metadata.items() if key != "lgo"}))
        if document.load_and_go:
            parts.append("\n@LOAD_AND_GO")

        if document.steps:
            parts.append("\n")
            parts.extend(self.step_render(step) for step in document.steps)

        if document.immediate_commands:
            parts.append("\n")
            parts.append("@IMMEDIATE\n")
            for command in document.immediate_commands:
                text = line_terminate(
                    f"{command.stem}{self.args_render(command.args)}{self.description_render(command.description)}"
                )
                parts.append(text + self.metadata_render(command.metadata))

        if document.hardware_commands:
            parts.append("\n")
            parts.append("@HARDWARE\n")
            for command in document.hardware_commands:
                text = line_terminate(f"{command.stem}{self.description_render(command.description)}")
                parts.append(text + self.metadata_render(command.metadata))

        for request in document.requests or ():
            parts.append("\n")
            parts.append(self.request_render(request))

        text = "".join(parts)
        LOG(f"Serialized document {document.id!r} to {len(text.splitlines())} lines", level=2)
        return text

    # ------------------------------------------------------------ header

    def variables_render(self, variables: Iterable[VariableDeclaration], block: str) -> str:
        """
        ``@<block>_BEGIN`` ... ``@<block>_END`` with one declaration per line

        An empty ``""`` placeholder stands in for missing ranges when
        allowable values follow, so the values never read as ranges.
        """
        lines = []
        for variable in variables:
            line = variable.name
            if variable.type:
                line += f" {variable.type}"
            if variable.enum_name:
                line += f" {variable.enum_name}"
            ranges = ""
            if variable.allowable_ranges:
                ranges = ",".join(
                    f"{number_format(r.min)}...{number_format(r.max)}" for r in variable.allowable_ranges
                )
                ranges = f' "{ranges}"'
            line += ranges
            if variable.allowable_values:
                values = ",".join(self.value_format(value) for value in variable.allowable_values)
                placeholder = "" if ranges else '"" '
                line += f' {placeholder}"{values}"'
            lines.append(line)
        body = f"@{block}_BEGIN\n" + "\n".join(lines)
        return body.strip() + f"\n@{block}_END\n"

    def value_format(self, value: Union[int, float, str]) -> str:
        """
        One allowable value as written inside the quoted value list

        String values are written bare inside the list. Any value that would
        not read back as the same string raises SerializationError.
        """
        if not isinstance(value, str):
            return number_format(value)
        if any(char in value for char in VALUE_UNSAFE):
            raise SerializationError(f"Allowable value {value!r} cannot be written in a value list")
        if number_parse(value) is not None:
            raise SerializationError(f"Allowable value {value!r} would read back as a number")
        return value

    def metadata_render(self, metadata: dict[str, Any] | None) -> str:
        """One ``@METADATA`` line per key, newline-terminated; empty for no metadata."""
        if not metadata:
            return ""
        lines = []
        for key, value in metadata.items():
            try:
                encoded = json.dumps(value, indent=self.indent, ensure_ascii=False, allow_nan=False)
            except (TypeError, ValueError) as e:
                raise SerializationError(f"Metadata {key!r} is not JSON serializable: {e}") from e
            lines.append(f"@METADATA {quote_escape(key)} {encoded}")
        return "\n".join(lines) + "\n"

    def models_render(self, models: Iterable[Model] | None) -> str:
        if not models:
            return ""
        lines = []
        for model in models:
            value = model.value
            if isinstance(value, bool):
                rendered = "true" if value else "false"
            elif isinstance(value, str):
                rendered = quote_escape(value)
            else:
                rendered = number_format(value)
            lines.append(f"@MODEL {quote_escape(model.variable)} {rendered} {quote_escape(model.offset)}")
        return "\n".join(lines) + "\n"

    def description_render(self, description: str | None) -> str:
        if not description:
            return ""
        if "\n" in description or "\r" in description:
            raise SerializationError(f"Description cannot span lines: {description!r}")
        return f" # {description}\n"

    # ------------------------------------------------------------ steps

    def time_render(self, time) -> str:
        if isinstance(time, AbsoluteTime):
            return f"A{time.tag or ''}"
        elif isinstance(time, CommandCompleteTime):
            return "C"
        elif isinstance(time, CommandRelativeTime):
            return f"R{time.tag or ''}"
        elif isinstance(time, EpochRelativeTime):
            return f"E{time.tag or ''}"
        else:
            assert_never(time)

    def step_render(self, step) -> str:
        """
        One step line plus its directive lines

        Activate and load steps write ``@ENGINE`` and ``@EPOCH`` before
        metadata; every step writes metadata before models.
        """
        directives = ""
        if isinstance(step, Command):
            head = step.stem
        elif isinstance(step, (Activate, Load)):
            keyword = "ACTIVATE" if isinstance(step, Activate) else "LOAD"
            head = f"@{keyword}({quote_escape(step.sequence)})"
            if step.engine is not None:
                directives += f"@ENGINE {step.engine}\n"
            if step.epoch is not None:
                directives += f"@EPOCH {quote_escape(step.epoch)}\n"
        elif isinstance(step, (GroundBlock, GroundEvent)):
            keyword = "GROUND_BLOCK" if isinstance(step, GroundBlock) else "GROUND_EVENT"
            head = f"@{keyword}({quote_escape(step.name)})"
        else:
            assert_never(step)

        line = line_terminate(
            f"{self.time_render(step.time)} {head}{self.args_render(step.args)}{self.description_render(step.description)}"
        )
        return line + directives + self.metadata_render(step.metadata) + self.models_render(step.models)

    def request_render(self, request: Request) -> str:
        if request.time is not None:
            timing = self.time_render(request.time)
        elif request.ground_epoch is not None:
            epoch = request.ground_epoch
            timing = f"G{epoch.delta or ''} {quote_escape(epoch.name or '')}"
        else:
            raise SerializationError(f"Request {request.name!r} has neither a time nor a ground epoch")

        text = line_terminate(
            f"{timing} @REQUEST_BEGIN({quote_escape(request.name)}){self.description_render(request.description)}"
        )
        text += "".join(self.step_render(step) for step in request.steps)
        return text + "@REQUEST_END\n" + self.metadata_render(request.metadata)

    # ------------------------------------------------------------ arguments

    def argument_render(self, argument) -> str:
        if isinstance(argument, StringArgument):
            return quote_escape(argument.value)
        elif isinstance(argument, NumberArgument):
            return number_format(argument.value)
        elif isinstance(argument, BooleanArgument):
            return "true" if argument.value else "false"
        elif isinstance(argument, (SymbolArgument, HexArgument)):
            return argument.value
        elif isinstance(argument, RepeatArgument):
            return self.repeat_render(argument)
        else:
            assert_never(argument)

    def repeat_render(self, argument: RepeatArgument) -> str:
        """
        ``[a b c d]``: every argument-set flattened into one bracket group

        A malformed argument-set is logged and skipped rather than failing
        the whole document.

        Raises:
            SerializationError: If the repeat value itself is not a sequence
        """
        if not isinstance(argument.value, (list, tuple)):
            raise SerializationError(f"Repeat argument value is not an array: {argument.value!r}")
        items = []
        for argument_set in argument.value:
            if not isinstance(argument_set, (list, tuple)):
                WARN(f"Repeat argument set is not an array, skipping: {argument_set!r}")
                continue
            for item in argument_set:
                if not isinstance(item, BASE_ARGUMENTS):
                    WARN(f"Repeat argument set holds a non-base argument, skipping: {item!r}")
                    continue
                items.append(self.argument_render(item))
        return f"[{' '.join(items)}]"

    def args_render(self, args) -> str:
        """Space-prefixed argument list, or empty string for no arguments."""
        if not args:
            return ""
        return " " + " ".join(self.argument_render(argument) for argument in args)
