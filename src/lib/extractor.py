"""
Document extraction from the SeqN parse tree

The Extractor is a lark ``Transformer``: lark calls one method per tree
node, bottom-up, and each method turns its already-transformed children
into a value. Leaves become Python values (``STRING`` is unescaped,
``NUMBER`` becomes int or float), small directive lines become the entry
dataclasses of ``seqn.models.parser``, and steps, requests and the root
become document models.

Extraction is all-or-nothing: any problem raises ExtractionError and no
partial document escapes.

Example:
    >>> tree = Parser('@ID "demo"\\nC NOOP # hello\\n').parse()
    >>> Extractor(tree).extract().steps[0].description
    'hello'
"""

import re
from typing import Any, Optional, Union

from lark import Discard, Token, Transformer, Tree, v_args
from lark.exceptions import VisitError
from pydantic import ValidationError

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
    GroundEpoch,
    GroundEvent,
    HardwareCommand,
    HexArgument,
    ImmediateCommand,
    Load,
    Model,
    NumberArgument,
    Range,
    RepeatArgument,
    Request,
    StringArgument,
    SymbolArgument,
    VariableDeclaration,
)
from ..models.parser import (
    DeclarationBlock,
    DescriptionEntry,
    EngineEntry,
    EpochEntry,
    IdEntry,
    LoadAndGoEntry,
    MetadataEntry,
    SectionBlock,
    StepLine,
)
from ..models.time import TimeTypes
from .errors import ExtractionError, SeqnError
from .escape import quote_unescape
from .log import LOG
from .time import time_validate

INTEGER = re.compile(r"^[+-]?\d+$")
FLOAT = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

VARIABLE_TYPES = frozenset({"FLOAT", "INT", "STRING", "UINT", "ENUM"})

STEP_MODELS = {
    "command": Command,
    "activate": Activate,
    "load": Load,
    "ground_block": GroundBlock,
    "ground_event": GroundEvent,
}

# time tag prefix -> grammars the tag may satisfy
TAG_KINDS = {
    "A": (TimeTypes.ABSOLUTE,),
    "R": (TimeTypes.RELATIVE, TimeTypes.RELATIVE_SIMPLE),
    "E": (TimeTypes.EPOCH, TimeTypes.EPOCH_SIMPLE),
    "G": (TimeTypes.EPOCH, TimeTypes.EPOCH_SIMPLE),
}


def number_parse(text: str) -> Optional[Union[int, float]]:
    """int for integer text, float for decimal text, None otherwise."""
    if INTEGER.match(text):
        return int(text)
    if FLOAT.match(text):
        return float(text)
    return None


def _where(meta) -> tuple[Optional[int], Optional[int]]:
    return getattr(meta, "line", None), getattr(meta, "column", None)


@v_args(meta=True)
class Extractor(Transformer):
    """
    Build a Document from a SeqN parse tree

    Each rule callback receives the node's source ``meta`` (line and
    column) and its transformed children.
    """

    def __init__(self, tree: Tree):
        """
        Args:
            tree: Parse tree from ``Parser.parse()``
        """
        super().__init__(visit_tokens=True)
        self.tree = tree

    def extract(self) -> Document:
        """
        Transform the whole tree into a Document

        Returns:
            Validated Document

        Raises:
            ExtractionError: If the tree does not describe a valid document
        """
        try:
            document = self.transform(self.tree)
        except VisitError as e:
            if isinstance(e.orig_exc, SeqnError):
                raise e.orig_exc from None
            if isinstance(e.orig_exc, ValidationError):
                raise ExtractionError(f"Invalid {e.rule}: {e.orig_exc}") from e.orig_exc
            raise
        LOG(f"Extracted document {document.id!r} with {len(document.steps or ())} steps", level=2)
        return document

    def node_make(self, cls, meta, **fields):
        """Construct a document model, reporting validation errors at ``meta``."""
        try:
            return cls(**fields)
        except ValidationError as e:
            raise ExtractionError(f"Invalid {cls.__name__}: {e}", *_where(meta)) from e

    # ------------------------------------------------------------ terminals

    def STRING(self, token: Token) -> str:
        try:
            return quote_unescape(token)
        except ValueError as e:
            raise ExtractionError(f"Invalid string literal {token}", token.line, token.column) from e

    def NUMBER(self, token: Token) -> Union[int, float]:
        return number_parse(token)

    def BOOLEAN(self, token: Token) -> bool:
        return token == "true"

    def DESCRIPTION(self, token: Token) -> DescriptionEntry:
        text = token[1:]
        if text.startswith(" "):
            text = text[1:]
        return DescriptionEntry(text)

    # ------------------------------------------------------------ document

    def start(self, meta, children) -> Document:
        """
        Fold header entries, steps, requests and sections into the Document

        ``@LOAD_AND_GO`` is recorded as ``metadata["lgo"] = True``.
        """
        fields: dict[str, Any] = {"metadata": {}}
        steps = []
        requests = []
        for child in children:
            if isinstance(child, IdEntry):
                fields["id"] = child.id
            elif isinstance(child, DeclarationBlock):
                fields[child.kind] = child.declarations
            elif isinstance(child, MetadataEntry):
                fields["metadata"][child.key] = child.value
            elif isinstance(child, LoadAndGoEntry):
                fields["metadata"]["lgo"] = True
            elif isinstance(child, SectionBlock):
                fields[child.kind] = child.commands
            elif isinstance(child, Request):
                requests.append(child)
            else:
                steps.append(child)

        if "id" not in fields:
            raise ExtractionError("Missing @ID directive", 1, 1)
        if steps:
            fields["steps"] = tuple(steps)
        if requests:
            fields["requests"] = tuple(requests)
        return self.node_make(Document, meta, **fields)

    def file_comment(self, meta, children):
        return Discard

    def id_declaration(self, meta, children) -> IdEntry:
        return IdEntry(children[0])

    def load_and_go(self, meta, children) -> LoadAndGoEntry:
        return LoadAndGoEntry()

    # ------------------------------------------------------------ declarations

    def parameter_block(self, meta, children) -> DeclarationBlock:
        if not children:
            raise ExtractionError("@INPUT_PARAMS block declares no variables", *_where(meta))
        return DeclarationBlock("parameters", tuple(children))

    def local_block(self, meta, children) -> DeclarationBlock:
        if not children:
            raise ExtractionError("@LOCALS block declares no variables", *_where(meta))
        return DeclarationBlock("locals", tuple(children))

    def variable_declaration(self, meta, children) -> VariableDeclaration:
        """
        ``name [type] [enum_name] ["min...max,..."] ["value,..."]``

        With a single word after the name, a known type keyword is the type
        and anything else is an enum name. With one quoted string it holds
        the ranges; with two, the first holds ranges (``""`` for none) and
        the second the allowed values.
        """
        words = [child for child in children if isinstance(child, Token)]
        quoted = [child for child in children if not isinstance(child, Token)]
        fields: dict[str, Any] = {"name": str(words[0])}

        if len(words) == 2:
            key = "type" if words[1] in VARIABLE_TYPES else "enum_name"
            fields[key] = str(words[1])
        elif len(words) == 3:
            if words[1] not in VARIABLE_TYPES:
                raise ExtractionError(
                    f"Unknown variable type {str(words[1])!r} for {fields['name']!r}", words[1].line, words[1].column
                )
            fields["type"] = str(words[1])
            fields["enum_name"] = str(words[2])

        if quoted and quoted[0]:
            fields["allowable_ranges"] = self.ranges_parse(quoted[0], meta)
        if len(quoted) == 2:
            fields["allowable_values"] = tuple(self.value_parse(value) for value in quoted[1].split(","))
        return self.node_make(VariableDeclaration, meta, **fields)

    def ranges_parse(self, text: str, meta) -> tuple[Range, ...]:
        """Parse ``"min...max,min...max"`` into Range models."""
        ranges = []
        for part in text.split(","):
            low, separator, high = part.partition("...")
            bounds = number_parse(low.strip()), number_parse(high.strip())
            if not separator or None in bounds:
                raise ExtractionError(f"Malformed allowable range {part!r}, expected min...max", *_where(meta))
            ranges.append(Range(min=bounds[0], max=bounds[1]))
        return tuple(ranges)

    def value_parse(self, text: str) -> Union[int, float, str]:
        value = number_parse(text)
        return text if value is None else value

    # ------------------------------------------------------------ steps

    def step(self, meta, children):
        """
        A time-tagged step plus the directive lines that follow it

        Metadata and models stay in source order. ``@ENGINE`` and
        ``@EPOCH`` are only valid after ``@ACTIVATE`` and ``@LOAD``.
        """
        time, line, *trailing = children
        fields: dict[str, Any] = {"time": time, **line.fields}
        metadata: dict[str, Any] = {}
        models: list[Model] = []
        for entry in trailing:
            if isinstance(entry, DescriptionEntry):
                fields["description"] = entry.text or None
            elif isinstance(entry, MetadataEntry):
                metadata[entry.key] = entry.value
            elif isinstance(entry, Model):
                models.append(entry)
            elif isinstance(entry, (EngineEntry, EpochEntry)):
                directive = "@ENGINE" if isinstance(entry, EngineEntry) else "@EPOCH"
                if line.type not in ("activate", "load"):
                    raise ExtractionError(f"{directive} only applies to @ACTIVATE and @LOAD steps", entry.line, entry.column)
                key = "engine" if isinstance(entry, EngineEntry) else "epoch"
                if key in fields:
                    raise ExtractionError(f"Duplicate {directive} directive", entry.line, entry.column)
                fields[key] = getattr(entry, key)
        if metadata:
            fields["metadata"] = metadata
        if models:
            fields["models"] = tuple(models)
        return self.node_make(STEP_MODELS[line.type], meta, **fields)

    def command(self, meta, children) -> StepLine:
        stem, args = children
        return StepLine("command", {"stem": str(stem), "args": args})

    def activate(self, meta, children) -> StepLine:
        sequence, args = children
        return StepLine("activate", {"sequence": sequence, "args": args or None})

    def load(self, meta, children) -> StepLine:
        sequence, args = children
        return StepLine("load", {"sequence": sequence, "args": args or None})

    def ground_block(self, meta, children) -> StepLine:
        name, args = children
        return StepLine("ground_block", {"name": name, "args": args or None})

    def ground_event(self, meta, children) -> StepLine:
        name, args = children
        return StepLine("ground_event", {"name": name, "args": args or None})

    def engine(self, meta, children) -> EngineEntry:
        value = children[0]
        if not isinstance(value, int):
            raise ExtractionError(f"@ENGINE expects an integer, got {value!r}", *_where(meta))
        return EngineEntry(value, *_where(meta))

    def epoch(self, meta, children) -> EpochEntry:
        return EpochEntry(children[0], *_where(meta))

    # ------------------------------------------------------------ requests

    def request(self, meta, children) -> Request:
        timing, name, *rest = children
        fields: dict[str, Any] = {"name": name}
        fields["ground_epoch" if isinstance(timing, GroundEpoch) else "time"] = timing
        steps = []
        metadata: dict[str, Any] = {}
        for entry in rest:
            if isinstance(entry, DescriptionEntry):
                fields["description"] = entry.text or None
            elif isinstance(entry, MetadataEntry):
                metadata[entry.key] = entry.value
            else:
                steps.append(entry)
        if not steps:
            raise ExtractionError(f"Request {name!r} contains no steps", *_where(meta))
        fields["steps"] = tuple(steps)
        if metadata:
            fields["metadata"] = metadata
        return self.node_make(Request, meta, **fields)

    def ground_epoch(self, meta, children) -> GroundEpoch:
        token, name = children
        delta = self.tag_check(token)
        return self.node_make(GroundEpoch, meta, delta=delta, name=name or None)

    # ------------------------------------------------------------ sections

    def immediate_block(self, meta, children) -> SectionBlock:
        if not children:
            raise ExtractionError("@IMMEDIATE section contains no commands", *_where(meta))
        return SectionBlock("immediate_commands", tuple(children))

    def hardware_block(self, meta, children) -> SectionBlock:
        if not children:
            raise ExtractionError("@HARDWARE section contains no commands", *_where(meta))
        return SectionBlock("hardware_commands", tuple(children))

    def immediate_command(self, meta, children) -> ImmediateCommand:
        stem, args, *rest = children
        return self.node_make(ImmediateCommand, meta, stem=str(stem), args=args, **self.trailer_collect(rest))

    def hardware_command(self, meta, children) -> HardwareCommand:
        stem, *rest = children
        return self.node_make(HardwareCommand, meta, stem=str(stem), **self.trailer_collect(rest))

    def trailer_collect(self, entries) -> dict[str, Any]:
        """Description and metadata that follow an immediate or hardware command."""
        fields: dict[str, Any] = {}
        metadata = {entry.key: entry.value for entry in entries if isinstance(entry, MetadataEntry)}
        for entry in entries:
            if isinstance(entry, DescriptionEntry):
                fields["description"] = entry.text or None
        if metadata:
            fields["metadata"] = metadata
        return fields

    # ------------------------------------------------------------ time tags

    def tag_check(self, token: Token) -> Optional[str]:
        """
        Strip the one-letter prefix from a time tag token and validate the rest

        Returns:
            The tag text, or None for a bare prefix

        Raises:
            ExtractionError: If validation is enabled and the tag matches
                none of the grammars allowed for its prefix
        """
        prefix, tag = token[0], token[1:]
        if not tag:
            return None
        if appsettings.validate_time_tags and not any(time_validate(tag, kind) for kind in TAG_KINDS[prefix]):
            kinds = " or ".join(kind.value for kind in TAG_KINDS[prefix])
            raise ExtractionError(f"Invalid time tag {str(token)!r}, expected {kinds}", token.line, token.column)
        return tag

    def absolute_time(self, meta, children) -> AbsoluteTime:
        return AbsoluteTime(tag=self.tag_check(children[0]))

    def command_complete(self, meta, children) -> CommandCompleteTime:
        return CommandCompleteTime()

    def command_relative(self, meta, children) -> CommandRelativeTime:
        return CommandRelativeTime(tag=self.tag_check(children[0]))

    def epoch_relative(self, meta, children) -> EpochRelativeTime:
        return EpochRelativeTime(tag=self.tag_check(children[0]))

    # ------------------------------------------------------------ arguments

    def args(self, meta, children) -> tuple:
        return tuple(children)

    def string_argument(self, meta, children) -> StringArgument:
        return StringArgument(value=children[0])

    def number_argument(self, meta, children) -> NumberArgument:
        return self.node_make(NumberArgument, meta, value=children[0])

    def boolean_argument(self, meta, children) -> BooleanArgument:
        return BooleanArgument(value=children[0])

    def hex_argument(self, meta, children) -> HexArgument:
        return HexArgument(value=str(children[0]))

    def symbol_argument(self, meta, children) -> SymbolArgument:
        return SymbolArgument(value=str(children[0]))

    def repeat_argument(self, meta, children) -> RepeatArgument:
        """``[a b c]`` is one argument-set; ``[]`` has no sets at all."""
        return RepeatArgument(value=(tuple(children),) if children else ())

    # ------------------------------------------------------------ directives

    def metadata_entry(self, meta, children) -> MetadataEntry:
        key, value = children
        return MetadataEntry(key, value)

    def model_entry(self, meta, children) -> Model:
        variable, value, offset = children
        return self.node_make(Model, meta, variable=str(variable), value=value, offset=offset)

    # ------------------------------------------------------------ JSON values

    def json_object(self, meta, children) -> dict:
        return dict(children)

    def json_pair(self, meta, children) -> tuple:
        key, value = children
        return key, value

    def json_array(self, meta, children) -> list:
        return list(children)

    def json_string(self, meta, children) -> str:
        return children[0]

    def json_number(self, meta, children) -> Union[int, float]:
        return children[0]

    def json_boolean(self, meta, children) -> bool:
        return children[0]

    def json_null(self, meta, children) -> None:
        return None
