"""
Grammar-driven parser for SeqN text

Turns SeqN source into a concrete syntax tree (a ``lark.Tree``) whose node
names follow the surface syntax: ``step``, ``command``, ``activate``,
``request``, ``metadata_entry``, ``variable_declaration`` and so on. The
``Extractor`` then walks that tree to build a ``Document``.

The grammar lives in ``seqn.lark`` next to this module. Compiling it is
comparatively slow, so ``grammar_load()`` builds it once per process and
hands out the same read-only ``Lark`` object afterwards. Each ``Parser``
holds only its own source text; separate parses share nothing else.

Example:
    >>> tree = Parser('@ID "demo"\\nC NOOP\\n').parse()
    >>> [str(child.data) for child in tree.children]
    ['id_declaration', 'step']
"""

from functools import lru_cache
from pathlib import Path
from typing import NoReturn

from lark import Lark, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken
from lark.lexer import PatternStr

from ..config import appsettings
from .errors import SeqnParseError
from .log import LOG

GRAMMAR_FILE = Path(__file__).with_name("seqn.lark")


@lru_cache(maxsize=None)
def grammar_load(debug: bool = False) -> Lark:
    """
    Compile the SeqN grammar, once per process and debug flag.

    Args:
        debug: Build lark with its debug diagnostics enabled

    Returns:
        Compiled LALR parser with position propagation turned on
    """
    LOG(f"Compiling grammar {GRAMMAR_FILE.name}", level=2)
    return Lark.open(
        str(GRAMMAR_FILE),
        parser="lalr",
        lexer="contextual",
        propagate_positions=True,
        maybe_placeholders=False,
        debug=debug,
    )


class Parser:
    """
    Parser for SeqN source text

    Handles:
    - Header directives (@ID, @INPUT_PARAMS/@LOCALS blocks, @METADATA, @LOAD_AND_GO)
    - Time-tagged steps with arguments, descriptions and trailing directives
    - @REQUEST_BEGIN/@REQUEST_END blocks
    - @IMMEDIATE and @HARDWARE sections
    - Error reporting with line, column and a caret under the bad token
    """

    def __init__(self, source: str, debug: bool = False):
        """
        Initialize parser with source text

        Args:
            source: SeqN source text
            debug: Build the grammar with lark debug output (defaults to
                the ``debug_mode`` setting when False)
        """
        self.source = source
        self.debug = debug or appsettings.debug_mode

    def source_normalize(self) -> str:
        """Source text guaranteed to end in a newline, as every statement must."""
        if self.source.endswith("\n"):
            return self.source
        return self.source + "\n"

    def parse(self) -> Tree:
        """
        Parse source text into a concrete syntax tree

        Returns:
            lark Tree rooted at ``start``

        Raises:
            SeqnParseError: If the text violates the grammar
        """
        text = self.source_normalize()
        try:
            tree = grammar_load(self.debug).parse(text)
        except UnexpectedInput as e:
            self.error(e, text)
        LOG(f"Parsed {len(tree.children)} top-level nodes", level=2)
        return tree

    def expected_describe(self, expected: set[str]) -> str:
        """Render lark terminal names as the text a user would type."""
        grammar = grammar_load(self.debug)
        names = []
        for name in sorted(expected):
            if name == "$END":
                names.append("end of input")
                continue
            try:
                pattern = grammar.get_terminal(name).pattern
            except KeyError:
                names.append(name)
                continue
            names.append(repr(pattern.value) if isinstance(pattern, PatternStr) else name)
        return ", ".join(names)

    def error(self, exc: UnexpectedInput, text: str) -> NoReturn:
        """
        Report a lark failure as a SeqnParseError with source context

        Raises:
            SeqnParseError: Always (this is an error reporting function)

        Example output:
            SeqnParseError:
            Unexpected token ']' (expected one of: STRING, NUMBER, ...)
            Line 4, column 12, position 57
            Context:
            C CMD 1 2 ]
                      ^
        """
        if isinstance(exc, UnexpectedCharacters):
            message = f"Unexpected character {exc.char!r}"
        elif isinstance(exc, UnexpectedEOF):
            message = "Unexpected end of input"
        elif isinstance(exc, UnexpectedToken) and exc.token.type == "$END":
            message = "Unexpected end of input"
        elif isinstance(exc, UnexpectedToken):
            message = f"Unexpected token {str(exc.token)!r}"
        else:
            message = "Invalid syntax"

        expected = getattr(exc, "expected", None) or getattr(exc, "allowed", None)
        if expected:
            message += f" (expected one of: {self.expected_describe(set(expected))})"

        line, column = exc.line, exc.column
        position = exc.pos_in_stream
        if line is None or line < 1 or position is None:
            position = len(text)
            line = text.count("\n") + 1
            column = 1
            context = ""
        else:
            context = exc.get_context(text)

        raise SeqnParseError(message, line=line, column=column, position=position, context=context) from exc
