"""
Exception hierarchy for seqn

Every failure raised by the library derives from SeqnError so callers can
catch the whole family at once:

    SeqnError
    ├── FormatError          time/duration text matches no accepted form
    ├── SeqnParseError       SeqN text violates the grammar (carries position)
    ├── ExtractionError      parse tree does not map to a valid document
    └── SerializationError   document cannot be rendered as SeqN text

SeqnParseError also subclasses SyntaxError, and FormatError subclasses
ValueError, so code written against the builtin exceptions keeps working.
"""

from typing import Optional

TIME_FORMATS_HELP = (
    "Invalid time format: Must be of format:\n"
    "    1y 3d 2h 24m 35s 18ms 70us,\n"
    "    [+/-]DOYThh:mm:ss[.sss],\n"
    "    duration"
)


class SeqnError(Exception):
    """Base class for all seqn errors."""


class FormatError(SeqnError, ValueError):
    """
    Time or duration text did not match any recognized grammar.

    The message always lists the accepted literal forms so that operators
    writing sequences by hand can see what was expected.
    """

    def __init__(self, text: str, message: str = TIME_FORMATS_HELP):
        self.text = text
        super().__init__(f"{message}\n    got: {text!r}")


class SeqnParseError(SeqnError, SyntaxError):
    """
    SeqN source text violates the grammar.

    Attributes:
        line: 1-based line of the offending token
        column: 1-based column of the offending token
        position: 0-based character offset into the source
        context: Source excerpt with a caret under the offending character
    """

    def __init__(
        self,
        message: str,
        line: int,
        column: int,
        position: int,
        context: str = "",
    ):
        self.line = line
        self.column = column
        self.position = position
        self.context = context
        detail = f"\n{message}\nLine {line}, column {column}, position {position}\n"
        if context:
            detail += f"Context:\n{context}"
        super().__init__(detail)
        # SyntaxError keeps its own lineno/offset fields; fill them for tracebacks
        self.lineno = line
        self.offset = column


class ExtractionError(SeqnError):
    """
    The parse tree has a shape that cannot become a valid document.

    Examples: a missing @ID line, an empty @INPUT_PARAMS group, an
    @ENGINE directive under a plain command.
    """

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class SerializationError(SeqnError):
    """A document violates an invariant required to render it as SeqN."""
