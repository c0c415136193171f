"""
Conversion state and the stage runner

The CLI converts one file through a chain of stages. Each stage takes a
ProgramState, copies it, fills in its own fields and hands the copy on;
pipeline() threads a state through a list of such stages.
"""

import dataclasses
from argparse import Namespace
from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
from typing import Callable, Dict, Literal, Optional, Type, TypeVar

PS = TypeVar("PS", bound="ProgramState")

Direction = Literal["compile", "decompile"]


@dataclass
class ProgramState:
    """
    Central state container for the conversion pipeline (state bus pattern).

    Each stage receives a copy of the state and fills in the fields it owns.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, inputFile, outputFile
        - env_check: inputSourceFile, outputTargetFile, direction, envOK
        - source_read: sourceText
        - source_convert: convertedText, convertResult
        - output_write: (writes outputTargetFile)
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory containing the input file
        outputdir: Directory the converted file is written to
        verbosity: Logging verbosity level (0-3)
        inputFile: Input filename (relative to inputdir)
        outputFile: Output filename; derived from inputFile when empty
        envOK: Environment validation passed
        inputSourceFile: Resolved path to the input file
        outputTargetFile: Resolved path to the output file
        direction: "compile" (SeqN to seq-json) or "decompile" (seq-json to SeqN)
        sourceText: Contents of the input file
        convertedText: Conversion output
        convertResult: Summary (document id, step and request counts)
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    inputFile: str = field(default="")
    outputFile: str = field(default="")

    # Pipeline state
    envOK: bool = field(default=False)
    inputSourceFile: Path = field(default=Path("/"))
    outputTargetFile: Path = field(default=Path("/"))
    direction: Direction = field(default="compile")
    sourceText: str = field(default="")
    convertedText: str = field(default="")
    convertResult: Optional[Dict] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Build the initial state from parsed CLI options.

        Options that are not ProgramState fields are ignored.

        Args:
            options: Parsed CLI arguments (inputFile, outputFile, verbosity)
            inputdir: Directory containing the input file
            outputdir: Directory for the converted file

        Returns:
            ProgramState holding every recognized CLI option
        """
        valid_fields = {f.name for f in dataclasses.fields(cls)}
        filtered_options = {k: v for k, v in vars(options).items() if k in valid_fields}
        return cls(**{**filtered_options, "inputdir": inputdir, "outputdir": outputdir})

    def copy(self: PS) -> PS:
        """Shallow copy, so a stage never mutates the state it was given."""
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Run ``stages`` left to right, feeding each the state the previous one
    returned.

    Example:
        final_state = pipeline(initial_state, env_check, source_read, source_convert)

    is equivalent to:
        source_convert(source_read(env_check(initial_state)))
    """
    return reduce(lambda state, stage: stage(state), stages, initial_state)
