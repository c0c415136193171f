#!/usr/bin/env python3
"""
seqn - SeqN sequencing language compiler and decompiler

Converts a spacecraft command sequence between its SeqN text form and its
seq-json document form. The direction follows the input file:

    *.seqn, *.txt   compiled to seq-json   (<name>.json)
    *.json          decompiled to SeqN     (<name>.seqn)

Usage:
    seqn inputdir/ outputdir/ --inputFile sequence.seqn

Examples:
    # Compile SeqN to seq-json
    seqn . out/ --inputFile sequence.seqn

    # Decompile seq-json back to SeqN, choosing the output name
    seqn . out/ --inputFile sequence.json --outputFile roundtrip.seqn

    # Verbose output
    seqn . out/ --inputFile sequence.seqn -vv
"""

import sys
from argparse import ArgumentParser, ArgumentDefaultsHelpFormatter
from pathlib import Path
from typing import Optional, Sequence

from .lib import (
    LOG,
    SeqnError,
    SeqnParseError,
    __version__,
    document_fromJson,
    document_toJson,
    document_toSeqn,
    seqn_toDocument,
    state_connectToLogger,
)
from .models import ProgramState, pipeline

SEQN_SUFFIXES = {".seqn", ".txt"}
JSON_SUFFIXES = {".json"}

# Define CLI arguments
parser = ArgumentParser(
    description="seqn - SeqN sequencing language compiler and decompiler",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument("inputdir", type=Path, help="Directory containing the input file")
parser.add_argument("outputdir", type=Path, help="Directory the converted file is written to")

parser.add_argument(
    "--inputFile", required=True, type=str, help="Input .seqn or .json file (relative to inputdir)"
)

parser.add_argument(
    "--outputFile",
    default="",
    type=str,
    help="Output filename (relative to outputdir). Defaults to the input name with the other extension",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve all file paths.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - inputSourceFile: Resolved path to the input file
            - outputTargetFile: Resolved path to the output file
            - direction: "compile" or "decompile"
            - envOK: True if environment is valid

    Exits:
        1 if the input file is missing or its extension is not recognized
    """
    state = inputstate.copy()
    LOG("Checking environment...", level=2)

    input_file = state.inputdir / state.inputFile
    if not input_file.exists():
        print(f"Error: Input file not found: {input_file}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)
    state.inputSourceFile = input_file
    LOG(f"Input file: {input_file}", level=2)

    suffix = input_file.suffix.lower()
    if suffix in SEQN_SUFFIXES:
        state.direction = "compile"
        default_name = input_file.with_suffix(".json").name
    elif suffix in JSON_SUFFIXES:
        state.direction = "decompile"
        default_name = Path(input_file.stem).with_suffix(".seqn").name
    else:
        print(f"Error: Unrecognized input extension {suffix!r} (expected .seqn, .txt or .json)", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.outputdir.mkdir(parents=True, exist_ok=True)
    state.outputTargetFile = state.outputdir / (state.outputFile or default_name)
    LOG(f"Output file: {state.outputTargetFile}", level=2)

    state.envOK = True
    return state


def source_read(inputstate: ProgramState) -> ProgramState:
    """
    Read the input file.

    Returns:
        ProgramState with added field:
            - sourceText: File contents

    Exits:
        1 if the file cannot be read
    """
    state = inputstate.copy()
    LOG("Reading source file...", level=1)
    try:
        state.sourceText = state.inputSourceFile.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error reading input file: {e}", file=sys.stderr)
        sys.exit(1)
    LOG(f"Read {len(state.sourceText)} characters from {state.inputSourceFile.name}", level=2)
    return state


def source_convert(inputstate: ProgramState) -> ProgramState:
    """
    Convert the source text in the direction chosen by env_check.

    Returns:
        ProgramState with added fields:
            - convertedText: Converted output text
            - convertResult: Dict with id, steps, requests

    Exits:
        1 on any parse, extraction or serialization error
    """
    state = inputstate.copy()
    LOG(f"Converting ({state.direction})...", level=1)
    try:
        if state.direction == "compile":
            document = seqn_toDocument(state.sourceText, debug=(state.verbosity >= 3))
            state.convertedText = document_toJson(document) + "\n"
        else:
            document = document_fromJson(state.sourceText)
            state.convertedText = document_toSeqn(document)
    except SeqnParseError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        sys.exit(1)
    except SeqnError as e:
        print(f"Conversion error: {e}", file=sys.stderr)
        sys.exit(1)

    state.convertResult = {
        "id": document.id,
        "steps": len(document.steps or ()),
        "requests": len(document.requests or ()),
    }
    return state


def output_write(inputstate: ProgramState) -> ProgramState:
    """
    Write the converted text to the output file.

    Exits:
        1 if the file cannot be written
    """
    state = inputstate.copy()
    try:
        state.outputTargetFile.write_text(state.convertedText, encoding="utf-8")
    except OSError as e:
        print(f"Error writing output file: {e}", file=sys.stderr)
        sys.exit(1)
    LOG(f"Wrote {len(state.convertedText)} characters to {state.outputTargetFile}", level=2)
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display conversion results.

    Returns:
        ProgramState unchanged (terminal pipeline stage)
    """
    state = inputstate.copy()
    if not state.convertResult:
        print("Error: Conversion failed", file=sys.stderr)
        sys.exit(1)

    LOG("✓ Conversion successful!", level=1)
    LOG(f"  Sequence: {state.convertResult['id']}", level=1)
    LOG(f"  Steps:    {state.convertResult['steps']}", level=1)
    LOG(f"  Requests: {state.convertResult['requests']}", level=1)
    LOG(f"  Output:   {state.outputTargetFile}", level=1)
    return state


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main entry point - convert one sequence file.

    Orchestrates the pipeline:
        1. env_check: Validate paths and pick the conversion direction
        2. source_read: Read the input file
        3. source_convert: Compile or decompile
        4. output_write: Write the result
        5. results_report: Display results to user

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])
    """
    options = parser.parse_args(argv)
    state = ProgramState.state_createFromNamespace(
        options=options, inputdir=options.inputdir, outputdir=options.outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, source_read, source_convert, output_write, results_report)


if __name__ == "__main__":
    main()
