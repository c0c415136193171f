"""
Models package for seqn

Contains data structures and type definitions for the conversion pipeline.
"""

from .state import ProgramState, pipeline
from .document import Document
from .time import (
    TimeTypes,
    ParsedDurationString,
    ParsedDoyString,
    ParsedYmdString,
    DoyTimeComponents,
    DurationTimeComponents,
)

__all__ = [
    "ProgramState",
    "pipeline",
    "Document",
    "TimeTypes",
    "ParsedDurationString",
    "ParsedDoyString",
    "ParsedYmdString",
    "DoyTimeComponents",
    "DurationTimeComponents",
]
