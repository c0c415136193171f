"""
Time and duration data models

Value types produced and consumed by ``seqn.lib.time``. All of them are
frozen dataclasses: a parsed time never changes after construction.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

Number = Union[int, float]


class TimeTypes(str, Enum):
    """
    The closed set of time tag grammars a time string can be checked against.

    Members:
        ABSOLUTE: ``YYYY-DDDThh:mm:ss[.mmm]``
        EPOCH: ``[+-][DDD][T]hh:mm:[ss][.f]`` offset from a named epoch
        RELATIVE: same as EPOCH without the sign
        EPOCH_SIMPLE: signed decimal number of seconds
        RELATIVE_SIMPLE: unsigned decimal number of seconds
    """

    ABSOLUTE = "ABSOLUTE"
    EPOCH = "EPOCH"
    RELATIVE = "RELATIVE"
    EPOCH_SIMPLE = "EPOCH_SIMPLE"
    RELATIVE_SIMPLE = "RELATIVE_SIMPLE"


@dataclass(frozen=True)
class ParsedDurationString:
    """
    A duration split into calendar-free units.

    The sign lives only in ``is_negative``; unit fields hold magnitudes.
    Whether the fields are carried (``minutes < 60`` and so on) depends on
    which parser produced the value:

        durationNumber_parse: fully carried, integer fields
        doyDurationTime_parse: literal tag fields, integer
        durationUnits_parse: literal fields, may be fractional

    Attributes:
        years: Whole 365-day years
        days: Days
        hours: Hours
        minutes: Minutes
        seconds: Seconds
        milliseconds: Milliseconds
        microseconds: Microseconds
        is_negative: True for a negative duration
    """
    years: Number = 0
    days: Number = 0
    hours: Number = 0
    minutes: Number = 0
    seconds: Number = 0
    milliseconds: Number = 0
    microseconds: Number = 0
    is_negative: bool = False


@dataclass(frozen=True)
class ParsedDoyString:
    """
    Calendar timestamp given as year and day-of-year.

    Attributes:
        year: Four digit year
        doy: 1-based day of year
        hour: Hour of day
        min: Minute of hour
        sec: Second of minute
        ms: Milliseconds, possibly fractional
        time: The time-of-day substring as written ("00:00:00" if absent)
    """
    year: int
    doy: int
    hour: int = 0
    min: int = 0
    sec: int = 0
    ms: Number = 0
    time: str = "00:00:00"


@dataclass(frozen=True)
class ParsedYmdString:
    """Calendar timestamp given as year, month and day of month."""
    year: int
    month: int
    day: int
    hour: int = 0
    min: int = 0
    sec: int = 0
    ms: Number = 0
    time: str = "00:00:00"


@dataclass(frozen=True)
class DoyTimeComponents:
    """Zero-padded string fields of a UTC instant."""
    year: str
    doy: str
    hours: str
    mins: str
    secs: str
    msecs: str


@dataclass(frozen=True)
class DurationTimeComponents:
    """
    Zero-padded string fields of a duration.

    ``days``, ``milliseconds`` and ``microseconds`` are empty strings when
    the field is zero so that callers can drop the segment entirely.
    """
    years: str
    days: str
    hours: str
    minutes: str
    seconds: str
    milliseconds: str
    microseconds: str
    is_negative: str
