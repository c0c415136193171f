"""
Time and duration parsing, validation and normalization

Spacecraft sequences express time in several closed forms:

    Absolute        2024-045T12:00:00.250
    Relative        R00:10:00, R001T00:00:00, R30.5
    Epoch relative  E+001T00:00:00, E-15
    Duration        1d 2h 30m 500ms, -002T00:45:00.010, 90

This module checks those forms (``time_validate``), parses durations
(``durationString_parse`` and its three producers), converts between
day-of-year timestamps and instants (``doyTime_get`` and
``unixEpochTime_get``), and rebalances relative times
(``duration_balance``).

Two duration producers deliberately differ in what they guarantee:

    durationUnits_parse   "1h 90m" -> hours=1, minutes=90  (as written)
    durationNumber_parse  "5400" seconds -> hours=1, minutes=30  (carried)

Day overflow in the carried path uses a fixed 365-day year. Balancing goes
through real calendar arithmetic instead; the two rules are kept apart.

Instants are timezone-aware ``datetime`` objects in UTC. Naive datetimes
handed to this module are taken to already be UTC.
"""

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, Union

from ..config import appsettings
from ..models.time import (
    DoyTimeComponents,
    DurationTimeComponents,
    Number,
    ParsedDoyString,
    ParsedDurationString,
    ParsedYmdString,
    TimeTypes,
)
from .errors import FormatError
from .log import LOG

DurationUnit = Literal["days", "hours", "minutes", "seconds", "milliseconds", "microseconds"]
ParsedTime = Union[ParsedDoyString, ParsedYmdString, ParsedDurationString]

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MS_PER_DAY = 86_400_000
DAYS_PER_YEAR = 365

ABSOLUTE_TIME = re.compile(r"^(\d{4})-(\d{3})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d{3}))?$")
RELATIVE_TIME = re.compile(
    r"^(?P<doy>[0-9]{3})?(T)?(?P<hr>[0-9]{2}):(?P<mins>[0-9]{2}):(?P<secs>[0-9]{2})?(\.)?(?P<ms>[0-9]+)?$"
)
RELATIVE_SIMPLE = re.compile(r"^(\d+)(\.[0-9]+)?$")
EPOCH_TIME = re.compile(
    r"^(?P<sign>[+-]?)(?P<doy>[0-9]{3})?(T)?(?P<hr>[0-9]{2}):(?P<mins>[0-9]{2}):(?P<secs>[0-9]{2})?(\.)?(?P<ms>[0-9]+)?$"
)
EPOCH_SIMPLE = re.compile(r"(^[+-]?)(\d+)(\.[0-9]+)?$")

PATTERNS: dict[TimeTypes, re.Pattern] = {
    TimeTypes.ABSOLUTE: ABSOLUTE_TIME,
    TimeTypes.EPOCH: EPOCH_TIME,
    TimeTypes.RELATIVE: RELATIVE_TIME,
    TimeTypes.EPOCH_SIMPLE: EPOCH_SIMPLE,
    TimeTypes.RELATIVE_SIMPLE: RELATIVE_SIMPLE,
}

_VALUE = r"[+-]?\d+(?:\.\d+)?"
DURATION_UNITS = re.compile(
    r"^(?P<is_negative>-)?"
    rf"(?:\s*(?P<years>{_VALUE})y)?"
    rf"(?:\s*(?P<days>{_VALUE})d)?"
    rf"(?:\s*(?P<hours>{_VALUE})h)?"
    rf"(?:\s*(?P<minutes>{_VALUE})m(?!s))?"
    rf"(?:\s*(?P<seconds>{_VALUE})s)?"
    rf"(?:\s*(?P<milliseconds>{_VALUE})ms)?"
    rf"(?:\s*(?P<microseconds>{_VALUE})us)?$"
)
DURATION_NUMBER = re.compile(r"^(?P<sign>[+-]?)(?P<int>\d+)(?P<decimal>\.\d+)?$")
UNIX_EPOCH_TIME = re.compile(r"(\d{4})-(\d{3})T(\d{2}):(\d{2}):(\d{2})\.?(\d{3})?")

UNIT_FIELDS = ("years", "days", "hours", "minutes", "seconds", "milliseconds", "microseconds")

# unit -> (next finer unit, how many of it make one unit)
FINER_UNIT: dict[str, tuple[str, int]] = {
    "years": ("days", DAYS_PER_YEAR),
    "days": ("hours", 24),
    "hours": ("minutes", 60),
    "minutes": ("seconds", 60),
    "seconds": ("milliseconds", 1000),
    "milliseconds": ("microseconds", 1000),
}

# carry order, finest first: (unit, coarser unit, how many units make one coarser)
CARRY_CHAIN = (
    ("microseconds", "milliseconds", 1000),
    ("milliseconds", "seconds", 1000),
    ("seconds", "minutes", 60),
    ("minutes", "hours", 60),
    ("hours", "days", 24),
    ("days", "years", DAYS_PER_YEAR),
)


def number_normalize(value: float) -> Number:
    """Return ``value`` as an int when it has no fractional part."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _pad(value: Number, width: int) -> str:
    return str(number_normalize(value)).zfill(width)


def _calendar_pattern(num_decimals: int) -> re.Pattern:
    return re.compile(
        r"^(?P<year>\d{4})-(?:(?P<month>(?:[0]?[0-9])|(?:[1][0-2]))-(?P<day>(?:[0-2]?[0-9])|(?:[3][0-1]))"
        r"|(?P<doy>\d{1,3}))"
        r"(?:T(?P<time>(?P<hour>[0-9]|[0-2][0-9])(?::(?P<min>[0-9]|(?:[0-5][0-9])))?"
        rf"(?::(?P<sec>[0-9]|(?:[0-5][0-9]))(?P<dec>\.\d{{1,{num_decimals}}})?)?)?)?$",
        re.IGNORECASE,
    )


def time_validate(time: str, kind: TimeTypes) -> bool:
    """
    Check a time string against one of the fixed time grammars.

    Args:
        time: Time text without its A/R/E/G prefix
        kind: Which grammar to check against

    Returns:
        True if ``time`` matches the grammar for ``kind``

    Example:
        >>> time_validate('2022-012T12:34:56.789', TimeTypes.ABSOLUTE)
        True
        >>> time_validate('12:34:56.789', TimeTypes.ABSOLUTE)
        False
    """
    return PATTERNS[TimeTypes(kind)].search(time) is not None


def durationUnits_parse(duration: str) -> Optional[ParsedDurationString]:
    """
    Parse a unit-suffixed duration such as ``-1d 2h 30m 15s 500ms``.

    Fields must appear in the order y, d, h, m, s, ms, us and each is
    optional. Values keep exactly what was written: nothing is carried, so
    ``90m`` stays ``minutes=90``. Fractions are kept as floats.

    A leading ``-`` negates the whole duration. A sign written on a single
    field is folded into ``is_negative`` as well and the field keeps its
    magnitude.

    Args:
        duration: Duration text

    Returns:
        ParsedDurationString, or None if the text is not in unit form
    """
    match = DURATION_UNITS.match(duration)
    if match is None:
        return None

    is_negative = match.group("is_negative") is not None
    fields: dict[str, Number] = {}
    for name in UNIT_FIELDS:
        raw = match.group(name)
        if raw is None:
            fields[name] = 0
            continue
        if raw.startswith("-"):
            is_negative = True
        fields[name] = number_normalize(abs(float(raw)))
    return ParsedDurationString(**fields, is_negative=is_negative)


def durationNumber_parse(duration: str, units: DurationUnit = "microseconds") -> Optional[ParsedDurationString]:
    """
    Parse a bare signed decimal number of ``units`` and carry it upward.

    The fractional part becomes a whole count of the next finer unit
    (``1.5`` hours is 1 hour 30 minutes). Fractions of a microsecond are
    dropped. Overflow then carries from microseconds all the way to years,
    using a 365-day year.

    Args:
        duration: Number text, e.g. ``"-90.25"``
        units: Unit the number is expressed in

    Returns:
        Fully carried ParsedDurationString, or None if the text is not a
        plain number

    Example:
        >>> durationNumber_parse("3723", "seconds")
        ParsedDurationString(years=0, days=0, hours=1, minutes=2, seconds=3, ...)
    """
    if units not in UNIT_FIELDS:
        raise ValueError(f"Unknown duration unit: {units!r}")
    match = DURATION_NUMBER.match(duration)
    if match is None:
        return None

    fields = {name: 0 for name in UNIT_FIELDS}
    fields[units] = int(match.group("int"))
    decimal = match.group("decimal")
    if decimal and units in FINER_UNIT:
        finer, ratio = FINER_UNIT[units]
        fields[finer] = round(float(decimal) * ratio)

    for unit, coarser, ratio in CARRY_CHAIN:
        carry, fields[unit] = divmod(fields[unit], ratio)
        fields[coarser] += carry

    return ParsedDurationString(**fields, is_negative=match.group("sign") == "-")


def doyDurationTime_parse(doy_time: str) -> Optional[ParsedDurationString]:
    """
    Parse an epoch or relative time tag (``[+-][DDD][T]hh:mm:[ss][.f]``).

    The fraction is read as a decimal fraction of a second: the first three
    digits are milliseconds and the next three microseconds, so ``.5`` is
    500 ms and ``.010`` is 10 ms. The digits are deliberately not read as an
    integer count of milliseconds, which would make ``.5`` mean 5 ms.

    Args:
        doy_time: Tag text without its R/E prefix

    Returns:
        ParsedDurationString with the tag's fields as written, or None
    """
    match = EPOCH_TIME.match(doy_time)
    if match is None:
        return None

    fraction = (match.group("ms") or "")[:6].ljust(6, "0")
    return ParsedDurationString(
        days=int(match.group("doy") or 0),
        hours=int(match.group("hr") or 0),
        minutes=int(match.group("mins") or 0),
        seconds=int(match.group("secs") or 0),
        milliseconds=int(fraction[:3]),
        microseconds=int(fraction[3:]),
        is_negative=match.group("sign") == "-",
    )


def doyOrYmdTime_parse(date_string: Optional[str], num_decimals: Optional[int] = None) -> Optional[ParsedTime]:
    """
    Parse a DOY or year-month-day timestamp, falling back to a duration tag.

    Accepted calendar forms (case-insensitive ``T``)::

        2024-045                 2024-02-14
        2024-045T7               2024-045T07:30
        2024-045T07:30:15.125    2024-02-14T07:30:15.125

    Missing time fields default to zero and ``time`` to ``"00:00:00"``.

    Args:
        date_string: Text to parse
        num_decimals: Maximum fractional-second digits (defaults to the
            ``decimal_precision`` setting, 6)

    Returns:
        ParsedDoyString, ParsedYmdString, ParsedDurationString (for an
        epoch/relative tag), or None when nothing matches
    """
    if num_decimals is None:
        num_decimals = appsettings.decimal_precision
    text = date_string or ""

    match = _calendar_pattern(num_decimals).match(text)
    if match:
        parts = match.groupdict()
        common = dict(
            year=int(parts["year"]),
            hour=int(parts["hour"] or 0),
            min=int(parts["min"] or 0),
            sec=int(parts["sec"] or 0),
            ms=number_normalize(round(float(parts["dec"] or ".0") * 1000, num_decimals)),
            time=parts["time"] or "00:00:00",
        )
        if parts["doy"] is not None:
            return ParsedDoyString(doy=int(parts["doy"]), **common)
        return ParsedYmdString(month=int(parts["month"]), day=int(parts["day"]), **common)

    return doyDurationTime_parse(text)


def durationString_parse(duration: str, units: DurationUnit = "microseconds") -> ParsedDurationString:
    """
    Parse any accepted duration text.

    Forms are tried in order:

        1. unit-suffixed fields (``durationUnits_parse``, not carried)
        2. an epoch/relative tag (``doyDurationTime_parse``)
        3. a bare number of ``units`` (``durationNumber_parse``, carried)

    Args:
        duration: Duration text
        units: Unit for the bare number form

    Returns:
        ParsedDurationString

    Raises:
        FormatError: If the text matches none of the forms

    Example:
        >>> durationString_parse('1h 30m')
        ParsedDurationString(years=0, days=0, hours=1, minutes=30, ...)
    """
    parsed = durationUnits_parse(duration)
    if parsed is not None:
        return parsed

    tag = doyOrYmdTime_parse(duration)
    if isinstance(tag, ParsedDurationString):
        return tag

    parsed = durationNumber_parse(duration, units)
    if parsed is not None:
        return parsed

    raise FormatError(duration)


def duration_toDoy(duration: ParsedDurationString) -> str:
    """
    Anchor a duration on a calendar timestamp.

    Year ``1970`` stands in for "no years"; the day is at least 1. Only
    used as an intermediate step of ``duration_balance``.

    Example:
        >>> duration_toDoy(ParsedDurationString(days=1, minutes=45, milliseconds=10))
        '1970-001T00:45:00.010'
    """
    year = "1970" if duration.years == 0 else _pad(math.floor(duration.years), 4)
    day = max(1, math.floor(duration.days))
    return (
        f"{year}-{day:03d}T{_pad(math.floor(duration.hours), 2)}:{_pad(math.floor(duration.minutes), 2)}"
        f":{_pad(math.floor(duration.seconds), 2)}.{_pad(math.floor(duration.milliseconds), 3)}"
    )


def duration_balance(time: str) -> str:
    """
    Re-express a relative time with every field in range.

    The duration is anchored on a 1970 timestamp, turned into a real instant
    (which performs the carry with calendar arithmetic) and read back. The
    day segment is written only when the input had days or the carry spilled
    into a second day.

    Args:
        time: Relative time or duration text (bare numbers are seconds)

    Returns:
        ``[-][DDDT]hh:mm:ss.mmm``

    Raises:
        FormatError: If ``time`` is not a duration

    Example:
        >>> duration_balance('-002T00:60:00.010')
        '-002T01:00:00.010'
    """
    duration = durationString_parse(time, "seconds")
    anchored = duration_toDoy(duration)
    balanced = doyOrYmdTime_parse(doyTime_get(date_fromUnixEpoch(unixEpochTime_get(anchored))))
    LOG(f"Balancing {time!r} via {anchored!r}", level=3)

    day = ""
    if duration.days > 0 or balanced.doy > 1:
        day = f"{_pad(balanced.doy - (0 if duration.days > 0 else 1), 3)}T"
    sign = "-" if duration.is_negative else ""
    return f"{sign}{day}{_pad(balanced.hour, 2)}:{_pad(balanced.min, 2)}:{_pad(balanced.sec, 2)}.{_pad(balanced.ms, 3)}"


def utc_coerce(date: datetime) -> datetime:
    """Return ``date`` as an aware UTC datetime (naive input is taken as UTC)."""
    if date.tzinfo is None:
        return date.replace(tzinfo=timezone.utc)
    return date.astimezone(timezone.utc)


def doy_get(date: datetime) -> int:
    """
    Day of year, 1-based.

    Counted in whole days from midnight of the last day of the previous
    year, so 3 January is day 3.
    """
    date = utc_coerce(date)
    start = datetime(date.year, 1, 1, tzinfo=timezone.utc) - timedelta(days=1)
    return (date - start) // timedelta(milliseconds=MS_PER_DAY)


def doyTimeComponents_get(date: datetime) -> DoyTimeComponents:
    """Zero-padded year, day-of-year and time fields of an instant."""
    date = utc_coerce(date)
    return DoyTimeComponents(
        year=_pad(date.year, 4),
        doy=_pad(doy_get(date), 3),
        hours=_pad(date.hour, 2),
        mins=_pad(date.minute, 2),
        secs=_pad(date.second, 2),
        msecs=_pad(date.microsecond // 1000, 3),
    )


def durationTimeComponents_get(duration: ParsedDurationString) -> DurationTimeComponents:
    """
    Zero-padded fields of a duration.

    Example:
        >>> durationTimeComponents_get(ParsedDurationString(years=2, days=3, hours=10, minutes=30, seconds=45))
        DurationTimeComponents(years='0002', days='003', hours='10', minutes='30',
                               seconds='45', milliseconds='', microseconds='', is_negative='')
    """
    return DurationTimeComponents(
        years=_pad(duration.years, 4),
        days=_pad(duration.days, 3) if duration.days != 0 else "",
        hours=_pad(duration.hours, 2),
        minutes=_pad(duration.minutes, 2),
        seconds=_pad(duration.seconds, 2),
        milliseconds=_pad(duration.milliseconds, 3) if duration.milliseconds != 0 else "",
        microseconds=_pad(duration.microseconds, 3) if duration.microseconds != 0 else "",
        is_negative="-" if duration.is_negative else "",
    )


def durationTag_make(duration: ParsedDurationString) -> str:
    """
    Render a duration as an epoch/relative tag, ``[-][DDDT]hh:mm:ss[.ffffff]``.

    Years fold into days at 365 days each. The fraction is written only when
    nonzero: three digits of milliseconds, plus three of microseconds when
    those are set. Output parses back through ``doyDurationTime_parse``.

    Example:
        >>> durationTag_make(durationNumber_parse("90061.5", "seconds"))
        '001T01:01:01.500'
    """
    if duration.years:
        duration = ParsedDurationString(
            days=duration.years * DAYS_PER_YEAR + duration.days,
            hours=duration.hours,
            minutes=duration.minutes,
            seconds=duration.seconds,
            milliseconds=duration.milliseconds,
            microseconds=duration.microseconds,
            is_negative=duration.is_negative,
        )
    parts = durationTimeComponents_get(duration)
    tag = f"{parts.is_negative}{parts.days + 'T' if parts.days else ''}{parts.hours}:{parts.minutes}:{parts.seconds}"
    if parts.microseconds:
        tag += f".{parts.milliseconds or '000'}{parts.microseconds}"
    elif parts.milliseconds:
        tag += f".{parts.milliseconds}"
    return tag


def doyTime_get(date: datetime, include_msecs: bool = True) -> str:
    """
    Day-of-year timestamp of an instant.

    Milliseconds are appended only when ``include_msecs`` is set and the
    instant has a nonzero millisecond part.

    Example:
        >>> doyTime_get(date_fromUnixEpoch(1577779200000))
        '2019-365T08:00:00'

    Note:
        Inverse of ``unixEpochTime_get``.
    """
    parts = doyTimeComponents_get(date)
    timestamp = f"{parts.year}-{parts.doy}T{parts.hours}:{parts.mins}:{parts.secs}"
    if include_msecs and utc_coerce(date).microsecond // 1000 > 0:
        timestamp += f".{parts.msecs}"
    return timestamp


def unixEpochTime_get(doy_timestamp: str) -> int:
    """
    Milliseconds since the Unix epoch for a day-of-year timestamp.

    Out-of-range fields (``00:60:00``) roll over into the next unit. A
    missing millisecond group counts as zero; text with no timestamp in it
    yields 0.

    Example:
        >>> unixEpochTime_get('2019-365T08:00:00.000')
        1577779200000

    Note:
        Inverse of ``doyTime_get``.
    """
    match = UNIX_EPOCH_TIME.search(doy_timestamp)
    if match is None:
        return 0

    year, doy, hours, mins, secs, msecs = match.groups(default="0")
    instant = datetime(int(year), 1, 1, tzinfo=timezone.utc) + timedelta(
        days=int(doy) - 1,
        hours=int(hours),
        minutes=int(mins),
        seconds=int(secs),
        milliseconds=int(msecs),
    )
    return (instant - UNIX_EPOCH) // timedelta(milliseconds=1)


def date_fromUnixEpoch(milliseconds: int) -> datetime:
    """UTC instant for a count of milliseconds since the Unix epoch."""
    return UNIX_EPOCH + timedelta(milliseconds=milliseconds)
