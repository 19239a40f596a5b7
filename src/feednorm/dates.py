"""Lenient date parsing for feed timestamps.

Feeds disagree about almost everything date related: RFC-822 vs ISO-8601,
numeric offsets vs zone abbreviations, two-digit years, missing seconds.
``parse_timestamp`` tries a fixed list of layouts first and only then falls
back to a couple of heuristics before giving up.
"""

from __future__ import annotations

import datetime
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from dateutil import parser as dateutil_parser

from .errors import TimestampParseError

logger = logging.getLogger(__name__)

_UTC = datetime.timezone.utc

_RE_WHITESPACE = re.compile(r"\s+")

# Order matters: the first layout that matches wins.
TIME_LAYOUTS: tuple[str, ...] = (
    "%a, %d %b %Y %H:%M:%S %z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%a, %d %b %Y %H:%M:%S Z",
    "%a, %d %b %Y %H:%M:%S",
    "%d %b %Y %H:%M:%S %z",
    "%a, %d %b %Y %H:%M %z",
    "%a, %d %b %y %H:%M:%S %z",
    "%B %d, %Y",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
)

_MONTHS_RFC822: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}
_MONTHS_FULL: dict[str, int] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}
_RE_WEEKDAY_PREFIX = re.compile(r"^(?:mon|tue|wed|thu|fri|sat|sun),\s+", re.IGNORECASE)
_RE_WORD = re.compile(r"[A-Za-z]+")


@dataclass(frozen=True)
class _NumericLayout:
    """A layout with its name directives taken out.

    strptime reads ``%a``, ``%b`` and ``%B`` in the process locale. Feed dates
    use English names, which ``_numeric_names`` maps to numbers first.
    """

    weekday: bool
    month: Optional[str]  # "b", "B" or None
    layout: str

    @classmethod
    def from_layout(cls, layout: str) -> _NumericLayout:
        weekday = layout.startswith("%a, ")
        if weekday:
            layout = layout[len("%a, ") :]
        month = "B" if "%B" in layout else "b" if "%b" in layout else None
        return cls(weekday, month, layout.replace("%b", "%m").replace("%B", "%m"))

    def accepts(self, weekday: bool, months: frozenset[str]) -> bool:
        if weekday != self.weekday:
            return False
        return self.month in months if self.month else not months


_NUMERIC_LAYOUTS = tuple(_NumericLayout.from_layout(layout) for layout in TIME_LAYOUTS)

_ZONE_NAME_SUFFIXES = (" GMT", " UTC")
_ZONE_NAME_TZINFOS: dict[str, int] = {"GMT": 0, "UTC": 0}
# Two unrelated defaults: a field dateutil had to fill in differs between them
_FILL_IN_DEFAULTS = (
    datetime.datetime(2000, 1, 1, 0, 0, 0),
    datetime.datetime(2001, 2, 2, 1, 1, 1),
)


@dataclass(frozen=True)
class TimezoneTable:
    """Abbreviation -> numeric offset pairs, longest code first.

    This is a compatibility shim, not timezone resolution: abbreviations such
    as ``IST`` or ``CST`` mean different things in different regions and the
    table simply picks one.
    """

    zones: tuple[tuple[str, str], ...]

    def __post_init__(self) -> None:
        # sorted() is stable, so codes of equal length keep their given order
        ordered = tuple(sorted(self.zones, key=lambda zone: -len(zone[0])))
        object.__setattr__(self, "zones", ordered)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> TimezoneTable:
        return cls(tuple(mapping.items()))

    def substitute(self, value: str) -> Optional[str]:
        """Replace the first known abbreviation found in ``value``."""
        for code, offset in self.zones:
            if code in value:
                return value.replace(code, offset, 1)
        return None


DEFAULT_TIMEZONES = TimezoneTable.from_mapping(
    {
        "EEST": "+0300",
        "CEST": "+0200",
        "WEST": "+0100",
        "AKST": "-0900",
        "AKDT": "-0800",
        "HAST": "-1000",
        "HADT": "-0900",
        "CHST": "+1000",
        "AEST": "+1000",
        "AEDT": "+1100",
        "ACST": "+0930",
        "ACDT": "+1030",
        "AWST": "+0800",
        "NZST": "+1200",
        "NZDT": "+1300",
        "EET": "+0200",
        "CET": "+0100",
        "WET": "+0000",
        "BST": "+0100",
        "MSK": "+0300",
        "IST": "+0530",
        "JST": "+0900",
        "KST": "+0900",
        "AST": "-0400",
        "EST": "-0500",
        "EDT": "-0400",
        "CST": "-0600",
        "CDT": "-0500",
        "MST": "-0700",
        "MDT": "-0600",
        "PST": "-0800",
        "PDT": "-0700",
        "HST": "-1000",
        "SST": "-1100",
        "SDT": "-1000",
    }
)


def _ensure_utc(dt: datetime.datetime) -> datetime.datetime:
    """Naive values are taken to be UTC; aware ones are converted to it."""
    return dt.replace(tzinfo=_UTC) if dt.tzinfo is None else dt.astimezone(_UTC)


def _numeric_names(value: str) -> tuple[bool, frozenset[str], str]:
    """Strip a leading English weekday and turn month names into numbers.

    Returns whether a weekday was present, which month directives (``b`` for
    abbreviations, ``B`` for full names) the value can satisfy, and the
    rewritten value.
    """
    weekday = False
    match = _RE_WEEKDAY_PREFIX.match(value)
    if match:
        weekday = True
        value = value[match.end() :]

    months: set[str] = set()

    def replace(word_match: re.Match[str]) -> str:
        word = word_match.group(0).lower()
        number = _MONTHS_RFC822.get(word)
        if number is not None:
            months.add("b")
        if word in _MONTHS_FULL:
            months.add("B")
            number = _MONTHS_FULL[word]
        return word_match.group(0) if number is None else f"{number:02d}"

    value = _RE_WORD.sub(replace, value)
    return weekday, frozenset(months), value


def _parse_layouts(value: str) -> Optional[datetime.datetime]:
    weekday, months, numeric = _numeric_names(value)
    for layout in _NUMERIC_LAYOUTS:
        if not layout.accepts(weekday, months):
            continue
        try:
            parsed = datetime.datetime.strptime(numeric, layout.layout)
        except ValueError:
            continue
        try:
            return _ensure_utc(parsed)
        except (ValueError, OverflowError):
            return None
    return None


def _parse_zone_name(value: str) -> Optional[datetime.datetime]:
    try:
        first, second = (
            dateutil_parser.parse(value, default=default, tzinfos=_ZONE_NAME_TZINFOS)
            for default in _FILL_IN_DEFAULTS
        )
    except (ValueError, TypeError, OverflowError):
        return None
    if first != second:
        # Date or time fields are missing; dateutil would invent them
        return None
    return _ensure_utc(first)


@lru_cache(maxsize=8192)
def _parse_timestamp(value: str, timezones: TimezoneTable) -> datetime.datetime:
    parsed = _parse_layouts(value)
    if parsed is not None:
        return parsed

    if value.endswith(_ZONE_NAME_SUFFIXES):
        parsed = _parse_zone_name(value)
        if parsed is not None:
            logger.debug("Parsed %r with a zone name", value)
            return parsed

    substituted = timezones.substitute(value)
    if substituted is not None:
        logger.debug("Retrying %r as %r", value, substituted)
        parsed = _parse_layouts(substituted)
        if parsed is not None:
            return parsed

    raise TimestampParseError(value)


def parse_timestamp(
    value: Optional[str], *, timezones: TimezoneTable = DEFAULT_TIMEZONES
) -> Optional[datetime.datetime]:
    """Parse a feed date string into an aware UTC datetime.

    Args:
        value: Raw date text as found in the document
        timezones: Abbreviation table used by the substitution fallback

    Returns:
        The parsed datetime, or None when ``value`` is empty

    Raises:
        TimestampParseError: If no layout or fallback could make sense of it
    """
    if not value:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    if "\n" in candidate or "\r" in candidate or "\t" in candidate or "  " in candidate:
        candidate = _RE_WHITESPACE.sub(" ", candidate)
    try:
        return _parse_timestamp(candidate, timezones)
    except TimestampParseError:
        raise TimestampParseError(value) from None
