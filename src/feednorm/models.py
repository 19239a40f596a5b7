from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Literal, Optional

from .errors import FeedError

FeedFormat = Literal["RSS2", "RSS1", "Atom"]

FEED_FORMATS: tuple[FeedFormat, ...] = ("RSS2", "Atom", "RSS1")


@dataclass(frozen=True)
class Media:
    """A flattened enclosure or media attachment."""

    url: str
    type: str = ""


@dataclass(frozen=True)
class Entry:
    guid: str = ""
    author: str = ""
    title: str = ""
    www_url: str = ""
    content: str = ""
    published: Optional[datetime.datetime] = None
    media: tuple[Media, ...] = ()


@dataclass(frozen=True)
class Feed:
    """Format-agnostic view of a decoded feed document.

    ``updated`` and every ``Entry.published`` are timezone-aware UTC datetimes,
    or ``None`` when the source omitted the value or it could not be parsed.
    ``error`` holds the first non-fatal error met while marshalling; the
    entries that failed are not part of ``entries``.
    """

    format: FeedFormat
    title: str = ""
    description: str = ""
    updated: Optional[datetime.datetime] = None
    www_url: str = ""
    topic: str = ""
    hub_url: str = ""
    hourly_update_frequency: float = 0.0
    entries: tuple[Entry, ...] = ()
    url: str = ""
    error: Optional[FeedError] = None
