"""Helpers shared by every decoder when mapping onto the canonical model."""

from __future__ import annotations

import datetime
import logging
from typing import Callable, Iterable, Optional, Protocol, Sequence, TypeVar

from .dates import parse_timestamp
from .errors import EntryMarshalError, FeedError, TimestampParseError
from .models import Entry, Media

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# Months and years use averaged calendar lengths
_HOURS_PER_PERIOD: dict[str, float] = {
    "hourly": 1.0,
    "daily": 24.0,
    "weekly": 24.0 * 7.0,
    "monthly": 24.0 * 30.42,
    "yearly": 24.0 * 365.25,
}


class _Attachment(Protocol):
    url: str
    type: str


def parse_int(value: Optional[str]) -> int:
    if not value:
        return 0
    try:
        return int(value.strip())
    except ValueError:
        return 0


def hourly_update_frequency(period: Optional[str], frequency: int) -> float:
    """Derive the update frequency from syndication-module hints.

    A missing period or a non-positive frequency means there is no hint; an
    unknown period is computed as daily.
    """
    if not period or not period.strip() or frequency <= 0:
        return 0.0
    hours = _HOURS_PER_PERIOD.get(period.strip().lower(), _HOURS_PER_PERIOD["daily"])
    return hours / frequency


def hub_links(links: Iterable[tuple[str, str]]) -> tuple[str, str]:
    """Pick the PubSubHubbub topic and hub out of ``(rel, href)`` pairs."""
    topic = ""
    hub_url = ""
    for rel_attr, href in links:
        for rel in rel_attr.split():
            if rel == "self":
                topic = href
                break
            elif rel == "hub":
                hub_url = href
                break
    return topic, hub_url


def resolve_content(encoded: Optional[str], plain: Optional[str]) -> str:
    return encoded or plain or ""


def marshal_timestamp(
    value: Optional[str], url: str = ""
) -> tuple[Optional[datetime.datetime], Optional[TimestampParseError]]:
    """Parse a feed-level date, reporting failure instead of raising it."""
    try:
        return parse_timestamp(value), None
    except TimestampParseError as e:
        logger.warning("Ignoring unparseable feed date in %s: %s", url or "<input>", e)
        return None, e


def flatten_media(
    enclosures: Iterable[_Attachment],
    media_content: Iterable[_Attachment],
    *,
    include_enclosures: bool = True,
    include_media: bool = True,
) -> tuple[Media, ...]:
    sources: list[Iterable[_Attachment]] = []
    if include_enclosures:
        sources.append(enclosures)
    if include_media:
        sources.append(media_content)

    seen: set[str] = set()
    media: list[Media] = []
    for source in sources:
        for attachment in source:
            if not attachment.url or attachment.url in seen:
                continue
            seen.add(attachment.url)
            media.append(Media(url=attachment.url, type=attachment.type or ""))
    return tuple(media)


def marshal_entries(
    items: Sequence[_T], marshal_one: Callable[[_T], Entry], url: str = ""
) -> tuple[tuple[Entry, ...], Optional[EntryMarshalError]]:
    """Marshal every item, leaving out the ones that fail.

    Returns the entries that could be marshalled and the first failure.
    """
    entries: list[Entry] = []
    first_error: Optional[EntryMarshalError] = None
    for index, item in enumerate(items):
        try:
            entries.append(marshal_one(item))
        except FeedError as e:
            error = EntryMarshalError(index, e)
            error.__cause__ = e
            logger.warning("Dropping entry from %s: %s", url or "<input>", error)
            if first_error is None:
                first_error = error
    return tuple(entries), first_error
