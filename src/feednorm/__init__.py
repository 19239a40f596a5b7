from .atom import AtomDecoder
from .dates import DEFAULT_TIMEZONES, TimezoneTable, parse_timestamp
from .errors import (
    DecodeError,
    EntryMarshalError,
    FeedError,
    NoRecognizedFormatError,
    TimestampParseError,
)
from .main import decode, extract_autodiscovery_link, extract_meta_refresh_url
from .models import Entry, Feed, FeedFormat, Media
from .rss1 import RSS1Decoder
from .rss2 import RSS2Decoder

__all__ = [
    "AtomDecoder",
    "DEFAULT_TIMEZONES",
    "DecodeError",
    "Entry",
    "EntryMarshalError",
    "Feed",
    "FeedError",
    "FeedFormat",
    "Media",
    "NoRecognizedFormatError",
    "RSS1Decoder",
    "RSS2Decoder",
    "TimestampParseError",
    "TimezoneTable",
    "decode",
    "extract_autodiscovery_link",
    "extract_meta_refresh_url",
    "parse_timestamp",
]
