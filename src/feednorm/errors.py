from __future__ import annotations

from typing import Optional, Sequence


class FeedError(ValueError):
    """Base class for everything this package raises."""


class DecodeError(FeedError):
    """The document does not match the structure of the attempted vocabulary."""


class TimestampParseError(FeedError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Unrecognized time format: {value}")
        self.value = value


class EntryMarshalError(FeedError):
    def __init__(self, index: int, reason: FeedError) -> None:
        super().__init__(f"Entry {index} could not be marshalled: {reason}")
        self.index = index
        self.reason = reason


class NoRecognizedFormatError(DecodeError):
    """Every vocabulary was tried and none of them accepted the document.

    ``autodiscovery_url`` is set when the document looked like an HTML page
    advertising a feed, so the caller can retry against that URL.
    """

    def __init__(
        self,
        url: str,
        errors: Sequence[DecodeError] = (),
        autodiscovery_url: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        if message is None:
            details = "; ".join(str(e) for e in errors) or "no decoder accepted it"
            message = f"Unrecognized feed format for {url or '<input>'}: {details}"
        super().__init__(message)
        self.url = url
        self.errors = tuple(errors)
        self.autodiscovery_url = autodiscovery_url
