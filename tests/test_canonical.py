import pytest

from feednorm import EntryMarshalError, Media, TimestampParseError
from feednorm.canonical import (
    flatten_media,
    hourly_update_frequency,
    hub_links,
    marshal_entries,
    parse_int,
    resolve_content,
)
from feednorm.models import Entry
from feednorm.rss2 import RSS2Enclosure


@pytest.mark.parametrize(
    "period, frequency, expected",
    [
        ("hourly", 2, 0.5),
        ("daily", 2, 12.0),
        ("weekly", 2, 84.0),
        ("monthly", 1, 24.0 * 30.42),
        ("yearly", 1, 24.0 * 365.25),
        ("WEEKLY", 1, 168.0),
        ("fortnightly", 4, 6.0),
        ("", 2, 0.0),
        (None, 2, 0.0),
        ("daily", 0, 0.0),
        ("daily", -3, 0.0),
    ],
)
def test_hourly_update_frequency(period, frequency, expected):
    assert hourly_update_frequency(period, frequency) == pytest.approx(expected)


def test_parse_int():
    assert parse_int(" 3 ") == 3
    assert parse_int("three") == 0
    assert parse_int(None) == 0


def test_resolve_content():
    assert resolve_content("<p>rich</p>", "plain") == "<p>rich</p>"
    assert resolve_content("", "plain") == "plain"
    assert resolve_content("", "") == ""


def test_hub_links():
    assert hub_links(
        [("alternate", "a"), ("self", "s"), ("hub", "h"), ("", "x")]
    ) == ("s", "h")
    assert hub_links([]) == ("", "")


def test_flatten_media_drops_duplicates_and_blank_urls():
    enclosures = [
        RSS2Enclosure(url="https://e.com/a.mp3", type="audio/mpeg", length=10),
        RSS2Enclosure(url="", type="audio/mpeg"),
    ]
    media = [RSS2Enclosure(url="https://e.com/a.mp3", type="audio/mp3")]
    assert flatten_media(enclosures, media) == (
        Media(url="https://e.com/a.mp3", type="audio/mpeg"),
    )


def test_marshal_entries_keeps_going():
    def marshal_one(title):
        if title == "bad":
            raise TimestampParseError("bad date")
        return Entry(title=title)

    entries, error = marshal_entries(["a", "bad", "b", "bad"], marshal_one)
    assert [entry.title for entry in entries] == ["a", "b"]
    assert isinstance(error, EntryMarshalError)
    assert error.index == 1


def test_marshal_entries_without_failures():
    entries, error = marshal_entries([], lambda item: Entry())
    assert entries == ()
    assert error is None
