import datetime

import pytest

from feednorm import (
    DecodeError,
    EntryMarshalError,
    FeedError,
    Media,
    RSS1Decoder,
    TimestampParseError,
    decode,
)

UTC = datetime.timezone.utc

RDF_FEED = """<?xml version="1.0"?>
<rdf:RDF
  xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
  xmlns="http://purl.org/rss/1.0/"
  xmlns:atom="http://www.w3.org/2005/Atom"
  xmlns:content="http://purl.org/rss/1.0/modules/content/"
  xmlns:dc="http://purl.org/dc/elements/1.1/"
  xmlns:media="http://search.yahoo.com/mrss/"
  xmlns:sy="http://purl.org/rss/1.0/modules/syndication/">
  <channel rdf:about="https://example.org/index.rdf">
    <title>RDF Example</title>
    <link>https://example.org/</link>
    <description>An RSS 1.0 feed</description>
    <dc:date>2006-01-02T15:04:05+01:00</dc:date>
    <sy:updatePeriod>Hourly</sy:updatePeriod>
    <sy:updateFrequency>4</sy:updateFrequency>
    <atom:link rel="hub" href="https://hub.example.org/" />
    <items>
      <rdf:Seq>
        <rdf:li rdf:resource="https://example.org/one" />
        <rdf:li rdf:resource="/two" />
      </rdf:Seq>
    </items>
  </channel>
  <item rdf:about="https://example.org/one">
    <title>One</title>
    <link>https://example.org/one</link>
    <dc:creator>Carol</dc:creator>
    <dc:date>2006-01-02T15:04:05Z</dc:date>
    <description>Plain</description>
    <content:encoded><![CDATA[<b>Rich</b>]]></content:encoded>
    <media:content url="https://example.org/one.png" type="image/png" />
  </item>
  <item rdf:about="/two">
    <title>Two</title>
    <link>https://example.org/two</link>
    <description>Just plain</description>
  </item>
</rdf:RDF>
"""


def test_decode_channel_fields():
    feed = decode("https://example.org/index.rdf", RDF_FEED)
    assert feed.format == "RSS1"
    assert feed.title == "RDF Example"
    assert feed.description == "An RSS 1.0 feed"
    assert feed.www_url == "https://example.org/"
    assert feed.hub_url == "https://hub.example.org/"
    assert feed.topic == ""
    assert feed.updated == datetime.datetime(2006, 1, 2, 14, 4, 5, tzinfo=UTC)
    assert feed.hourly_update_frequency == 0.25
    assert feed.error is None


def test_decode_items():
    one, two = decode("https://example.org/index.rdf", RDF_FEED).entries
    assert one.guid == "https://example.org/one"
    assert one.title == "One"
    assert one.www_url == "https://example.org/one"
    assert one.author == "Carol"
    assert one.published == datetime.datetime(2006, 1, 2, 15, 4, 5, tzinfo=UTC)
    assert one.content == "<b>Rich</b>"
    assert one.media == (Media(url="https://example.org/one.png", type="image/png"),)
    assert two.content == "Just plain"
    assert two.published is None
    assert two.media == ()


def test_relative_about_is_resolved_against_origin():
    _, two = decode("https://example.org/index.rdf", RDF_FEED).entries
    assert two.guid == "https://example.org/two"


def test_relative_about_without_origin():
    _, two = decode("", RDF_FEED).entries
    assert two.guid == "/two"


def test_decoder_requires_channel():
    xml = '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"></rdf:RDF>'
    with pytest.raises(DecodeError):
        RSS1Decoder().decode(xml)


def test_decoder_rejects_rss2():
    with pytest.raises(DecodeError):
        RSS1Decoder().decode('<rss version="2.0"><channel /></rss>')


def _rdf_with_items(items):
    return (
        '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"'
        ' xmlns="http://purl.org/rss/1.0/" xmlns:dc="http://purl.org/dc/elements/1.1/">'
        "<channel><title>Partial</title></channel>" + items + "</rdf:RDF>"
    )


def test_malformed_about_drops_only_that_item():
    xml = _rdf_with_items(
        '<item rdf:about="http://[broken/one"><title>bad</title></item>'
        '<item rdf:about="/two"><title>good</title></item>'
    )
    feed = decode("https://example.org/index.rdf", xml)
    assert [entry.title for entry in feed.entries] == ["good"]
    assert feed.entries[0].guid == "https://example.org/two"
    assert isinstance(feed.error, EntryMarshalError)
    assert feed.error.index == 0
    assert isinstance(feed.error.__cause__, FeedError)


def test_bad_item_date_drops_only_that_item():
    xml = _rdf_with_items(
        '<item rdf:about="/one"><title>one</title><dc:date>2006-01-02T15:04:05Z</dc:date></item>'
        '<item rdf:about="/two"><title>two</title><dc:date>around noon</dc:date></item>'
        '<item rdf:about="/three"><title>three</title></item>'
    )
    feed = decode("https://example.org/index.rdf", xml)
    assert [entry.title for entry in feed.entries] == ["one", "three"]
    assert feed.entries[0].published == datetime.datetime(2006, 1, 2, 15, 4, 5, tzinfo=UTC)
    assert isinstance(feed.error, EntryMarshalError)
    assert feed.error.index == 1
    assert isinstance(feed.error.__cause__, TimestampParseError)
