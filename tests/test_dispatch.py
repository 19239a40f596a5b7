import pytest

from feednorm import (
    NoRecognizedFormatError,
    decode,
    extract_autodiscovery_link,
    extract_meta_refresh_url,
)
from feednorm import main

RSS2_DOC = '<rss version="2.0"><channel><title>r</title></channel></rss>'
ATOM_DOC = '<feed xmlns="http://www.w3.org/2005/Atom"><title>a</title></feed>'
RDF_DOC = (
    '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"'
    ' xmlns="http://purl.org/rss/1.0/"><channel><title>d</title></channel></rdf:RDF>'
)

HTML_PAGE = b"""<!DOCTYPE html>
<html>
  <head>
    <title>A blog</title>
    <link rel="stylesheet" href="/style.css">
    <link rel="alternate" type="application/rss+xml" title="RSS" href="/feed.xml">
  </head>
  <body><p>Hello</p></body>
</html>
"""


@pytest.mark.parametrize(
    "document, expected",
    [(RSS2_DOC, "RSS2"), (ATOM_DOC, "Atom"), (RDF_DOC, "RSS1")],
)
def test_format_is_set_by_the_decoder(document, expected):
    assert decode("", document).format == expected


def test_declared_content_type_is_tried_first(monkeypatch):
    attempts = []
    for feed_format, decoder in list(main.DECODERS.items()):

        def recording(root, _original=decoder.decode_root, _format=feed_format):
            attempts.append(_format)
            return _original(root)

        monkeypatch.setattr(decoder, "decode_root", recording)

    feed = decode("", ATOM_DOC, content_type="application/rss+xml; charset=utf-8")
    assert feed.format == "Atom"
    assert attempts == ["RSS2", "Atom"]


def test_sniffed_format_is_tried_first(monkeypatch):
    attempts = []
    for feed_format, decoder in list(main.DECODERS.items()):

        def recording(root, _original=decoder.decode_root, _format=feed_format):
            attempts.append(_format)
            return _original(root)

        monkeypatch.setattr(decoder, "decode_root", recording)

    assert decode("", RDF_DOC).format == "RSS1"
    assert attempts == ["RSS1"]


def test_html_page_yields_autodiscovery_link():
    with pytest.raises(NoRecognizedFormatError) as excinfo:
        decode("https://blog.example.com/", HTML_PAGE)
    assert excinfo.value.autodiscovery_url == "https://blog.example.com/feed.xml"
    assert excinfo.value.url == "https://blog.example.com/"


def test_autodiscovery_is_not_consulted_for_feeds(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("autodiscovery should not run")

    monkeypatch.setattr(main, "extract_autodiscovery_link", fail)
    monkeypatch.setattr(main, "extract_meta_refresh_url", fail)
    for document in (RSS2_DOC, ATOM_DOC, RDF_DOC):
        decode("https://example.com/feed", document)


def test_unknown_xml_document():
    with pytest.raises(NoRecognizedFormatError) as excinfo:
        decode("", "<catalog><book>x</book></catalog>")
    assert len(excinfo.value.errors) == 3
    assert excinfo.value.autodiscovery_url is None


def test_opml_is_reported():
    opml = '<opml version="1.0"><head><title>Subscriptions</title></head><body /></opml>'
    with pytest.raises(NoRecognizedFormatError, match="OPML"):
        decode("", opml)


def test_empty_content():
    with pytest.raises(NoRecognizedFormatError):
        decode("", b"   ")


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        decode("", b"definitely not a feed")


def test_meta_refresh_used_when_no_link():
    html = b'<html><head><meta http-equiv="refresh" content="0;url=/rss"></head></html>'
    with pytest.raises(NoRecognizedFormatError) as excinfo:
        decode("https://example.com/", html)
    assert excinfo.value.autodiscovery_url == "https://example.com/rss"


def test_extract_autodiscovery_link():
    assert extract_autodiscovery_link(HTML_PAGE) == "/feed.xml"
    assert (
        extract_autodiscovery_link(HTML_PAGE, "https://blog.example.com/posts/")
        == "https://blog.example.com/feed.xml"
    )


def test_extract_autodiscovery_link_atom():
    html = (
        '<html><head><link rel="Alternate" type="application/atom+xml" '
        'href="https://example.com/atom.xml"></head></html>'
    )
    assert extract_autodiscovery_link(html) == "https://example.com/atom.xml"


def test_extract_autodiscovery_link_ignores_other_alternates():
    html = (
        '<html><head><link rel="alternate" hreflang="fr" href="/fr/">'
        '<link rel="stylesheet" type="application/rss+xml" href="/nope"></head></html>'
    )
    assert extract_autodiscovery_link(html) is None


def test_extract_autodiscovery_link_empty():
    assert extract_autodiscovery_link(b"") is None


def test_unusable_feed_link_is_skipped():
    html = (
        b'<html><head><link rel="alternate" type="application/rss+xml" href="http://[oops/feed">'
        b'<link rel="alternate" type="application/atom+xml" href="/atom.xml"></head></html>'
    )
    assert extract_autodiscovery_link(html, "https://example.com/") == (
        "https://example.com/atom.xml"
    )


def test_unusable_feed_link_still_raises_unrecognized_format():
    html = (
        b'<html><head><link rel="alternate" type="application/rss+xml" '
        b'href="http://[oops/feed"></head></html>'
    )
    with pytest.raises(NoRecognizedFormatError) as excinfo:
        decode("https://example.com/", html)
    assert excinfo.value.autodiscovery_url is None


def test_unusable_meta_refresh_target_is_skipped():
    html = b'<html><head><meta http-equiv="refresh" content="0;url=http://[oops/"></head></html>'
    assert extract_meta_refresh_url(html, "https://example.com/") is None
