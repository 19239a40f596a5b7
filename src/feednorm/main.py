from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional, Protocol, Union
from urllib.parse import urljoin

from lxml import etree

from ._xml import local_name, parse_xml_root, prepare_xml_bytes
from .atom import AtomDecoder, AtomFeed
from .errors import DecodeError, NoRecognizedFormatError
from .models import FEED_FORMATS, Feed, FeedFormat
from .rss1 import RSS1Channel, RSS1Decoder
from .rss2 import RSS2Channel, RSS2Decoder

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger(__name__)

NativeFeed = Union[RSS2Channel, RSS1Channel, AtomFeed]


class Decoder(Protocol):
    format: FeedFormat

    def decode(self, content: str | bytes) -> NativeFeed: ...

    def decode_root(self, root: _Element) -> NativeFeed: ...


DECODERS: dict[FeedFormat, Decoder] = {
    "RSS2": RSS2Decoder(),
    "RSS1": RSS1Decoder(),
    "Atom": AtomDecoder(),
}

_CONTENT_TYPE_FORMATS: dict[str, FeedFormat] = {
    "application/rss+xml": "RSS2",
    "application/atom+xml": "Atom",
    "application/rdf+xml": "RSS1",
}
_ROOT_TAG_FORMATS: dict[str, FeedFormat] = {
    "rss": "RSS2",
    "feed": "Atom",
    "rdf": "RSS1",
}

_AUTODISCOVERY_TYPES = frozenset(
    {
        "application/rss+xml",
        "application/atom+xml",
        "application/rdf+xml",
    }
)

_NON_FEED_MESSAGES: dict[str, str] = {
    "html": "Received HTML page instead of feed",
    "div": "Received HTML fragment instead of feed",
    "body": "Received HTML fragment instead of feed",
    "status": "Feed server returned status message",
    "error": "Feed server returned error",
    "opml": "Received OPML document instead of feed (OPML is an outline format, not a feed)",
    "urlset": "Received XML sitemap instead of feed (sitemap is for search engines, not a feed)",
    "sitemapindex": "Received XML sitemap instead of feed (sitemap is for search engines, not a feed)",
}

_RE_META_REFRESH_URL = re.compile(r'url\s*=\s*["\']?\s*([^"\'>\s]+)', re.IGNORECASE)


def _parse_html(content: str | bytes) -> Optional[_Element]:
    html_bytes = content.encode("utf-8") if isinstance(content, str) else content
    if not html_bytes.strip():
        return None
    try:
        return etree.fromstring(html_bytes, parser=etree.HTMLParser())
    except (etree.XMLSyntaxError, etree.ParserError, ValueError):
        return None


def extract_autodiscovery_link(
    content: str | bytes, base_url: Optional[str] = None
) -> Optional[str]:
    """Find the feed an HTML page advertises through ``<link rel="alternate">``.

    Args:
        content: HTML document
        base_url: URL the document came from, used to resolve relative hrefs

    Returns:
        The first advertised RSS/Atom/RDF feed URL, or None
    """
    doc = _parse_html(content)
    if doc is None:
        return None

    for link in doc.iter("link"):
        rels = (link.get("rel") or "").lower().split()
        link_type = (link.get("type") or "").strip().lower()
        href = (link.get("href") or "").strip()
        if "alternate" not in rels or link_type not in _AUTODISCOVERY_TYPES or not href:
            continue
        if not base_url:
            return href
        try:
            return urljoin(base_url, href)
        except ValueError:
            logger.debug("Skipping unusable feed link %r", href)
    return None


def extract_meta_refresh_url(content: str | bytes, base_url: str) -> Optional[str]:
    """Extract redirect URL from an HTML meta-refresh tag."""
    doc = _parse_html(content)
    if doc is None:
        return None

    for meta in doc.iter("meta"):
        if (meta.get("http-equiv") or "").lower() == "refresh":
            match = _RE_META_REFRESH_URL.search(meta.get("content", ""))
            if not match:
                continue
            try:
                url = urljoin(base_url, match.group(1))
            except ValueError:
                logger.debug("Skipping unusable refresh target %r", match.group(1))
                continue
            if url != base_url:
                return url
    return None


def _extract_error_message(root: _Element) -> str:
    all_text = " ".join(
        text.strip() for text in root.itertext() if text and text.strip()
    )
    return " ".join(all_text.split())[:300]


def _format_priority(
    root: _Element, content_type: Optional[str]
) -> list[FeedFormat]:
    preferred: list[FeedFormat] = []
    if content_type:
        declared = _CONTENT_TYPE_FORMATS.get(content_type.split(";")[0].strip().lower())
        if declared is not None:
            preferred.append(declared)
    sniffed = _ROOT_TAG_FORMATS.get(local_name(root.tag))
    if sniffed is not None and sniffed not in preferred:
        preferred.append(sniffed)
    return preferred + [f for f in FEED_FORMATS if f not in preferred]


def _no_recognized_format(
    url: str,
    content: str | bytes,
    errors: list[DecodeError],
    message: Optional[str] = None,
) -> NoRecognizedFormatError:
    autodiscovery_url = extract_autodiscovery_link(content, url or None)
    if autodiscovery_url is None and url:
        autodiscovery_url = extract_meta_refresh_url(content, url)
    return NoRecognizedFormatError(
        url, errors, autodiscovery_url=autodiscovery_url, message=message
    )


def decode(
    url: str,
    content: str | bytes,
    *,
    content_type: Optional[str] = None,
    include_content: bool = True,
    include_media: bool = True,
    include_enclosures: bool = True,
) -> Feed:
    """Decode an RSS 2.0, RSS 1.0 or Atom document into a :class:`Feed`.

    Args:
        url: Where the document came from; used for diagnostics and to
            resolve RSS 1.0 ``rdf:about`` identifiers. Nothing is fetched.
        content: Already-fetched document as bytes or str
        content_type: Declared content type, tried first when it names a feed
        include_content: Fill in ``Entry.content``
        include_media: Include media namespace attachments
        include_enclosures: Include RSS enclosures and Atom enclosure links

    Returns:
        The decoded feed. ``Feed.error`` is set when some dates or entries
        could not be marshalled; the rest of the feed is still returned.

    Raises:
        NoRecognizedFormatError: If no decoder accepts the document.
            ``autodiscovery_url`` is set when it is an HTML page pointing at a
            feed.
    """
    try:
        root = parse_xml_root(prepare_xml_bytes(content))
    except DecodeError as e:
        logger.debug("Could not parse %s as XML: %s", url or "<input>", e)
        raise _no_recognized_format(url, content, [e], message=str(e)) from e

    root_tag = local_name(root.tag)
    base_msg = _NON_FEED_MESSAGES.get(root_tag)
    if base_msg is not None:
        error_msg = _extract_error_message(root)
        message = f"{base_msg}: {error_msg[:150]}" if len(error_msg) > 10 else base_msg
        raise _no_recognized_format(url, content, [DecodeError(message)], message=message)

    errors: list[DecodeError] = []
    for feed_format in _format_priority(root, content_type):
        try:
            native = DECODERS[feed_format].decode_root(root)
        except DecodeError as e:
            logger.debug("%s is not %s: %s", url or "<input>", feed_format, e)
            errors.append(e)
            continue
        return native.marshal(
            url,
            include_content=include_content,
            include_media=include_media,
            include_enclosures=include_enclosures,
        )

    raise _no_recognized_format(url, content, errors)
