from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from lxml import etree

from .errors import DecodeError

if TYPE_CHECKING:
    from lxml.etree import _Element

ATOM_NS = "http://www.w3.org/2005/Atom"
ATOM_03_NS = "http://purl.org/atom/ns#"
ATOM_NAMESPACES = frozenset({ATOM_NS, "https://www.w3.org/2005/Atom", ATOM_03_NS})
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
DC_NS = "http://purl.org/dc/elements/1.1/"
SY_NS = "http://purl.org/rss/1.0/modules/syndication/"

RDF_ABOUT_ATTR = f"{{{RDF_NS}}}about"
RSS_CONTENT_ENCODED_TAG = "{http://purl.org/rss/1.0/modules/content/}encoded"
_MEDIA_NS = "{http://search.yahoo.com/mrss/}"
_MEDIA_CONTENT_TAG = _MEDIA_NS + "content"
_MEDIA_THUMBNAIL_TAG = _MEDIA_NS + "thumbnail"

_RE_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)
_RE_XML_DECL_ENCODING_BYTES = re.compile(
    rb'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)
_RE_DOUBLE_XML_DECL_BYTES = re.compile(rb"<\?xml\?xml\s+", re.IGNORECASE)
_RE_DOUBLE_CLOSE_BYTES = re.compile(rb"\?\?>\s*")
_RE_UTF16_ENCODING_BYTES = re.compile(
    rb'(<\?xml[^>]*encoding=["\'])utf-16(-le|-be)?(["\'][^>]*\?>)', re.IGNORECASE
)
_RE_UNCLOSED_LINK_BYTES = re.compile(
    rb"<link([^>]*[^/])>\s*(?=\n\s*<(?!/link\s*>))", re.MULTILINE
)


@dataclass
class MediaContent:
    """A ``media:content`` (or stray ``media:thumbnail``) element."""

    url: str
    type: str = ""


def local_name(tag: str) -> str:
    """Lower-cased tag name without namespace or prefix."""
    if "}" in tag:
        return tag.rsplit("}", 1)[1].lower()
    if ":" in tag:
        return tag.split(":", 1)[1].lower()
    return tag.lower()


def namespace(tag: str) -> str:
    if tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return ""


def element_text(el: Optional[_Element]) -> str:
    if el is None or not el.text:
        return ""
    return el.text.strip()


def iter_children(el: _Element):
    """Child elements, skipping comments and processing instructions."""
    for child in el:
        if isinstance(child.tag, str):
            yield child


def index_children(el: _Element) -> tuple[dict[str, _Element], dict[str, _Element]]:
    """Index children by full tag and by local name, first occurrence wins."""
    by_full: dict[str, _Element] = {}
    by_local: dict[str, _Element] = {}
    for child in iter_children(el):
        by_full.setdefault(child.tag, child)
        by_local.setdefault(local_name(child.tag), child)
    return by_full, by_local


def link_rels(rel: Optional[str]) -> list[str]:
    return rel.split() if rel else []


def parse_media_content(item: _Element) -> list[MediaContent]:
    media_contents: list[MediaContent] = []
    for media in item.iter(_MEDIA_CONTENT_TAG):
        url = (media.get("url") or "").strip()
        if url:
            media_contents.append(MediaContent(url=url, type=media.get("type") or ""))

    if not media_contents:
        for thumbnail in item.iter(_MEDIA_THUMBNAIL_TAG):
            parent = thumbnail.getparent()
            if parent is None or parent.tag == _MEDIA_CONTENT_TAG:
                continue
            url = (thumbnail.get("url") or "").strip()
            if url:
                media_contents.append(MediaContent(url=url, type="image/jpeg"))

    return media_contents


_HEAD_SIZE = 2048
_SCAN_SIZE = 8192
_DOCUMENT_STARTS = (b"<?xml", b"<rss", b"<feed", b"<rdf")
_HTML_STARTS = (b"<!doctype html", b"<html")
_LINE_SEPARATORS = (b"\xe2\x80\xa8", b"\xe2\x80\xa9")


def _strip_to_document(content: bytes) -> bytes:
    """Drop a UTF-8 BOM and anything printed before the XML document."""
    content = content.lstrip()
    if content.startswith(b"\xef\xbb\xbf"):
        content = content[3:]

    head = content[:_HEAD_SIZE].lower()
    if head.startswith(_DOCUMENT_STARTS):
        return content
    if head.startswith(_HTML_STARTS):
        raise DecodeError("Content appears to be HTML, not a valid RSS/Atom feed")

    window = content[:_SCAN_SIZE].lower()
    starts = [idx for idx in map(window.find, _DOCUMENT_STARTS) if idx != -1]
    if starts:
        return content[min(starts) :]
    if b"<script>" in head or b"<body>" in head:
        raise DecodeError("Content appears to be HTML, not a valid RSS/Atom feed")
    return content


def _sniff_encoding(content: bytes) -> str:
    """Encoding the bytes are really in, which is not always the declared one."""
    if content.startswith((b"\xff\xfe", b"\xfe\xff")):
        return "utf-16"
    match = _RE_XML_DECL_ENCODING_BYTES.search(content[:_HEAD_SIZE])
    if match is None:
        return "utf-8"
    declared = match.group(2).decode("ascii", errors="replace").lower()
    if declared.startswith("utf-16") and b"\x00" not in content[:200]:
        # Labelled UTF-16 but written one byte per character
        return "utf-8"
    return declared


def _repair_head(content: bytes, encoding: str) -> bytes:
    """Fix broken XML declarations; they only ever appear at the top."""
    head, tail = content[:_HEAD_SIZE], content[_HEAD_SIZE:]
    # <?xml?xml version="1.0"?>
    head = _RE_DOUBLE_XML_DECL_BYTES.sub(b"<?xml ", head)
    # <?xml version="1.0"??>
    head = _RE_DOUBLE_CLOSE_BYTES.sub(b"?>", head)
    if not encoding.startswith("utf-16"):
        label = encoding.encode("ascii", errors="replace")
        head = _RE_UTF16_ENCODING_BYTES.sub(rb"\g<1>" + label + rb"\g<3>", head)
    return head + tail


def prepare_xml_bytes(xml_content: str | bytes) -> bytes:
    """Turn whatever the caller handed us into bytes lxml can parse."""
    if isinstance(xml_content, str):
        # Re-encoded as UTF-8 below, so the declaration has to agree
        xml_content = _RE_XML_DECL_ENCODING.sub(r"\1utf-8\3", xml_content, count=1)
        xml_content = xml_content.encode("utf-8", errors="replace")

    content = _strip_to_document(xml_content)
    if not content.strip():
        raise DecodeError("Empty content")

    # U+2028 / U+2029 are invalid in XML 1.0
    for separator in _LINE_SEPARATORS:
        if separator in content:
            content = content.replace(separator, b"\n")

    return _repair_head(content, _sniff_encoding(content))


_STRICT_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=False,
    collect_ids=False,
    resolve_entities=False,
)
_RECOVER_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=True,
    collect_ids=False,
    resolve_entities=False,
)


def _parse_strict(xml_content: bytes) -> Optional[_Element]:
    try:
        return etree.fromstring(xml_content, parser=_STRICT_XML_PARSER)
    except etree.XMLSyntaxError:
        return None


def parse_xml_root(xml_content: bytes) -> _Element:
    """Parse strictly, then with unclosed ``<link>`` tags closed, then leniently."""
    root = _parse_strict(xml_content)
    if root is not None:
        return root

    repaired = _RE_UNCLOSED_LINK_BYTES.sub(rb"<link\1/>", xml_content)
    if repaired != xml_content:
        root = _parse_strict(repaired)
        if root is not None:
            return root

    try:
        root = etree.fromstring(repaired, parser=_RECOVER_XML_PARSER)
    except etree.XMLSyntaxError as e:
        raise DecodeError(f"Failed to parse XML content: {e}") from e

    if root is None:
        preview = xml_content[:200].decode("utf-8", errors="replace").strip()
        if preview:
            raise DecodeError(
                "Failed to parse XML: received content that couldn't be parsed as XML "
                f"(first 200 chars: {preview})"
            )
        raise DecodeError("Failed to parse XML: received empty content")

    return root


def parse_document(content: str | bytes) -> _Element:
    return parse_xml_root(prepare_xml_bytes(content))
