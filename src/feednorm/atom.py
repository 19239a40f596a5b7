from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING, Optional

from lxml import etree

from ._xml import (
    ATOM_03_NS,
    ATOM_NAMESPACES,
    SY_NS,
    MediaContent,
    element_text,
    link_rels,
    local_name,
    namespace,
    parse_document,
    parse_media_content,
)
from .canonical import (
    flatten_media,
    hourly_update_frequency,
    hub_links,
    marshal_entries,
    marshal_timestamp,
    parse_int,
    resolve_content,
)
from .dates import parse_timestamp
from .errors import DecodeError
from .models import Entry, Feed, FeedFormat

if TYPE_CHECKING:
    from lxml.etree import _Element

_XHTML_CONTENT_TYPES = frozenset({"xhtml", "application/xhtml+xml"})


@lru_cache(maxsize=4)
def _atom_ns_tags(atom_ns: str) -> dict[str, str]:
    """Namespace-prefixed tag names, computed once per Atom namespace."""
    ns = f"{{{atom_ns}}}"
    is_atom_03 = atom_ns == ATOM_03_NS
    return {
        "id": ns + "id",
        "title": ns + "title",
        "subtitle": ns + ("tagline" if is_atom_03 else "subtitle"),
        "summary": ns + "summary",
        "link": ns + "link",
        "content": ns + "content",
        "author": ns + "author",
        "name": ns + "name",
        "entry": ns + "entry",
        "published": ns + ("issued" if is_atom_03 else "published"),
        "updated": ns + ("modified" if is_atom_03 else "updated"),
    }


@dataclass
class AtomLink:
    href: str
    rel: str = ""
    type: str = ""

    @property
    def url(self) -> str:
        return self.href

    def is_alternate(self) -> bool:
        rels = link_rels(self.rel)
        return not rels or "alternate" in rels


@dataclass
class AtomEntry:
    id: str = ""
    title: str = ""
    author: str = ""
    links: list[AtomLink] = field(default_factory=list)
    content: str = ""
    summary: str = ""
    published: str = ""
    updated: str = ""
    media_content: list[MediaContent] = field(default_factory=list)

    def marshal(
        self,
        *,
        default_author: str = "",
        include_content: bool = True,
        include_media: bool = True,
        include_enclosures: bool = True,
    ) -> Entry:
        www_url = next((link.href for link in self.links if link.is_alternate()), "")
        if not www_url and self.links:
            www_url = self.links[0].href

        return Entry(
            guid=self.id,
            author=self.author or default_author,
            title=self.title,
            www_url=www_url,
            content=resolve_content(self.content, self.summary) if include_content else "",
            published=parse_timestamp(self.published or self.updated),
            media=flatten_media(
                [link for link in self.links if "enclosure" in link_rels(link.rel)],
                self.media_content,
                include_enclosures=include_enclosures,
                include_media=include_media,
            ),
        )


@dataclass
class AtomFeed:
    title: str = ""
    subtitle: str = ""
    author: str = ""
    updated: str = ""
    links: list[AtomLink] = field(default_factory=list)
    update_period: str = ""
    update_frequency: int = 0
    entries: list[AtomEntry] = field(default_factory=list)

    def marshal(
        self,
        url: str = "",
        *,
        include_content: bool = True,
        include_media: bool = True,
        include_enclosures: bool = True,
    ) -> Feed:
        updated, error = marshal_timestamp(self.updated, url)
        topic, hub_url = hub_links((link.rel, link.href) for link in self.links)
        entries, entry_error = marshal_entries(
            self.entries,
            lambda entry: entry.marshal(
                default_author=self.author,
                include_content=include_content,
                include_media=include_media,
                include_enclosures=include_enclosures,
            ),
            url,
        )
        return Feed(
            format="Atom",
            title=self.title,
            description=self.subtitle,
            updated=updated,
            www_url=next(
                (link.href for link in self.links if link.is_alternate()), ""
            ),
            topic=topic,
            hub_url=hub_url,
            hourly_update_frequency=hourly_update_frequency(
                self.update_period, self.update_frequency
            ),
            entries=entries,
            url=url,
            error=error or entry_error,
        )


def _content_value(content_el: _Element) -> str:
    content_type = content_el.get("type") or content_el.get("mode") or ""
    if content_type in _XHTML_CONTENT_TYPES or content_type == "xml":
        parts = [content_el.text or ""]
        parts.extend(
            etree.tostring(child, encoding="unicode") for child in content_el
        )
        return "".join(parts).strip()
    return element_text(content_el)


def _author_name(el: Optional[_Element], tags: dict[str, str]) -> str:
    if el is None:
        return ""
    return element_text(el.find(tags["name"]))


def _decode_links(el: _Element, tags: dict[str, str]) -> list[AtomLink]:
    links: list[AtomLink] = []
    for link in el.findall(tags["link"]):
        href = (link.get("href") or "").strip()
        if href:
            links.append(
                AtomLink(href=href, rel=link.get("rel") or "", type=link.get("type") or "")
            )
    return links


def _decode_entry(item: _Element, tags: dict[str, str]) -> AtomEntry:
    content_el = item.find(tags["content"])
    return AtomEntry(
        id=element_text(item.find(tags["id"])),
        title=element_text(item.find(tags["title"])),
        author=_author_name(item.find(tags["author"]), tags),
        links=_decode_links(item, tags),
        content=_content_value(content_el) if content_el is not None else "",
        summary=element_text(item.find(tags["summary"])),
        published=element_text(item.find(tags["published"])),
        updated=element_text(item.find(tags["updated"])),
        media_content=parse_media_content(item),
    )


class AtomDecoder:
    """Decodes Atom 1.0 and Atom 0.3 ``<feed>`` documents into an :class:`AtomFeed`."""

    format: FeedFormat = "Atom"

    def decode(self, content: str | bytes) -> AtomFeed:
        return self.decode_root(parse_document(content))

    def decode_root(self, root: _Element) -> AtomFeed:
        if local_name(root.tag) != "feed":
            raise DecodeError(f"Not an Atom document: root element is {root.tag}")
        atom_ns = namespace(root.tag)
        if atom_ns not in ATOM_NAMESPACES:
            raise DecodeError(f"Unknown Atom namespace in feed type: {root.tag}")

        tags = _atom_ns_tags(atom_ns)
        return AtomFeed(
            title=element_text(root.find(tags["title"])),
            subtitle=element_text(root.find(tags["subtitle"])),
            author=_author_name(root.find(tags["author"]), tags),
            updated=element_text(root.find(tags["updated"])),
            links=_decode_links(root, tags),
            update_period=element_text(root.find(f"{{{SY_NS}}}updatePeriod")),
            update_frequency=parse_int(
                element_text(root.find(f"{{{SY_NS}}}updateFrequency"))
            ),
            entries=[_decode_entry(item, tags) for item in root.findall(tags["entry"])],
        )
