from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import urljoin

from ._xml import (
    ATOM_NAMESPACES,
    RDF_ABOUT_ATTR,
    RSS_CONTENT_ENCODED_TAG,
    MediaContent,
    element_text,
    index_children,
    iter_children,
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
from .errors import DecodeError, FeedError
from .models import Entry, Feed, FeedFormat

if TYPE_CHECKING:
    from lxml.etree import _Element


@dataclass
class RSS1Item:
    about: str = ""
    title: str = ""
    link: str = ""
    creator: str = ""
    date: str = ""
    encoded_content: str = ""
    description: str = ""
    media_content: list[MediaContent] = field(default_factory=list)

    def marshal(
        self,
        url: str = "",
        *,
        include_content: bool = True,
        include_media: bool = True,
    ) -> Entry:
        # rdf:about may be relative to the document it came from
        guid = self.about
        if guid and url:
            try:
                guid = urljoin(url, guid)
            except ValueError as e:
                raise FeedError(f"Invalid rdf:about {self.about!r}: {e}") from e
        return Entry(
            guid=guid,
            author=self.creator,
            title=self.title,
            www_url=self.link,
            content=(
                resolve_content(self.encoded_content, self.description)
                if include_content
                else ""
            ),
            published=parse_timestamp(self.date),
            media=flatten_media(
                (), self.media_content, include_enclosures=False, include_media=include_media
            ),
        )


@dataclass
class RSS1Channel:
    title: str = ""
    link: str = ""
    description: str = ""
    date: str = ""
    atom_links: list[tuple[str, str]] = field(default_factory=list)
    update_period: str = ""
    update_frequency: int = 0
    items: list[RSS1Item] = field(default_factory=list)

    def marshal(
        self,
        url: str = "",
        *,
        include_content: bool = True,
        include_media: bool = True,
        include_enclosures: bool = True,
    ) -> Feed:
        updated, error = marshal_timestamp(self.date, url)
        topic, hub_url = hub_links(self.atom_links)
        entries, entry_error = marshal_entries(
            self.items,
            lambda item: item.marshal(
                url, include_content=include_content, include_media=include_media
            ),
            url,
        )
        return Feed(
            format="RSS1",
            title=self.title,
            description=self.description,
            updated=updated,
            www_url=self.link,
            topic=topic,
            hub_url=hub_url,
            hourly_update_frequency=hourly_update_frequency(
                self.update_period, self.update_frequency
            ),
            entries=entries,
            url=url,
            error=error or entry_error,
        )


def _decode_item(item: _Element) -> RSS1Item:
    by_full, by_local = index_children(item)
    return RSS1Item(
        about=(item.get(RDF_ABOUT_ATTR) or "").strip(),
        title=element_text(by_local.get("title")),
        link=element_text(by_local.get("link")),
        creator=element_text(by_local.get("creator")),
        date=element_text(by_local.get("date")),
        encoded_content=element_text(by_full.get(RSS_CONTENT_ENCODED_TAG)),
        description=element_text(by_local.get("description")),
        media_content=parse_media_content(item),
    )


class RSS1Decoder:
    """Decodes RSS 1.0 ``<rdf:RDF>`` documents into an :class:`RSS1Channel`."""

    format: FeedFormat = "RSS1"

    def decode(self, content: str | bytes) -> RSS1Channel:
        return self.decode_root(parse_document(content))

    def decode_root(self, root: _Element) -> RSS1Channel:
        if local_name(root.tag) != "rdf":
            raise DecodeError(f"Not an RSS 1.0 document: root element is {root.tag}")

        channel = next(
            (c for c in iter_children(root) if local_name(c.tag) == "channel"), None
        )
        if channel is None:
            raise DecodeError("Invalid RSS 1.0 feed: missing channel element")

        decoded = RSS1Channel()
        texts: dict[str, str] = {}
        for child in iter_children(channel):
            name = local_name(child.tag)
            if name == "link" and namespace(child.tag) in ATOM_NAMESPACES:
                decoded.atom_links.append(
                    (child.get("rel") or "", (child.get("href") or "").strip())
                )
            elif name != "items":
                texts.setdefault(name, element_text(child))

        item_elements = [c for c in iter_children(root) if local_name(c.tag) == "item"]
        if not item_elements:
            item_elements = [
                c for c in iter_children(channel) if local_name(c.tag) == "item"
            ]
        decoded.items = [_decode_item(item) for item in item_elements]

        decoded.title = texts.get("title", "")
        decoded.link = texts.get("link", "")
        decoded.description = texts.get("description", "")
        decoded.date = texts.get("date", "")
        decoded.update_period = texts.get("updateperiod", "")
        decoded.update_frequency = parse_int(texts.get("updatefrequency"))
        return decoded
