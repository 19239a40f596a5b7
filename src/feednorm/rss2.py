from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from ._xml import (
    ATOM_NAMESPACES,
    DC_NS,
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
from .errors import DecodeError
from .models import Entry, Feed, FeedFormat

if TYPE_CHECKING:
    from lxml.etree import _Element

_DC_DATE_TAG = f"{{{DC_NS}}}date"


@dataclass
class RSS2Link:
    """A channel ``<link>``, either plain RSS or Atom-namespaced."""

    namespace: str = ""
    text: str = ""
    href: str = ""
    rel: str = ""


@dataclass
class RSS2Enclosure:
    url: str
    type: str = ""
    length: Optional[int] = None


@dataclass
class RSS2Item:
    guid: str = ""
    guid_is_permalink: bool = True
    pub_date: str = ""
    dc_date: str = ""
    title: str = ""
    link: str = ""
    creator: str = ""
    author: str = ""
    encoded_content: str = ""
    description: str = ""
    enclosures: list[RSS2Enclosure] = field(default_factory=list)
    media_content: list[MediaContent] = field(default_factory=list)

    def marshal(
        self,
        *,
        include_content: bool = True,
        include_media: bool = True,
        include_enclosures: bool = True,
    ) -> Entry:
        published = parse_timestamp(self.pub_date or self.dc_date)

        www_url = self.link
        if (
            not www_url
            and self.guid_is_permalink
            and self.guid.startswith(("http://", "https://"))
        ):
            www_url = self.guid

        return Entry(
            guid=self.guid,
            author=self.creator or self.author,
            title=self.title,
            www_url=www_url,
            content=(
                resolve_content(self.encoded_content, self.description)
                if include_content
                else ""
            ),
            published=published,
            media=flatten_media(
                self.enclosures,
                self.media_content,
                include_enclosures=include_enclosures,
                include_media=include_media,
            ),
        )


@dataclass
class RSS2Channel:
    title: str = ""
    description: str = ""
    last_build_date: str = ""
    pub_date: str = ""
    dc_date: str = ""
    links: list[RSS2Link] = field(default_factory=list)
    update_period: str = ""
    update_frequency: int = 0
    items: list[RSS2Item] = field(default_factory=list)

    def marshal(
        self,
        url: str = "",
        *,
        include_content: bool = True,
        include_media: bool = True,
        include_enclosures: bool = True,
    ) -> Feed:
        updated, error = marshal_timestamp(
            self.last_build_date or self.pub_date or self.dc_date, url
        )

        www_url = ""
        for link in self.links:
            if not link.namespace and (link.text or link.href):
                www_url = link.text or link.href
        topic, hub_url = hub_links(
            (link.rel, link.href)
            for link in self.links
            if link.namespace in ATOM_NAMESPACES
        )

        entries, entry_error = marshal_entries(
            self.items,
            lambda item: item.marshal(
                include_content=include_content,
                include_media=include_media,
                include_enclosures=include_enclosures,
            ),
            url,
        )

        return Feed(
            format="RSS2",
            title=self.title,
            description=self.description,
            updated=updated,
            www_url=www_url,
            topic=topic,
            hub_url=hub_url,
            hourly_update_frequency=hourly_update_frequency(
                self.update_period, self.update_frequency
            ),
            entries=entries,
            url=url,
            error=error or entry_error,
        )


def _find_channel(root: _Element) -> _Element:
    channel = next(
        (c for c in iter_children(root) if local_name(c.tag) == "channel"), None
    )
    has_root_items = any(local_name(c.tag) == "item" for c in iter_children(root))
    if channel is None:
        if has_root_items:
            return root
        raise DecodeError("Invalid RSS feed: missing channel element")
    if len(channel) == 0 and has_root_items:
        return root
    return channel


def _rss_tag(el: _Element, name: str) -> str:
    """``name`` in the namespace of ``el``; RSS 2.0 may carry a default namespace."""
    ns = namespace(el.tag)
    return f"{{{ns}}}{name}" if ns else name


def _decode_item(item: _Element) -> RSS2Item:
    by_full, by_local = index_children(item)

    guid_el = by_local.get("guid")
    enclosures: list[RSS2Enclosure] = []
    for child in iter_children(item):
        if local_name(child.tag) != "enclosure":
            continue
        enclosure_url = (child.get("url") or "").strip()
        if enclosure_url:
            enclosures.append(
                RSS2Enclosure(
                    url=enclosure_url,
                    type=child.get("type") or "",
                    length=parse_int(child.get("length")) or None,
                )
            )

    return RSS2Item(
        guid=element_text(guid_el),
        guid_is_permalink=guid_el is None
        or (guid_el.get("isPermaLink") or "true").lower() != "false",
        pub_date=element_text(by_local.get("pubdate")),
        dc_date=element_text(by_full.get(_DC_DATE_TAG)),
        title=element_text(by_local.get("title")),
        link=element_text(by_full.get(_rss_tag(item, "link"))),
        creator=element_text(by_local.get("creator")),
        author=element_text(by_full.get(_rss_tag(item, "author"))),
        encoded_content=element_text(by_full.get(RSS_CONTENT_ENCODED_TAG)),
        description=element_text(by_local.get("description")),
        enclosures=enclosures,
        media_content=parse_media_content(item),
    )


class RSS2Decoder:
    """Decodes ``<rss>`` documents into an :class:`RSS2Channel`."""

    format: FeedFormat = "RSS2"

    def decode(self, content: str | bytes) -> RSS2Channel:
        return self.decode_root(parse_document(content))

    def decode_root(self, root: _Element) -> RSS2Channel:
        if local_name(root.tag) != "rss":
            raise DecodeError(f"Not an RSS 2.0 document: root element is {root.tag}")

        channel = _find_channel(root)
        channel_ns = namespace(channel.tag)
        decoded = RSS2Channel()
        texts: dict[str, str] = {}
        for child in iter_children(channel):
            name = local_name(child.tag)
            if name == "link":
                link_ns = namespace(child.tag)
                decoded.links.append(
                    RSS2Link(
                        namespace="" if link_ns == channel_ns else link_ns,
                        text=element_text(child),
                        href=(child.get("href") or "").strip(),
                        rel=child.get("rel") or "",
                    )
                )
            elif name == "item":
                decoded.items.append(_decode_item(child))
            elif child.tag == _DC_DATE_TAG:
                decoded.dc_date = decoded.dc_date or element_text(child)
            else:
                texts.setdefault(name, element_text(child))

        if channel is not root and not decoded.items:
            # Some producers put the items next to the channel instead of in it
            decoded.items = [
                _decode_item(c) for c in iter_children(root) if local_name(c.tag) == "item"
            ]

        decoded.title = texts.get("title", "")
        decoded.description = texts.get("description", "")
        decoded.last_build_date = texts.get("lastbuilddate", "")
        decoded.pub_date = texts.get("pubdate", "")
        decoded.update_period = texts.get("updateperiod", "")
        decoded.update_frequency = parse_int(texts.get("updatefrequency"))
        return decoded
