"""XML serialization of sitemaps and the sitemap index.

Output is assembled as text rather than through an element tree because
plugins receive and return raw XML fragments (index entries, the urlset
opening tag, video properties).
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote
from xml.sax.saxutils import escape, quoteattr

import pluggy

from pysitemapper.config import Settings
from pysitemapper.plugins import apply_filter
from pysitemapper.sources.base import IndexLink, SitemapEntry

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
GENERATOR_COMMENT = "<!-- XML Sitemap generated by pySitemapper -->"

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
IMAGE_NS = "http://www.google.com/schemas/sitemap-image/1.1"
VIDEO_NS = "http://www.google.com/schemas/sitemap-video/1.1"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = (
    "http://www.sitemaps.org/schemas/sitemap/0.9 "
    "http://www.sitemaps.org/schemas/sitemap/0.9/sitemap.xsd "
    "http://www.google.com/schemas/sitemap-image/1.1 "
    "http://www.google.com/schemas/sitemap-image/1.1/sitemap-image.xsd"
)

# Order required by the video sitemap schema
VIDEO_PROPERTIES = (
    "thumbnail_loc",
    "title",
    "description",
    "content_loc",
    "player_loc",
    "duration",
    "publication_date",
    "family_friendly",
)
VIDEO_URL_PROPERTIES = {"thumbnail_loc", "content_loc", "player_loc"}

# RFC 3986 reserved characters
URL_SAFE_CHARS = ":/?#[]@!$&'()*+,;=~"
PERCENT_ESCAPE_RE = re.compile(r"(%[0-9A-Fa-f]{2})")


def encode_url(url: str) -> str:
    """Percent-encode a URL (non-ASCII, spaces) and escape it for XML."""
    # Split keeps existing escapes at odd indexes; a bare "%" is encoded
    parts = PERCENT_ESCAPE_RE.split(url)
    encoded = "".join(
        part if i % 2 else quote(part, safe=URL_SAFE_CHARS) for i, part in enumerate(parts)
    )
    return escape(encoded)


def format_lastmod(value: datetime) -> str:
    """
    Format a datetime as a W3C datetime with offset.

    Naive datetimes are stored as UTC and treated as such.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(timespec="seconds")


class SitemapRenderer:
    """Render sitemap index and urlset documents, applying the XML filter hooks."""

    def __init__(self, settings: Settings, plugin_manager: pluggy.PluginManager):
        self.settings = settings
        self.pm = plugin_manager

    def render_index(self, links: list[IndexLink]) -> str:
        """
        Render sitemap_index.xml.

        Args:
            links: Generated index links

        Returns:
            XML document; plugin entries from sitemap_index_entries follow
            the generated ones
        """
        lines = [*self._header(), f'<sitemapindex xmlns="{SITEMAP_NS}">']

        for link in links:
            lines.append("\t<sitemap>")
            lines.append(f"\t\t<loc>{encode_url(link.loc)}</loc>")
            if link.lastmod is not None:
                lines.append(f"\t\t<lastmod>{format_lastmod(link.lastmod)}</lastmod>")
            lines.append("\t</sitemap>")

        extra = apply_filter(self.pm, "sitemap_index_entries", "")
        if extra:
            lines.append(extra.rstrip("\n"))

        lines.append("</sitemapindex>")
        return self._finish(lines)

    def render_sitemap(self, entries: list[SitemapEntry]) -> str:
        """
        Render one urlset sitemap.

        Args:
            entries: Entries of the sitemap page

        Returns:
            XML document
        """
        blocks = []
        uses_video = False
        for entry in entries:
            video = self.render_video(entry)
            uses_video = uses_video or bool(video)
            blocks.append(self.render_url(entry, video))

        urlset = apply_filter(self.pm, "sitemap_urlset", self.urlset_tag(uses_video))

        return self._finish([*self._header(), urlset, *blocks, "</urlset>"])

    def urlset_tag(self, video: bool = False) -> str:
        """Default opening <urlset> tag."""
        attributes = [
            f"xmlns:xsi={quoteattr(XSI_NS)}",
            f"xmlns:image={quoteattr(IMAGE_NS)}",
        ]
        if video:
            attributes.append(f"xmlns:video={quoteattr(VIDEO_NS)}")
        attributes.append(f"xsi:schemaLocation={quoteattr(SCHEMA_LOCATION)}")
        attributes.append(f"xmlns={quoteattr(SITEMAP_NS)}")
        return "<urlset " + " ".join(attributes) + ">"

    def render_url(self, entry: SitemapEntry, video: str = "") -> str:
        """Render a single <url> element."""
        lines = ["\t<url>", f"\t\t<loc>{encode_url(entry.loc)}</loc>"]
        if entry.lastmod is not None:
            lines.append(f"\t\t<lastmod>{format_lastmod(entry.lastmod)}</lastmod>")

        for image in entry.images:
            src = image.get("src")
            if not src:
                continue
            lines.append("\t\t<image:image>")
            lines.append(f"\t\t\t<image:loc>{encode_url(src)}</image:loc>")
            if image.get("title"):
                lines.append(f"\t\t\t<image:title>{escape(image['title'])}</image:title>")
            if image.get("alt"):
                lines.append(f"\t\t\t<image:caption>{escape(image['alt'])}</image:caption>")
            lines.append("\t\t</image:image>")

        if video:
            lines.append(f"\t\t<video:video>\n{video}\n\t\t</video:video>")

        lines.append("\t</url>")
        return "\n".join(lines)

    def render_video(self, entry: SitemapEntry) -> str:
        """
        Render the <video:*> children of an entry.

        The sitemap_video_property filter runs for every entry that belongs
        to an entity, so plugins can add video data to entries without it.

        Returns:
            Child elements (without the <video:video> wrapper), or ""
        """
        properties = self.video_properties(entry.video)
        if entry.entity_id is not None:
            properties = apply_filter(
                self.pm, "sitemap_video_property", properties, entity_id=entry.entity_id
            ) or ""
        return properties.strip("\n")

    def video_properties(self, video: Optional[dict[str, Any]]) -> str:
        """Render known video properties in schema order."""
        if not video:
            return ""

        lines = []
        for name in VIDEO_PROPERTIES:
            value = video.get(name)
            if value is None or value == "":
                continue

            if name in VIDEO_URL_PROPERTIES:
                text = encode_url(str(value))
            elif name == "publication_date" and isinstance(value, datetime):
                text = format_lastmod(value)
            elif name == "family_friendly" and isinstance(value, bool):
                text = "yes" if value else "no"
            else:
                text = escape(str(value))
            lines.append(f"\t\t\t<video:{name}>{text}</video:{name}>")
        return "\n".join(lines)

    def _header(self) -> list[str]:
        lines = [XML_DECLARATION]
        if self.settings.stylesheet_url:
            href = quoteattr(self.settings.stylesheet_url)
            lines.append(f'<?xml-stylesheet type="text/xsl" href={href}?>')
        return lines

    def _finish(self, lines: list[str]) -> str:
        if self.settings.generator_comment:
            lines.append(GENERATOR_COMMENT)
        return "\n".join(lines) + "\n"
