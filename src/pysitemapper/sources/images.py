"""Image discovery for post sitemap entries."""

from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from pysitemapper.models import Post


class ImageParser:
    """
    Collect the images of a post for <image:image> elements.

    Sources, in order: the featured image (meta["thumbnail"]), images listed
    in meta["images"], and <img> tags in the post content. Relative sources
    are resolved against the site URL; duplicates and data: URIs are dropped.
    """

    def __init__(self, base_url: str, include_external: bool = False):
        """
        Initialize image parser.

        Args:
            base_url: Site URL used to resolve relative sources
            include_external: Keep images hosted on other domains
        """
        self.base_url = base_url.rstrip("/") + "/"
        self.host = urlparse(self.base_url).netloc.lower()
        self.include_external = include_external

    def images_for_post(self, post: Post) -> list[dict[str, str]]:
        """
        Get the images of a post.

        Args:
            post: Post to inspect

        Returns:
            List of dicts with "src" and, when known, "title" and "alt"
        """
        images: list[dict[str, str]] = []
        seen: set[str] = set()
        meta = post.meta or {}

        thumbnail = meta.get("thumbnail")
        if thumbnail:
            self._add(images, seen, {"src": thumbnail, "title": post.title})

        for image in meta.get("images") or []:
            if isinstance(image, str):
                image = {"src": image}
            self._add(images, seen, dict(image))

        if post.content:
            for image in self.parse_content(post.content):
                self._add(images, seen, image)

        return images

    def parse_content(self, html: str) -> list[dict[str, str]]:
        """
        Extract <img> tags from HTML content.

        Args:
            html: Post body

        Returns:
            Image dicts in document order (not yet resolved or deduplicated)
        """
        soup = BeautifulSoup(html, "html.parser")
        images = []
        for tag in soup.find_all("img"):
            src = tag.get("src") or tag.get("data-src")
            if not src:
                continue
            image = {"src": src.strip()}
            if tag.get("alt"):
                image["alt"] = tag["alt"].strip()
            if tag.get("title"):
                image["title"] = tag["title"].strip()
            images.append(image)
        return images

    def _add(self, images: list, seen: set, image: dict) -> None:
        src = self._resolve(image.get("src"))
        if not src or src in seen:
            return
        seen.add(src)
        images.append({**image, "src": src})

    def _resolve(self, src: Optional[str]) -> Optional[str]:
        if not src or src.startswith("data:"):
            return None

        absolute = urljoin(self.base_url, src)
        parsed = urlparse(absolute)
        if parsed.scheme not in ("http", "https"):
            return None
        if not self.include_external and parsed.netloc.lower() != self.host:
            return None
        return absolute
