"""Tests for image discovery."""

from pysitemapper.models import Post
from pysitemapper.sources.images import ImageParser


def _post(content="", meta=None):
    return Post(id=1, slug="p", title="My Post", content=content, meta=meta or {})


class TestImageParser:
    """Tests for ImageParser."""

    def test_sources_in_order(self):
        post = _post(
            content='<p><img src="/uploads/c.png" alt=" Content "></p>',
            meta={
                "thumbnail": "/uploads/thumb.jpg",
                "images": ["https://example.com/uploads/m.png", {"src": "/uploads/n.png", "title": "N"}],
            },
        )

        images = ImageParser("https://example.com").images_for_post(post)

        assert images == [
            {"src": "https://example.com/uploads/thumb.jpg", "title": "My Post"},
            {"src": "https://example.com/uploads/m.png"},
            {"src": "https://example.com/uploads/n.png", "title": "N"},
            {"src": "https://example.com/uploads/c.png", "alt": "Content"},
        ]

    def test_duplicates_dropped(self):
        post = _post(
            content='<img src="https://example.com/t.jpg"><img src="/t.jpg">',
            meta={"thumbnail": "/t.jpg"},
        )

        images = ImageParser("https://example.com/").images_for_post(post)

        assert images == [{"src": "https://example.com/t.jpg", "title": "My Post"}]

    def test_data_uris_and_other_schemes_skipped(self):
        post = _post(
            content=(
                '<img src="data:image/png;base64,AAAA">'
                '<img src="ftp://example.com/x.png">'
                '<img alt="no source">'
            )
        )

        assert ImageParser("https://example.com").images_for_post(post) == []

    def test_external_images(self):
        post = _post(content='<img src="https://cdn.other.com/x.png" title="X">')

        assert ImageParser("https://example.com").images_for_post(post) == []
        assert ImageParser("https://example.com", include_external=True).images_for_post(post) == [
            {"src": "https://cdn.other.com/x.png", "title": "X"}
        ]

    def test_lazy_loaded_source(self):
        post = _post(content='<img data-src="/lazy.png">')

        assert ImageParser("https://example.com").images_for_post(post) == [
            {"src": "https://example.com/lazy.png"}
        ]

    def test_relative_to_subdirectory_site(self):
        post = _post(content='<img src="uploads/x.png">')

        assert ImageParser("https://example.com/blog").images_for_post(post) == [
            {"src": "https://example.com/blog/uploads/x.png"}
        ]

    def test_no_content_or_meta(self):
        post = Post(id=2, slug="empty", content=None, meta=None)

        assert ImageParser("https://example.com").images_for_post(post) == []
