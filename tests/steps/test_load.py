"""Tests for the load step."""

import json
from datetime import datetime

import pytest

from pysitemapper.builder import SitemapBuilder
from pysitemapper.cache import SitemapCache
from pysitemapper.exceptions import ContentImportError
from pysitemapper.models import Author, Post, Term
from pysitemapper.steps.load import LoadStep


def _export():
    return {
        "authors": [{"id": 1, "login": "alice", "display_name": "Alice"}],
        "terms": [{"id": 10, "taxonomy": "category", "slug": "news", "name": "News"}],
        "posts": [
            {
                "id": 1,
                "slug": "hello-world",
                "title": "Hello World",
                "author_id": 1,
                "terms": [10],
                "modified_at": "2024-01-01T12:00:00+02:00",
            },
            {"id": 2, "post_type": "page", "slug": "about", "title": "About"},
        ],
    }


@pytest.fixture(name="export_file")
def export_file_fixture(tmp_path):
    def write(data):
        path = tmp_path / "export.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return write


@pytest.fixture(name="step")
def step_fixture(app_settings):
    return LoadStep(settings=app_settings)


class TestLoadStep:
    """Tests for LoadStep."""

    def test_creates_records(self, session, step, export_file):
        stats = step.run(export_file(_export()), session=session)

        assert stats["authors"] == 1
        assert stats["terms"] == 1
        assert stats["posts_created"] == 2
        assert stats["posts_updated"] == 0
        assert stats["unchanged"] == 0

        author = session.get(Author, 1)
        assert author.nicename == "alice"

        post = session.get(Post, 1)
        assert [term.slug for term in post.terms] == ["news"]
        # Aware timestamps are stored as naive UTC
        assert post.modified_at == datetime(2024, 1, 1, 10, 0, 0)

    def test_new_post_defaults_dates(self, session, step, export_file):
        step.run(export_file(_export()), session=session)

        page = session.get(Post, 2)
        assert page.published_at is not None
        assert page.modified_at == page.published_at

    def test_reload_is_unchanged(self, session, step, export_file):
        path = export_file(_export())
        step.run(path, session=session)

        stats = step.run(path, session=session)

        assert stats["unchanged"] == 4
        assert stats["posts_created"] == 0
        assert stats["posts_updated"] == 0
        assert stats["invalidated"] == 0

    def test_update_touches_modified_at(self, session, step, export_file):
        step.run(export_file(_export()), session=session)
        before = session.get(Post, 2).modified_at

        data = _export()
        data["posts"][1]["title"] = "About us"
        stats = step.run(export_file(data), session=session)

        page = session.get(Post, 2)
        assert stats["posts_updated"] == 1
        assert page.title == "About us"
        assert page.modified_at >= before

    def test_update_invalidates_affected_sitemaps(self, session, step, export_file):
        step.run(export_file(_export()), session=session)

        cache = SitemapCache(session)
        for sitemap_type in ("index", "post", "category", "page", "author", "post_tag"):
            cache.set(sitemap_type, 1, "fp", "<xml/>")

        data = _export()
        data["posts"][0]["title"] = "Hello again"
        stats = step.run(export_file(data), session=session)

        # post, its category, its author, the home page sitemap and the index
        assert stats["invalidated"] == 5
        assert cache.get("post_tag", 1, "fp") == "<xml/>"
        assert cache.get("page", 1, "fp") is None
        assert cache.get("index", 1, "fp") is None

    def test_home_sitemap_kept_without_home(self, session, app_settings, export_file):
        settings = app_settings.model_copy(update={"include_home": False})
        step = LoadStep(settings=settings)
        step.run(export_file(_export()), session=session)

        cache = SitemapCache(session)
        cache.set("page", 1, "fp", "<xml/>")

        data = _export()
        data["posts"][0]["title"] = "Hello again"
        step.run(export_file(data), session=session)

        assert cache.get("page", 1, "fp") == "<xml/>"

    def test_home_lastmod_refreshed_after_update(
        self, session, content, app_settings, plugin_manager, export_file
    ):
        builder = SitemapBuilder(session, settings=app_settings, plugin_manager=plugin_manager)
        assert "<lastmod>2024-04-01T00:00:00+00:00</lastmod>" in builder.render("page-sitemap.xml")

        export = {
            "posts": [
                {
                    "id": 2,
                    "slug": "second-post",
                    "title": "Second",
                    "author_id": 1,
                    "terms": [10, 13],
                    "modified_at": "2025-06-01T00:00:00",
                }
            ]
        }
        LoadStep(settings=app_settings).run(export_file(export), session=session)

        builder = SitemapBuilder(session, settings=app_settings, plugin_manager=plugin_manager)
        xml = builder.render("page-sitemap.xml")

        assert builder.cache_hits == 0
        assert "<lastmod>2025-06-01T00:00:00+00:00</lastmod>" in xml

    def test_term_change_updates_links(self, session, step, export_file):
        data = _export()
        data["terms"].append({"id": 11, "taxonomy": "post_tag", "slug": "python"})
        step.run(export_file(data), session=session)

        data["posts"][0]["terms"] = [11]
        stats = step.run(export_file(data), session=session)

        assert stats["posts_updated"] == 1
        assert [term.id for term in session.get(Post, 1).terms] == [11]

    def test_unknown_term_skipped(self, session, step, export_file, capsys):
        data = _export()
        data["posts"][0]["terms"] = [10, 99]
        step.run(export_file(data), session=session)

        assert [term.id for term in session.get(Post, 1).terms] == [10]
        assert "unknown term 99" in capsys.readouterr().out

    def test_term_taxonomy_stored(self, session, step, export_file):
        step.run(export_file(_export()), session=session)

        assert session.get(Term, 10).taxonomy == "category"


class TestReadExport:
    """Tests for reading export files."""

    def test_missing_file(self, step, tmp_path):
        with pytest.raises(ContentImportError, match="Cannot read"):
            step.read(tmp_path / "missing.json")

    def test_invalid_json(self, step, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ContentImportError, match="Invalid content export"):
            step.read(path)

    def test_missing_required_field(self, step, export_file):
        path = export_file({"posts": [{"id": 1}]})

        with pytest.raises(ContentImportError, match="Invalid content export"):
            step.read(path)

    def test_empty_export(self, session, step, export_file):
        stats = step.run(export_file({}), session=session)

        assert stats == {
            "authors": 0,
            "terms": 0,
            "posts_created": 0,
            "posts_updated": 0,
            "unchanged": 0,
            "invalidated": 0,
        }
