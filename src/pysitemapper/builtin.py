"""Built-in plugin applying the exclusion settings from config.toml."""

import pluggy

from pysitemapper.config import Settings

hookimpl = pluggy.HookimplMarker("pysitemapper")


class SettingsPlugin:
    """
    Implements the exclusion hooks from configuration.

    Registered on every plugin manager under the name "builtin". It runs
    after third-party implementations of the same filter, so settings
    exclusions always apply.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @hookimpl(trylast=True)
    def sitemap_exclude_post_ids(self):
        return list(self.settings.exclude_post_ids)

    @hookimpl(trylast=True)
    def sitemap_exclude_post_type(self, excluded, post_type):
        return excluded or post_type in self.settings.exclude_post_types

    @hookimpl(trylast=True)
    def sitemap_exclude_taxonomy(self, excluded, taxonomy):
        return excluded or taxonomy in self.settings.exclude_taxonomies

    @hookimpl(trylast=True)
    def sitemap_exclude_term_ids(self, term_ids):
        extra = [term_id for term_id in self.settings.exclude_term_ids if term_id not in term_ids]
        return [*term_ids, *extra]

    @hookimpl(trylast=True)
    def sitemap_exclude_authors(self, users):
        excluded = set(self.settings.exclude_author_ids)
        return [user for user in users if user.id not in excluded]
