"""Plugin hook specifications for pySitemapper.

This module defines the plugin interface using pluggy's hookspec decorator.
Plugins implement these hooks to change what ends up in the sitemaps.

Three kinds of hooks exist:

* collect hooks are called normally; every implementation's result is used
  (``sitemap_exclude_post_ids``, ``register_sitemaps``).
* first-result hooks stop at the first implementation returning a value
  (``sitemap_entries_per_page``).
* filter hooks pass a value through every implementation in turn. The first
  argument is the value; each implementation receives what the previous one
  returned and may return ``None`` to leave it unchanged. Filters are run
  with :func:`pysitemapper.plugins.apply_filter`.
"""

import pluggy

hookspec = pluggy.HookspecMarker("pysitemapper")


@hookspec
def sitemap_exclude_post_ids():
    """
    Return post IDs to keep out of every post type sitemap.

    Returns:
        Iterable of post IDs. Results of all plugins are combined.

    Example:
        @hookimpl
        def sitemap_exclude_post_ids():
            return [42, 57]
    """


@hookspec
def sitemap_exclude_post_type(excluded, post_type):
    """
    Filter whether a whole post type is left out of the sitemaps.

    Args:
        excluded: Current decision (False unless an earlier plugin excluded it)
        post_type: Post type name, e.g. "post", "page", "product"

    Returns:
        True to exclude the post type
    """


@hookspec
def sitemap_exclude_taxonomy(excluded, taxonomy):
    """
    Filter whether a whole taxonomy is left out of the sitemaps.

    Args:
        excluded: Current decision
        taxonomy: Taxonomy name, e.g. "category", "post_tag"

    Returns:
        True to exclude the taxonomy
    """


@hookspec
def sitemap_exclude_authors(users):
    """
    Filter the authors listed in the author sitemap.

    Args:
        users: List of Author records that qualify for the author sitemap

    Returns:
        The list of authors to keep
    """


@hookspec
def sitemap_exclude_term_ids(term_ids):
    """
    Filter the term IDs left out of the taxonomy sitemaps.

    Args:
        term_ids: Term IDs excluded so far

    Returns:
        Term IDs to exclude

    Example:
        @hookimpl
        def sitemap_exclude_term_ids(term_ids):
            return [*term_ids, 7]
    """


@hookspec
def register_sitemaps(registry):
    """
    Register additional named sitemaps.

    Args:
        registry: SitemapRegistry instance to register sitemaps with

    Example:
        @hookimpl
        def register_sitemaps(registry):
            def events():
                for event in load_events():
                    yield {"loc": event.url, "lastmod": event.updated}

            registry.register("events", events)
    """


@hookspec
def sitemap_index_entries(entries):
    """
    Append raw <sitemap> elements to the sitemap index.

    Args:
        entries: XML string of extra entries (empty for the first plugin)

    Returns:
        XML string placed after the generated <sitemap> elements

    Example:
        @hookimpl
        def sitemap_index_entries(entries):
            return entries + (
                "<sitemap><loc>https://example.com/shop-sitemap.xml</loc></sitemap>\\n"
            )
    """


@hookspec
def sitemap_entry_images(images, entity_id):
    """
    Filter the images attached to a post's sitemap entry.

    Args:
        images: List of dicts with "src" and optionally "title" and "alt"
        entity_id: ID of the post the entry belongs to

    Returns:
        List of image dicts
    """


@hookspec
def sitemap_entry_url(url, entity):
    """
    Filter the <loc> URL of a sitemap entry.

    Args:
        url: Generated absolute URL
        entity: Post, Term or Author record (None for the home URL and
            custom sitemap entries)

    Returns:
        URL to use. An empty string drops the entry.
    """


@hookspec(firstresult=True)
def sitemap_entries_per_page():
    """
    Override the maximum number of entries per sitemap file.

    Returns:
        Positive integer, or None to keep the configured value
    """


@hookspec
def sitemap_video_property(property, entity_id):
    """
    Filter the <video:*> child elements of an entry's video block.

    Args:
        property: Rendered <video:*> elements (empty when the entity has no
            video metadata)
        entity_id: ID of the post the entry belongs to

    Returns:
        XML string. A non-empty result is wrapped in <video:video>.

    Example:
        @hookimpl
        def sitemap_video_property(property, entity_id):
            return property + "<video:live>no</video:live>"
    """


@hookspec
def sitemap_urlset(urlset):
    """
    Filter the opening <urlset> tag of every sitemap.

    Args:
        urlset: Opening tag including its namespace declarations

    Returns:
        Opening tag to write
    """
