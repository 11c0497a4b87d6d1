"""Configuration management for pySitemapper.

Supports loading configuration from:
1. config.toml - Site, sitemap, exclusion and cache settings
2. .env - Secrets and local overrides (DATABASE_URL)
3. Environment variables - Override both (highest priority)

Priority: Environment variables > .env > config.toml > defaults
"""

import json
import sys
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Protocol limit for a single sitemap file (sitemaps.org 0.9)
MAX_ENTRIES_PER_SITEMAP = 50_000


class Settings(BaseSettings):
    """
    Application settings loaded from config.toml and .env.

    Configuration loading order (higher priority overrides lower):
    1. Default values (defined in Field defaults)
    2. config.toml
    3. .env file
    4. Environment variables (highest priority)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Site
    base_url: str = Field(
        default="https://example.com", description="Public site URL, without trailing slash"
    )
    permalinks: dict[str, str] = Field(
        default_factory=lambda: {
            "post": "/{slug}/",
            "page": "/{slug}/",
            "category": "/category/{slug}/",
            "post_tag": "/tag/{slug}/",
        },
        description="URL templates per post type or taxonomy",
    )
    author_base: str = Field(default="/author/", description="Path prefix for author archives")

    # Database
    database_url: str = Field(
        default="sqlite:///./data/pysitemapper.db",
        description="Content database URL",
    )

    # Sitemap
    entries_per_page: int = Field(
        default=1000, ge=1, description="Maximum entries per sitemap file"
    )
    include_home: bool = Field(
        default=True, description="Add the home URL to the front page post type sitemap"
    )
    front_page_post_type: str = Field(
        default="page", description="Post type whose sitemap carries the home URL"
    )
    include_author_sitemap: bool = Field(default=True, description="Generate author-sitemap.xml")
    include_images: bool = Field(default=True, description="Emit image:image entries")
    include_external_images: bool = Field(
        default=False, description="Keep images hosted outside base_url"
    )
    stylesheet_url: str | None = Field(
        default=None, description="XSL stylesheet referenced from every sitemap"
    )
    generator_comment: bool = Field(
        default=True, description="Append a generator comment to every sitemap"
    )

    # Exclusions (applied by the built-in plugin)
    exclude_post_ids: list[int] = Field(default_factory=list, description="Post IDs to exclude")
    exclude_post_types: list[str] = Field(
        default_factory=lambda: ["attachment"], description="Post types to exclude"
    )
    exclude_taxonomies: list[str] = Field(
        default_factory=lambda: ["post_format"], description="Taxonomies to exclude"
    )
    exclude_term_ids: list[int] = Field(default_factory=list, description="Term IDs to exclude")
    exclude_author_ids: list[int] = Field(
        default_factory=list, description="Author IDs to exclude"
    )

    # Cache
    enable_cache: bool = Field(default=True, description="Store rendered sitemaps in the database")
    cache_ttl_seconds: int = Field(
        default=86400, ge=0, description="Maximum age of a cached sitemap (seconds)"
    )

    # Output
    output_dir: str = Field(default="public", description="Directory written by `build`")
    gzip_output: bool = Field(default=False, description="Write .xml.gz instead of .xml")

    # Application Settings
    log_level: str = Field(default="INFO", description="Logging level")
    enable_debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Store base_url without a trailing slash."""
        return v.rstrip("/")

    @field_validator(
        "exclude_post_ids",
        "exclude_post_types",
        "exclude_taxonomies",
        "exclude_term_ids",
        "exclude_author_ids",
        mode="before",
    )
    @classmethod
    def parse_list(cls, v: Any) -> Any:
        """Parse lists from a JSON string or a comma-separated string."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("permalinks", mode="before")
    @classmethod
    def parse_permalinks(cls, v: Any) -> Any:
        """Parse permalinks from a JSON object string."""
        if isinstance(v, str):
            return json.loads(v)
        return v

    def __init__(self, **kwargs):
        """
        Initialize settings, loading from config.toml if present.

        Loading order (later values override earlier):
        1. Default Field values
        2. config.toml (if exists)
        3. .env file (via Pydantic)
        4. Environment variables (via Pydantic)
        5. **kwargs passed to __init__
        """
        config_path = Path("config.toml")
        toml_data = {}

        if config_path.exists():
            try:
                with open(config_path, "rb") as f:
                    toml_config = tomllib.load(f)

                toml_data = self._flatten_toml(toml_config)
            except (OSError, tomllib.TOMLDecodeError) as e:
                # Fall back to .env and environment variables
                print(f"Warning: Failed to load config.toml: {e}", file=sys.stderr)

        merged_data = {**toml_data, **kwargs}

        super().__init__(**merged_data)

    @staticmethod
    def _flatten_toml(config: dict) -> dict:
        """
        Flatten TOML config structure to match Pydantic field names.

        Example:
            [cache]
            ttl_seconds = 3600

            Becomes: {"cache_ttl_seconds": 3600}
        """
        sections = {
            "site": {
                "base_url": "base_url",
                "permalinks": "permalinks",
                "author_base": "author_base",
            },
            "database": {
                "url": "database_url",
            },
            "sitemap": {
                "entries_per_page": "entries_per_page",
                "include_home": "include_home",
                "front_page_post_type": "front_page_post_type",
                "include_author_sitemap": "include_author_sitemap",
                "include_images": "include_images",
                "include_external_images": "include_external_images",
                "stylesheet_url": "stylesheet_url",
                "generator_comment": "generator_comment",
            },
            "exclusions": {
                "post_ids": "exclude_post_ids",
                "post_types": "exclude_post_types",
                "taxonomies": "exclude_taxonomies",
                "term_ids": "exclude_term_ids",
                "author_ids": "exclude_author_ids",
            },
            "cache": {
                "enabled": "enable_cache",
                "ttl_seconds": "cache_ttl_seconds",
            },
            "output": {
                "dir": "output_dir",
                "gzip": "gzip_output",
            },
            "application": {
                "log_level": "log_level",
                "enable_debug": "enable_debug",
            },
        }

        flat = {}
        for section, keys in sections.items():
            values = config.get(section, {})
            for key, field_name in keys.items():
                if key in values:
                    flat[field_name] = values[key]

        return flat


# Global settings instance
settings = Settings()
