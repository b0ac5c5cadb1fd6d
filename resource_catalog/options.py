"""
Catalog options: which features are shown and how resources are ordered.

Options come from the host page (a plain mapping, usually produced by the
WordPress plugin) or from ``RESOURCE_CATALOG_*`` environment variables. Every
key is optional and a malformed value never fails construction; it falls back
to that option's default.

Recognised keys:
    site_url              absolute http(s) URL of the WordPress site
    search                show the search box
    search_expand_button  show the button that expands the search box
    search_expanded       search box starts expanded
    reset                 show the reset control
    show_all              load all resources on start (else start empty)
    filters               show the filter bar at all
    audiences_filter, lengths_filter, tags_filter,
    categories_filter, programs_filter
                          show the individual facet selectors
    outbound_analytics    report outbound link clicks
    orderby               date | id | modified | parent | slug | title
    order                 asc | desc
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from resource_catalog.models import SORT_DIRECTIONS, SORT_KEYS, SortDirection, SortKey

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN = "http://localhost"
ENV_PREFIX = "RESOURCE_CATALOG_"

_FALSE_STRINGS = {"", "0", "false", "no", "off", "none", "null"}

# Option key -> attribute on Features
_FEATURE_KEYS: Dict[str, str] = {
    "search_expand_button": "search_expand_button",
    "search": "search",
    "reset": "reset",
    "show_all": "initial_load",
    "filters": "filters",
    "outbound_analytics": "outbound_analytics",
}

# Option key -> attribute on FilterVisibility
_FILTER_KEYS: Dict[str, str] = {
    "audiences_filter": "audiences",
    "lengths_filter": "lengths",
    "tags_filter": "tags",
    "categories_filter": "categories",
    "programs_filter": "programs",
}

OPTION_KEYS = (
    ["site_url", "search_expanded", "order", "orderby"]
    + list(_FEATURE_KEYS)
    + list(_FILTER_KEYS)
)


def coerce_flag(value: Any) -> bool:
    """Truthiness for option values that may arrive as strings."""
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def validate_url(url: Any) -> Optional[str]:
    """Return ``url`` without a trailing slash if it is an absolute http(s) URL."""
    if not isinstance(url, str):
        return None
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return url.strip().rstrip("/")


class FilterVisibility(BaseModel):
    audiences: bool = True
    lengths: bool = True
    tags: bool = True
    categories: bool = True
    programs: bool = True


class Features(BaseModel):
    initial_load: bool = True
    search_expand_button: bool = True
    search: bool = True
    reset: bool = True
    filters: bool = True
    filter: FilterVisibility = Field(default_factory=FilterVisibility)
    outbound_analytics: bool = True


class SortOrder(BaseModel):
    by: SortKey = "title"
    how: SortDirection = "asc"


class CatalogOptions(BaseModel):
    """Construction-time configuration for ``CatalogClient``."""

    base_url: str = DEFAULT_ORIGIN
    features: Features = Field(default_factory=Features)
    order: SortOrder = Field(default_factory=SortOrder)
    search_expanded: bool = False

    @classmethod
    def from_mapping(
        cls,
        options: Optional[Mapping[str, Any]] = None,
        *,
        default_origin: str = DEFAULT_ORIGIN,
    ) -> "CatalogOptions":
        """Build options from host-page style keys, tolerating bad values."""
        result = cls(base_url=validate_url(default_origin) or DEFAULT_ORIGIN)
        if not isinstance(options, Mapping):
            if options is not None:
                logger.warning(f"[CatalogOptions] Ignoring options of type {type(options).__name__}")
            return result

        if "site_url" in options:
            site_url = validate_url(options["site_url"])
            if site_url:
                result.base_url = site_url
            else:
                logger.warning(f"[CatalogOptions] Invalid site_url {options['site_url']!r}, using {result.base_url}")

        for key, attr in _FEATURE_KEYS.items():
            if key in options:
                setattr(result.features, attr, coerce_flag(options[key]))
        for key, attr in _FILTER_KEYS.items():
            if key in options:
                setattr(result.features.filter, attr, coerce_flag(options[key]))

        if "order" in options:
            result.order.how = options["order"] if options["order"] in SORT_DIRECTIONS else "asc"
        if "orderby" in options:
            result.order.by = options["orderby"] if options["orderby"] in SORT_KEYS else "title"

        if "search_expanded" in options:
            result.search_expanded = coerce_flag(options["search_expanded"])
        if not result.features.search_expand_button:
            # Without the expand button there is no way to open the box
            result.search_expanded = True

        return result


def options_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect ``RESOURCE_CATALOG_<KEY>`` variables as an options mapping."""
    environ = os.environ if environ is None else environ
    options: Dict[str, str] = {}
    for key in OPTION_KEYS:
        value = environ.get(f"{ENV_PREFIX}{key.upper()}")
        if value is not None:
            options[key] = value
    return options


def load_options(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    dotenv_path: Optional[Path] = None,
) -> CatalogOptions:
    """Options from the environment (and ``.env``), then ``overrides``.

    ``RESOURCE_CATALOG_ORIGIN`` replaces the default origin used when no
    valid ``site_url`` is configured.
    """
    load_dotenv(dotenv_path=dotenv_path, override=False)
    options: Dict[str, Any] = options_from_env()
    if overrides:
        options.update(overrides)
    origin = os.getenv(f"{ENV_PREFIX}ORIGIN", DEFAULT_ORIGIN)
    return CatalogOptions.from_mapping(options, default_origin=origin)
