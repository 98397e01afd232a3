"""Fetchers package for reading rendered site pages in standalone runs."""

from .site_reader import DEFAULT_CONTENT_SELECTORS, SiteReader

__all__ = [
    'DEFAULT_CONTENT_SELECTORS',
    'SiteReader'
]
