"""Link resolver for turning page-relative hrefs into absolute site URLs."""

import logging
import threading
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

logger = logging.getLogger('site_export_pipeline.converters.linkresolver')


class LinkResolver:
    """Resolves hrefs found in rendered pages against the site's base URL."""

    def __init__(self, site_base_url: Optional[str] = None, logger: logging.Logger = None):
        """Initialize link resolver with the default site base URL."""
        self.logger = logger or logging.getLogger('site_export_pipeline.converters.linkresolver')
        self.site_base_url = site_base_url
        self.stats = {
            'links_absolute': 0,
            'links_fragment': 0,
            'links_relative': 0,
            'links_unresolved': 0
        }
        self._stats_lock = threading.Lock()

    def resolve(self, href: str, current_page_url: str, site_base_url: Optional[str] = None) -> str:
        """
        Resolve an href found on a page to an absolute URL.

        Rules, in order:
        1. href already has a scheme (or is protocol-relative) -> unchanged
        2. fragment-only href -> current page's absolute URL plus fragment
        3. anything else -> relative to the current page's directory (or the
           site root for a leading ``/``), joined with the site base URL

        Malformed hrefs are returned unchanged so that a single broken link
        never aborts conversion of the page.

        Args:
            href: Link target as written in the HTML
            current_page_url: Site-relative URL of the page containing the link
            site_base_url: Site base URL; defaults to the one given at init

        Returns:
            Absolute URL, or the original href if it cannot be resolved
        """
        base_url = site_base_url or self.site_base_url
        if href is None or not href.strip():
            self._unresolved(href, 'empty href')
            return href

        target = href.strip()
        try:
            parsed = urlsplit(target)
        except ValueError as e:
            self._unresolved(href, str(e))
            return href

        if parsed.scheme or target.startswith('//'):
            self._count('links_absolute')
            return href

        if not base_url:
            self._unresolved(href, 'no site base URL')
            return href

        try:
            base = urlsplit(base_url)
        except ValueError as e:
            self._unresolved(href, f"invalid base URL: {e}")
            return href

        if not base.scheme or not base.netloc:
            self._unresolved(href, f"base URL is not absolute: {base_url}")
            return href

        page_path = self._page_path(current_page_url)
        origin = f"{base.scheme}://{base.netloc}{base.path.rstrip('/')}"

        if target.startswith('#'):
            self._count('links_fragment')
            return origin + page_path + target

        if parsed.path.startswith('/'):
            path = parsed.path
        elif not parsed.path:
            # query-only href such as "?tab=2"
            path = page_path
        else:
            directory = page_path.rsplit('/', 1)[0] + '/'
            path = directory + parsed.path

        resolved = origin + normalize_path(path)
        if parsed.query:
            resolved += '?' + parsed.query
        if parsed.fragment:
            resolved += '#' + parsed.fragment

        self._count('links_relative')
        return resolved

    def page_url(self, current_page_url: str, site_base_url: Optional[str] = None) -> Optional[str]:
        """Return the absolute URL of a page, or None without a usable base URL."""
        base_url = site_base_url or self.site_base_url
        if not base_url:
            return None
        try:
            base = urlsplit(base_url)
        except ValueError:
            return None
        if not base.scheme or not base.netloc:
            return None
        return f"{base.scheme}://{base.netloc}{base.path.rstrip('/')}{self._page_path(current_page_url)}"

    def get_stats(self) -> Dict[str, Any]:
        """Get link resolution statistics."""
        with self._stats_lock:
            return dict(self.stats)

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self.stats[key] += 1

    def _page_path(self, current_page_url: str) -> str:
        """Normalize a site-relative page URL to an absolute path without query or fragment."""
        url = current_page_url or '/'
        try:
            path = urlsplit(url).path
        except ValueError:
            path = url.split('#', 1)[0].split('?', 1)[0]
        if not path.startswith('/'):
            path = '/' + path
        return normalize_path(path)

    def _unresolved(self, href: Optional[str], reason: str) -> None:
        self._count('links_unresolved')
        self.logger.debug(f"Leaving link unresolved: {href!r} ({reason})")


def normalize_path(path: str) -> str:
    """
    Collapse ``.``, ``..`` and empty segments of an absolute URL path.

    ``..`` never climbs above the root. A trailing slash is kept when the
    input ends in a directory reference.
    """
    trailing = path.endswith('/') or path.endswith('/.') or path.endswith('/..')
    stack = []
    for segment in path.split('/'):
        if segment in ('', '.'):
            continue
        if segment == '..':
            if stack:
                stack.pop()
            continue
        stack.append(segment)

    result = '/' + '/'.join(stack)
    if trailing and stack:
        result += '/'
    return result


__all__ = ['LinkResolver', 'normalize_path']
