"""Site reader that loads a rendered site directory as SitePage objects."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from models import SitePage

logger = logging.getLogger('site_export_pipeline.fetcher.site')

# Selectors tried in order when no content selector is configured
DEFAULT_CONTENT_SELECTORS = ['article', 'main', 'body']

COMPONENT_META = 'page-component'
VERSION_META = 'page-version'
ORIGIN_PATH_META = 'page-origin-path'


class SiteReader:
    """Reads every rendered HTML page of a site, in sorted path order."""

    def __init__(self, site_directory: str, content_selector: Optional[str] = None,
                 exclude: Optional[List[str]] = None, logger: logging.Logger = None):
        """
        Initialize site reader.

        Args:
            site_directory: Root of the rendered site
            content_selector: CSS selector of the article body; falls back to article, main, body
            exclude: Directories whose files are never read (e.g. the export output directory)
            logger: Optional logger instance

        Raises:
            FileNotFoundError: If site_directory does not exist
        """
        self.logger = logger or logging.getLogger('site_export_pipeline.fetcher.site')
        self.site_directory = Path(site_directory).resolve()
        self.content_selector = content_selector
        self.exclude = [Path(path).resolve() for path in (exclude or [])]

        if not self.site_directory.is_dir():
            raise FileNotFoundError(f"Site directory not found: {self.site_directory}")

        self.stats = {'files_found': 0, 'pages_read': 0, 'files_failed': 0}

    def find_html_files(self) -> List[Path]:
        """All ``*.html`` files under the site directory, sorted by relative path."""
        files = []
        for path in self.site_directory.rglob('*.html'):
            if not path.is_file() or self._is_excluded(path):
                continue
            files.append(path)
        files.sort(key=lambda p: p.relative_to(self.site_directory).as_posix())
        self.stats['files_found'] = len(files)
        return files

    def read_pages(self) -> List[SitePage]:
        """
        Read every page of the site.

        Unreadable files are logged and skipped.

        Returns:
            SitePage list in deterministic order
        """
        pages = []
        for path in self.find_html_files():
            try:
                pages.append(self.read_page(path))
            except (OSError, UnicodeDecodeError) as e:
                self.logger.error(f"Failed to read {path}: {e}")
                self.stats['files_failed'] += 1

        self.stats['pages_read'] = len(pages)
        self.logger.info(f"Read {len(pages)} pages from {self.site_directory}")
        return pages

    def read_page(self, path: Path) -> SitePage:
        """Build a SitePage from one rendered HTML file."""
        path = Path(path).resolve()
        with open(path, 'r', encoding='utf-8') as f:
            soup = BeautifulSoup(f, 'lxml')

        attributes = self._extract_meta(soup)
        content = self._select_content(soup)
        url = '/' + path.relative_to(self.site_directory).as_posix()

        page = SitePage(
            url=url,
            contents=content.decode_contents() if content is not None else '',
            title=self._extract_title(soup, content),
            attributes=attributes,
            src_path=attributes.get(ORIGIN_PATH_META),
            component=attributes.get(COMPONENT_META),
            version=attributes.get(VERSION_META)
        )
        self.logger.debug(f"Read page {url} ({len(page.contents)} characters)")
        return page

    def _select_content(self, soup: BeautifulSoup):
        selectors = ([self.content_selector] if self.content_selector else []) + DEFAULT_CONTENT_SELECTORS
        for selector in selectors:
            element = soup.select_one(selector)
            if element is not None:
                return element
        return None

    @staticmethod
    def _extract_title(soup: BeautifulSoup, content) -> Optional[str]:
        h1 = content.find('h1') if content is not None else None
        if h1 is None:
            h1 = soup.find('h1')
        if h1 is not None:
            text = ' '.join(h1.get_text().split())
            if text:
                return text

        if soup.title and soup.title.string:
            return ' '.join(soup.title.string.split()) or None
        return None

    @staticmethod
    def _extract_meta(soup: BeautifulSoup) -> Dict[str, str]:
        """Named ``<meta>`` tags as a name -> content mapping; the first occurrence wins."""
        attributes = {}
        for meta in soup.find_all('meta'):
            name = meta.get('name')
            content = meta.get('content')
            if name and content is not None and name not in attributes:
                attributes[name] = content
        return attributes

    def _is_excluded(self, path: Path) -> bool:
        resolved = path.resolve()
        for excluded in self.exclude:
            if resolved == excluded or excluded in resolved.parents:
                return True
        return False

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)


__all__ = ['SiteReader', 'DEFAULT_CONTENT_SELECTORS']
