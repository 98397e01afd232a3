"""Export controller: converts every page and aggregates the search index."""

import logging
import os
import posixpath
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from tqdm import tqdm

from annotators.text_utils import html_to_text
from converters import HtmlToPortableConverter, MarkdownWriter, normalize_path
from errors import DuplicatePageIdentityError, OutputDirectoryError
from logger import ProgressTracker, log_section
from models import ExportConfiguration, ExportResult, SearchIndexEntry, SitePage
from .search_index import SearchIndex

logger = logging.getLogger('site_export_pipeline.exporters.exportcontroller')

HTML_EXTENSIONS = ('.html', '.htm')


def page_identity(url: str) -> str:
    """
    Map a site-relative page URL to its export path.

    ``/guide/page.html`` -> ``guide/page.md``; directory URLs map to
    ``index.md``. Query strings and fragments are ignored, and ``..``
    segments can never leave the output root.
    """
    try:
        path = urlsplit(url or '/').path
    except ValueError:
        path = (url or '/').split('#', 1)[0].split('?', 1)[0]

    path = normalize_path('/' + path.lstrip('/'))
    if path.endswith('/'):
        path += 'index.html'

    root, ext = posixpath.splitext(path.lstrip('/'))
    if ext.lower() in HTML_EXTENSIONS:
        return root + '.md'
    return root + ext + '.md'


def check_identities(pages: Sequence[SitePage]) -> Dict[str, SitePage]:
    """
    Compute every page's identity and reject duplicates.

    Raises:
        DuplicatePageIdentityError: If two pages share an identity
    """
    by_identity = defaultdict(list)
    for page in pages:
        by_identity[page_identity(page.url)].append(page)

    for identity in sorted(by_identity):
        owners = by_identity[identity]
        if len(owners) > 1:
            raise DuplicatePageIdentityError(identity, [page.url for page in owners])

    return {identity: owners[0] for identity, owners in by_identity.items()}


class ExportController:
    """
    Drives conversion of the full page set when export is active.

    Per-page failures are recorded and the run continues; only duplicate
    identities and an unusable output directory abort the run.
    """

    def __init__(self, export_config: ExportConfiguration,
                 converter: Optional[HtmlToPortableConverter] = None,
                 writer: Optional[MarkdownWriter] = None,
                 logger: Optional[logging.Logger] = None,
                 show_progress: bool = False):
        """
        Initialize the export controller.

        Args:
            export_config: Resolved export configuration for this run
            converter: HTML converter; one bound to the configured base URL by default
            writer: Markdown serializer
            logger: Logger instance
            show_progress: Display a tqdm progress bar while converting
        """
        self.export_config = export_config
        self.logger = logger or logging.getLogger('site_export_pipeline.exporters.exportcontroller')
        self.converter = converter or HtmlToPortableConverter(export_config.base_url, logger=self.logger)
        self.writer = writer or MarkdownWriter(logger=self.logger)
        self.show_progress = show_progress
        self.output_directory = Path(export_config.output_directory)

    def should_export(self) -> bool:
        """Whether this run's configuration activates export."""
        return self.export_config.enabled

    def run_export(self, pages: Sequence[SitePage]) -> ExportResult:
        """
        Convert and write every page, then flush the search index once.

        Args:
            pages: Complete page set of the site

        Returns:
            ExportResult with per-page outcomes

        Raises:
            DuplicatePageIdentityError: Two pages map to the same output path
            OutputDirectoryError: The output directory cannot be created or written
        """
        log_section("Export")
        pages = list(pages)
        result = ExportResult(pages_total=len(pages))

        # Both fatal checks run before anything is written
        check_identities(pages)
        self._prepare_output_directory()

        index = SearchIndex(logger=self.logger)
        with ProgressTracker(total_items=len(pages), item_type='pages') as tracker:
            for page, outcome, error in self._convert_all(pages):
                identity = page_identity(page.url)
                if error is not None:
                    self._record_failure(result, page, 'convert', error)
                    tracker.increment(success=False)
                    continue

                markdown, entry = outcome
                try:
                    written = self._write_page(identity, markdown)
                except OSError as e:
                    self._record_failure(result, page, 'write', e)
                    tracker.increment(success=False)
                    continue

                if written:
                    result.pages_converted += 1
                    if not self.export_config.dry_run:
                        result.written_files.append(str(self.output_directory / identity))
                else:
                    result.pages_unchanged += 1
                index.add(identity, entry)
                tracker.increment(success=True)

        # Index is flushed only after every page has been handled
        if not self.export_config.dry_run:
            index_path = self.output_directory / self.export_config.index_file
            try:
                result.index_path = index.write(index_path)
            except OSError as e:
                raise OutputDirectoryError(str(index_path), str(e)) from e

        self._log_export_summary(result)
        return result

    def export_page(self, page: SitePage) -> Tuple[str, SearchIndexEntry]:
        """Convert one page to Markdown and build its search entry."""
        document = self.converter.convert(page.contents, page.url, title=page.title)
        markdown = self.writer.write(
            document,
            metadata=page.metadata,
            component=page.component,
            version=page.version
        )
        entry = SearchIndexEntry(
            url=page.url,
            title=page.title,
            text=html_to_text(page.contents),
            component=page.component,
            version=page.version,
            reading_time=page.metadata.get('reading_time_minutes'),
            word_count=page.metadata.get('word_count')
        )
        return markdown, entry

    def _convert_all(self, pages: List[SitePage]):
        """Yield (page, (markdown, entry), error) in page order."""
        max_workers = max(1, self.export_config.max_workers)

        if max_workers == 1:
            iterable = tqdm(pages, desc="Exporting pages", unit="page") if self.show_progress else pages
            for page in iterable:
                try:
                    yield page, self.export_page(page), None
                except Exception as e:
                    yield page, None, e
            return

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_page = {executor.submit(self.export_page, page): page for page in pages}

            futures = list(future_to_page.keys())
            if self.show_progress:
                futures = tqdm(futures, desc="Exporting pages", unit="page", total=len(pages))

            for future in futures:
                page = future_to_page[future]
                try:
                    yield page, future.result(), None
                except Exception as e:
                    yield page, None, e

    def _prepare_output_directory(self) -> None:
        """Create the output directory and make sure it is writable."""
        if self.export_config.dry_run:
            self.logger.info(f"Dry run: nothing will be written to {self.output_directory}")
            return

        try:
            self.output_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputDirectoryError(str(self.output_directory), str(e)) from e

        if not os.access(self.output_directory, os.W_OK | os.X_OK):
            raise OutputDirectoryError(str(self.output_directory), "permission denied")

        self.logger.debug(f"Output directory ready: {self.output_directory}")

    def _write_page(self, identity: str, markdown: str) -> bool:
        """
        Write a page file unless identical content is already on disk.

        Returns:
            True if the file was written, False if it was unchanged or this is a dry run
        """
        if self.export_config.dry_run:
            return True

        page_file = self.output_directory / identity
        if page_file.exists():
            try:
                if page_file.read_text(encoding='utf-8') == markdown:
                    self.logger.debug(f"Markdown unchanged for {identity}, skipping write")
                    return False
            except (OSError, UnicodeDecodeError) as e:
                self.logger.debug(f"Could not read existing file {page_file}: {e}, proceeding with write")

        page_file.parent.mkdir(parents=True, exist_ok=True)
        page_file.write_text(markdown, encoding='utf-8')
        self.logger.debug(f"Wrote {len(markdown)} characters to {page_file}")
        return True

    def _record_failure(self, result: ExportResult, page: SitePage, stage: str, error: Exception) -> None:
        self.logger.error(f"Failed to {stage} page {page.url}: {error}", exc_info=error)
        result.pages_failed += 1
        result.errors.append({
            'page_url': page.url,
            'page_title': page.title,
            'stage': stage,
            'error': str(error)
        })

    def _log_export_summary(self, result: ExportResult) -> None:
        """Log final export statistics."""
        self.logger.info("=" * 60)
        self.logger.info("EXPORT SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(f"Pages: {result.pages_total}")
        self.logger.info(f"Pages written: {result.pages_converted}")
        if result.pages_unchanged > 0:
            self.logger.info(f"Pages unchanged: {result.pages_unchanged}")
        self.logger.info(f"Pages failed: {result.pages_failed}")
        self.logger.info(f"Search index: {result.index_path or 'not written'}")
        self.logger.info(f"Output directory: {self.output_directory}")
        self.logger.info("=" * 60)


__all__ = ['ExportController', 'page_identity', 'check_identities']
