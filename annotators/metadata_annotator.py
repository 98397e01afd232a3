"""Computes reading time, word count and last-updated metadata for pages."""

import logging
import math
from typing import Optional

from dateutil import parser as date_parser

from models import PageMetadata, SitePage
from .text_utils import count_words, html_to_text

logger = logging.getLogger('site_export_pipeline.annotators.metadata')

DEFAULT_WORDS_PER_MINUTE = 200

# Front-matter attribute that pins the last-updated date explicitly
LAST_UPDATED_ATTRIBUTE = 'page-last-updated'


def reading_time(word_count: int, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> int:
    """Minutes needed to read word_count words, never less than one."""
    return max(1, math.ceil(word_count / words_per_minute))


class MetadataAnnotator:
    """Attaches computed metadata to each page for template consumption."""

    def __init__(self, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE, provenance=None,
                 logger: logging.Logger = None):
        """
        Initialize annotator.

        Args:
            words_per_minute: Average reading speed, must be positive
            provenance: Object with ``last_updated(src_path)``; None disables last-updated
            logger: Optional logger instance

        Raises:
            ValueError: If words_per_minute is not a positive integer
        """
        if not isinstance(words_per_minute, int) or isinstance(words_per_minute, bool) or words_per_minute < 1:
            raise ValueError("words_per_minute must be a positive integer")

        self.logger = logger or logging.getLogger('site_export_pipeline.annotators.metadata')
        self.words_per_minute = words_per_minute
        self.provenance = provenance

    def compute(self, page: SitePage) -> PageMetadata:
        """Derive metadata for a page without touching it."""
        word_count = count_words(html_to_text(page.contents))
        return PageMetadata(
            reading_time_minutes=reading_time(word_count, self.words_per_minute),
            word_count=word_count,
            last_updated=self._last_updated(page)
        )

    def annotate(self, page: SitePage) -> SitePage:
        """
        Compute metadata and store it on ``page.metadata``.

        Only the page's own metadata mapping is modified. ``last_updated`` is
        removed rather than defaulted when no provenance is available.
        """
        metadata = self.compute(page)
        page.metadata.update(metadata.to_dict())
        if metadata.last_updated is None:
            page.metadata.pop('last_updated', None)

        self.logger.debug(
            f"Annotated {page.url}: {metadata.word_count} words, "
            f"{metadata.reading_time_minutes} min, last updated {metadata.last_updated or 'unknown'}"
        )
        return page

    def _last_updated(self, page: SitePage) -> Optional[str]:
        pinned = page.attributes.get(LAST_UPDATED_ATTRIBUTE)
        if pinned:
            try:
                return date_parser.parse(pinned).isoformat()
            except (ValueError, OverflowError):
                self.logger.warning(
                    f"Ignoring unparseable {LAST_UPDATED_ATTRIBUTE} {pinned!r} on {page.url}"
                )

        if self.provenance is None:
            return None
        return self.provenance.last_updated(page.src_path)


__all__ = ['MetadataAnnotator', 'reading_time', 'DEFAULT_WORDS_PER_MINUTE', 'LAST_UPDATED_ATTRIBUTE']
