"""Annotators package: per-page metadata computed before final rendering."""

from .metadata_annotator import DEFAULT_WORDS_PER_MINUTE, MetadataAnnotator, reading_time
from .provenance import GitProvenance
from .text_utils import count_words, html_to_text

__all__ = [
    'MetadataAnnotator',
    'GitProvenance',
    'DEFAULT_WORDS_PER_MINUTE',
    'reading_time',
    'count_words',
    'html_to_text'
]
