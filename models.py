"""Data models for the site export pipeline."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger('site_export_pipeline')


class PipelinePhase(Enum):
    """Phases of one pipeline run, in the only order they may occur."""
    IDLE = "idle"
    ANNOTATING = "annotating"
    EXPORTING = "exporting"
    DONE = "done"


class BlockKind(Enum):
    """Closed set of block types a portable document is made of."""
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    CODE = "code"
    LIST = "list"
    TABLE = "table"
    IMAGE = "image"
    QUOTE = "quote"
    FALLBACK = "fallback"


@dataclass
class SitePage:
    """A rendered page handed over by the site generator."""

    url: str  # site-relative, e.g. /guide/page.html
    contents: str  # rendered HTML body
    title: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    src_path: Optional[str] = None
    component: Optional[str] = None
    version: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize page to dictionary."""
        return {
            'url': self.url,
            'title': self.title,
            'attributes': dict(self.attributes),
            'src_path': self.src_path,
            'component': self.component,
            'version': self.version,
            'metadata': dict(self.metadata)
        }

    def __eq__(self, other: Any) -> bool:
        """Compare pages by URL."""
        if not isinstance(other, SitePage):
            return False
        return self.url == other.url

    def __hash__(self) -> int:
        """Hash page by URL."""
        return hash(self.url)


@dataclass
class PageMetadata:
    """Computed per-page attributes attached for template consumption."""

    reading_time_minutes: int
    word_count: int
    last_updated: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the keys stored on ``SitePage.metadata``.

        ``last_updated`` is left out entirely when unknown.
        """
        data = {
            'reading_time_minutes': self.reading_time_minutes,
            'word_count': self.word_count,
        }
        if self.last_updated:
            data['last_updated'] = self.last_updated
        return data


@dataclass
class PortableListItem:
    """One list item: its inline text plus any nested blocks."""

    text: str
    blocks: List['PortableBlock'] = field(default_factory=list)


@dataclass
class PortableBlock:
    """A single block of a portable text document.

    Which fields are meaningful depends on ``kind``:
    HEADING uses ``text`` and ``level``; CODE uses ``text`` (verbatim) and
    ``language``; LIST uses ``items``, ``ordered`` and ``start``; TABLE uses
    ``rows`` and ``has_header``; IMAGE uses ``src`` and ``alt``; QUOTE uses
    ``blocks``; PARAGRAPH and FALLBACK use ``text``.
    """

    kind: BlockKind
    text: str = ''
    level: Optional[int] = None
    language: Optional[str] = None
    ordered: bool = False
    start: int = 1
    items: List[PortableListItem] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)
    has_header: bool = False
    src: Optional[str] = None
    alt: str = ''
    blocks: List['PortableBlock'] = field(default_factory=list)


@dataclass
class PortableTextDocument:
    """Structured, link-resolved rendition of one page."""

    page_url: str
    title: Optional[str] = None
    canonical_url: Optional[str] = None
    blocks: List[PortableBlock] = field(default_factory=list)

    def iter_blocks(self):
        """Yield every block depth-first, nested ones included."""
        stack = list(reversed(self.blocks))
        while stack:
            block = stack.pop()
            yield block
            nested = list(block.blocks)
            for item in block.items:
                nested.extend(item.blocks)
            stack.extend(reversed(nested))


@dataclass
class SearchIndexEntry:
    """A page's plain text plus identifying metadata for full-text search."""

    url: str
    title: Optional[str]
    text: str
    component: Optional[str] = None
    version: Optional[str] = None
    reading_time: Optional[int] = None
    word_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize entry to dictionary."""
        return {
            'url': self.url,
            'title': self.title,
            'text': self.text,
            'component': self.component,
            'version': self.version,
            'reading_time': self.reading_time,
            'word_count': self.word_count
        }


@dataclass(frozen=True)
class ExportConfiguration:
    """Resolved export settings; computed once per run and never mutated."""

    enabled: bool
    output_directory: str
    base_url: str
    source: str = 'default'  # which signal decided ``enabled``: override, ci or default
    index_file: str = 'search-index.json'
    max_workers: int = 1
    dry_run: bool = False
    write_report: bool = True


@dataclass
class ExportResult:
    """Statistics and outcome of one export run."""

    pages_total: int = 0
    pages_converted: int = 0
    pages_unchanged: int = 0
    pages_failed: int = 0
    written_files: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    index_path: Optional[str] = None
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize result to dictionary."""
        return {
            'pages_total': self.pages_total,
            'pages_converted': self.pages_converted,
            'pages_unchanged': self.pages_unchanged,
            'pages_failed': self.pages_failed,
            'written_files': list(self.written_files),
            'errors': list(self.errors),
            'index_path': self.index_path,
            'skipped': self.skipped
        }


__all__ = [
    'BlockKind',
    'ExportConfiguration',
    'ExportResult',
    'PageMetadata',
    'PipelinePhase',
    'PortableBlock',
    'PortableListItem',
    'PortableTextDocument',
    'SearchIndexEntry',
    'SitePage'
]
