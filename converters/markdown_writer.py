"""Serializes portable text documents to Markdown with YAML front matter."""

import logging
from typing import Any, Dict, List, Optional

import yaml

from models import BlockKind, PortableBlock, PortableListItem, PortableTextDocument
from .inline_converter import longest_backtick_run

logger = logging.getLogger('site_export_pipeline.converters.markdownwriter')

# Metadata keys copied into the front matter, in output order
FRONTMATTER_METADATA_KEYS = ('reading_time_minutes', 'word_count', 'last_updated')


class MarkdownWriter:
    """Writes a PortableTextDocument as a downloadable Markdown file."""

    def __init__(self, include_frontmatter: bool = True, logger: logging.Logger = None):
        """Initialize writer."""
        self.logger = logger or logging.getLogger('site_export_pipeline.converters.markdownwriter')
        self.include_frontmatter = include_frontmatter

    def write(self, document: PortableTextDocument, metadata: Optional[Dict[str, Any]] = None,
              component: Optional[str] = None, version: Optional[str] = None) -> str:
        """
        Serialize a document to Markdown.

        Args:
            document: Converted page
            metadata: Computed page metadata (reading time, word count, last updated)
            component: Component name for multi-component sites
            version: Component version

        Returns:
            Markdown text ending in a single newline
        """
        blocks = list(document.blocks)
        if document.title and not self._has_title(blocks):
            blocks.insert(0, PortableBlock(kind=BlockKind.HEADING, text=document.title, level=1))

        body = self.serialize_blocks(blocks)
        if not self.include_frontmatter:
            return body + '\n' if body else ''

        frontmatter = self._generate_frontmatter(document, metadata or {}, component, version)
        if body:
            return f"{frontmatter}\n\n{body}\n"
        return f"{frontmatter}\n"

    def serialize_blocks(self, blocks: List[PortableBlock]) -> str:
        """Serialize blocks separated by blank lines."""
        parts = [self.serialize_block(block) for block in blocks]
        return '\n\n'.join(part for part in parts if part)

    def serialize_block(self, block: PortableBlock) -> str:
        """Serialize a single block."""
        if block.kind == BlockKind.HEADING:
            level = min(max(block.level or 1, 1), 6)
            return f"{'#' * level} {' '.join(block.text.split())}"
        if block.kind == BlockKind.CODE:
            return self._serialize_code(block)
        if block.kind == BlockKind.LIST:
            return self._serialize_list(block)
        if block.kind == BlockKind.TABLE:
            return self._serialize_table(block)
        if block.kind == BlockKind.IMAGE:
            if not block.src:
                return block.alt
            return f"![{block.alt}]({block.src})"
        if block.kind == BlockKind.QUOTE:
            inner = self.serialize_blocks(block.blocks)
            return '\n'.join(f"> {line}" if line else '>' for line in inner.split('\n'))
        # PARAGRAPH and FALLBACK
        return block.text

    def _serialize_code(self, block: PortableBlock) -> str:
        """Fenced code block; the fence is always longer than any backtick run in the code."""
        fence = '`' * max(3, longest_backtick_run(block.text) + 1)
        language = block.language or ''
        if not block.text:
            return f"{fence}{language}\n{fence}"
        newline = '' if block.text.endswith('\n') else '\n'
        return f"{fence}{language}\n{block.text}{newline}{fence}"

    def _serialize_list(self, block: PortableBlock) -> str:
        loose = any(
            nested.kind != BlockKind.LIST
            for item in block.items
            for nested in item.blocks
        )
        separator = '\n\n' if loose else '\n'

        rendered = []
        for index, item in enumerate(block.items):
            marker = f"{block.start + index}." if block.ordered else '-'
            rendered.append(self._serialize_list_item(item, marker))
        return separator.join(rendered)

    def _serialize_list_item(self, item: PortableListItem, marker: str) -> str:
        content = item.text
        for nested in item.blocks:
            nested_text = self.serialize_block(nested)
            if not nested_text:
                continue
            if not content:
                content = nested_text
            elif nested.kind == BlockKind.LIST:
                content = f"{content}\n{nested_text}"
            else:
                content = f"{content}\n\n{nested_text}"

        if not content:
            return marker

        indent = ' ' * (len(marker) + 1)
        lines = content.split('\n')
        result = [f"{marker} {lines[0]}"]
        result.extend(f"{indent}{line}" if line else '' for line in lines[1:])
        return '\n'.join(result)

    def _serialize_table(self, block: PortableBlock) -> str:
        """Pipe table; rows are padded to the widest row. The first row is the header."""
        if not block.rows:
            return ''
        width = max(len(row) for row in block.rows)
        rows = [row + [''] * (width - len(row)) for row in block.rows]

        if block.has_header:
            header, body = rows[0], rows[1:]
        else:
            header, body = [''] * width, rows

        markdown_rows = [
            '| ' + ' | '.join(header) + ' |',
            '| ' + ' | '.join('---' for _ in header) + ' |'
        ]
        for row in body:
            markdown_rows.append('| ' + ' | '.join(row) + ' |')
        return '\n'.join(markdown_rows)

    def _has_title(self, blocks: List[PortableBlock]) -> bool:
        return any(block.kind == BlockKind.HEADING and block.level == 1 for block in blocks)

    def _generate_frontmatter(self, document: PortableTextDocument, metadata: Dict[str, Any],
                              component: Optional[str], version: Optional[str]) -> str:
        """Generate YAML front matter for the exported file."""
        frontmatter = {}
        if document.title:
            frontmatter['title'] = document.title
        frontmatter['url'] = document.canonical_url or document.page_url

        if component:
            frontmatter['component'] = component
        if version:
            frontmatter['version'] = version

        for key in FRONTMATTER_METADATA_KEYS:
            if metadata.get(key) is not None:
                frontmatter[key] = metadata[key]

        yaml_str = yaml.dump(
            frontmatter,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=1000
        )
        return f"---\n{yaml_str}---"


__all__ = ['MarkdownWriter']
