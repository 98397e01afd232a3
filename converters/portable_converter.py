"""Structural conversion of rendered page HTML into a portable text document."""

import logging
from typing import Callable, Dict, List, Optional

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from models import BlockKind, PortableBlock, PortableListItem, PortableTextDocument
from .inline_converter import InlineMarkdownConverter
from .link_resolver import LinkResolver

logger = logging.getLogger('site_export_pipeline.converters.portableconverter')

HEADING_TAGS = {'h1', 'h2', 'h3', 'h4', 'h5', 'h6'}

CONTAINER_TAGS = {
    '[document]', 'html', 'body', 'div', 'section', 'article', 'main', 'header',
    'footer', 'aside', 'nav', 'figure', 'figcaption', 'details', 'summary',
    'center', 'form', 'fieldset', 'address', 'hgroup'
}

INLINE_TAGS = {
    'a', 'abbr', 'b', 'bdi', 'bdo', 'big', 'br', 'cite', 'code', 'data', 'del',
    'dfn', 'em', 'font', 'i', 'img', 'ins', 'kbd', 'label', 'mark', 'q', 's',
    'samp', 'small', 'span', 'strike', 'strong', 'sub', 'sup', 'time', 'tt',
    'u', 'var', 'wbr'
}

# Elements that carry no readable content
SKIPPED_TAGS = {
    'script', 'style', 'template', 'noscript', 'head', 'meta', 'link',
    'hr', 'input', 'button', 'select', 'option'
}

IGNORED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)

LANGUAGE_CLASS_PREFIXES = ('language-', 'lang-')

ADMONITION_LABELS = {
    'note': 'Note',
    'tip': 'Tip',
    'important': 'Important',
    'caution': 'Caution',
    'warning': 'Warning'
}


class HtmlToPortableConverter:
    """
    Converts generator-rendered HTML into a PortableTextDocument.

    The conversion is total: any element it has no mapping for is reduced to
    its flattened text as a FALLBACK block rather than raising. Output depends
    only on the input HTML, page URL and base URL.
    """

    def __init__(self, site_base_url: Optional[str] = None,
                 link_resolver: Optional[LinkResolver] = None,
                 logger: logging.Logger = None):
        """Initialize converter with the site base URL used for link resolution."""
        self.logger = logger or logging.getLogger('site_export_pipeline.converters.portableconverter')
        self.site_base_url = site_base_url
        self.link_resolver = link_resolver or LinkResolver(site_base_url, self.logger)

        self._block_handlers: Dict[str, Callable[[Tag, InlineMarkdownConverter], List[PortableBlock]]] = {
            'p': self._convert_paragraph,
            'pre': self._convert_pre,
            'ul': self._convert_list,
            'ol': self._convert_list,
            'dl': self._convert_definition_list,
            'table': self._convert_table,
            'blockquote': self._convert_blockquote,
        }
        for tag_name in HEADING_TAGS:
            self._block_handlers[tag_name] = self._convert_heading
        for tag_name in CONTAINER_TAGS:
            self._block_handlers[tag_name] = self._convert_container

    def convert(self, html: str, page_url: str, title: Optional[str] = None) -> PortableTextDocument:
        """
        Convert rendered page HTML to a portable document.

        Args:
            html: Rendered HTML body of the page
            page_url: Site-relative URL of the page, used to resolve links
            title: Optional page title carried onto the document

        Returns:
            PortableTextDocument with blocks in document order
        """
        self.logger.debug(f"Converting {page_url} to portable text")

        soup = self._parse_html(html)
        inline = InlineMarkdownConverter(
            self.link_resolver, page_url, self.site_base_url, logger=self.logger
        )
        blocks = self._walk(soup, inline)

        return PortableTextDocument(
            page_url=page_url,
            title=title,
            canonical_url=self.link_resolver.page_url(page_url, self.site_base_url),
            blocks=blocks
        )

    def _parse_html(self, html_content: str) -> BeautifulSoup:
        """Parse HTML content with BeautifulSoup."""
        return BeautifulSoup(html_content or '', 'lxml')

    def _walk(self, node: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        """Map the children of node to blocks, grouping inline runs into paragraphs."""
        blocks: List[PortableBlock] = []
        run = []

        for child in node.children:
            if isinstance(child, IGNORED_STRINGS):
                continue
            if isinstance(child, NavigableString):
                run.append(child)
                continue
            if not isinstance(child, Tag):
                continue
            if child.name in INLINE_TAGS:
                run.append(child)
                continue

            blocks.extend(self._inline_blocks(run, inline))
            run = []
            blocks.extend(self._convert_block(child, inline))

        blocks.extend(self._inline_blocks(run, inline))
        return blocks

    def _convert_block(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        """Dispatch a block-level element to its handler."""
        if el.name in SKIPPED_TAGS:
            return []

        handler = self._block_handlers.get(el.name, self._convert_fallback)
        try:
            return handler(el, inline)
        except Exception as e:
            self.logger.warning(
                f"Could not convert <{el.name}> on {inline.page_url}, keeping its text: {e}"
            )
            return self._convert_fallback(el, inline)

    def _inline_blocks(self, run: list, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        """Turn a run of inline nodes into a paragraph, or an image when it is a lone <img>."""
        meaningful = [
            node for node in run
            if not (isinstance(node, NavigableString) and not node.strip())
        ]
        if not meaningful:
            return []

        if len(meaningful) == 1 and isinstance(meaningful[0], Tag) and meaningful[0].name == 'img':
            image = self._convert_image(meaningful[0], inline)
            return [image] if image else []

        text = inline.render(run)
        if not text:
            return []
        return [PortableBlock(kind=BlockKind.PARAGRAPH, text=text)]

    def _convert_heading(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        text = ' '.join(inline.render(el.contents).split())
        if not text:
            return []
        return [PortableBlock(kind=BlockKind.HEADING, text=text, level=int(el.name[1]))]

    def _convert_paragraph(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        # A <p> holding block elements is invalid HTML but still has to keep its content
        if any(isinstance(child, Tag) and child.name not in INLINE_TAGS for child in el.children):
            return self._walk(el, inline)
        return self._inline_blocks(list(el.contents), inline)

    def _convert_pre(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        """Code block: text kept verbatim, language taken from class or data-lang."""
        code_el = el.find('code')
        language = None
        if code_el is not None:
            language = self._extract_code_language(code_el)
        if not language:
            language = self._extract_code_language(el)

        return [PortableBlock(kind=BlockKind.CODE, text=el.get_text(), language=language)]

    def _extract_code_language(self, element: Tag) -> Optional[str]:
        """Extract programming language from a code or pre element."""
        for cls in element.get('class', []):
            cls = str(cls)
            for prefix in LANGUAGE_CLASS_PREFIXES:
                if cls.startswith(prefix) and len(cls) > len(prefix):
                    return cls[len(prefix):]

        lang = element.get('data-lang') or element.get('data-language')
        if lang and lang.strip():
            return lang.strip()

        return None

    def _convert_list(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        ordered = el.name == 'ol'
        start = 1
        if ordered and el.get('start'):
            try:
                start = int(el['start'])
            except ValueError:
                self.logger.debug(f"Ignoring non-numeric list start {el['start']!r}")

        items = []
        for child in el.children:
            if isinstance(child, IGNORED_STRINGS):
                continue
            if isinstance(child, NavigableString):
                if child.strip():
                    items.append(PortableListItem(text=' '.join(child.split())))
                continue
            if not isinstance(child, Tag) or child.name in SKIPPED_TAGS:
                continue

            item_blocks = self._walk(child, inline) if child.name == 'li' else self._convert_block(child, inline)
            text = ''
            if item_blocks and item_blocks[0].kind == BlockKind.PARAGRAPH:
                text = item_blocks.pop(0).text
            if text or item_blocks:
                items.append(PortableListItem(text=text, blocks=item_blocks))

        if not items:
            return []
        return [PortableBlock(kind=BlockKind.LIST, ordered=ordered, start=start, items=items)]

    def _convert_definition_list(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        """Terms become bold paragraphs, each followed by its definition's blocks."""
        blocks = []
        for child in el.children:
            if not isinstance(child, Tag):
                continue
            if child.name == 'dt':
                term = ' '.join(inline.render(child.contents).split())
                if term:
                    blocks.append(PortableBlock(kind=BlockKind.PARAGRAPH, text=f'**{term}**'))
            elif child.name == 'dd':
                blocks.extend(self._walk(child, inline))
            else:
                blocks.extend(self._convert_block(child, inline))
        return blocks

    def _convert_table(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        blocks = []

        caption = el.find('caption')
        if caption is not None and caption.find_parent('table') is el:
            caption_text = ' '.join(inline.render(caption.contents).split())
            if caption_text:
                blocks.append(PortableBlock(kind=BlockKind.PARAGRAPH, text=caption_text))

        rows = []
        header_row = False
        for tr in el.find_all('tr'):
            if tr.find_parent('table') is not el:
                continue
            cells = tr.find_all(['th', 'td'], recursive=False)
            if not cells:
                continue
            if not rows:
                header_row = (
                    all(cell.name == 'th' for cell in cells)
                    or tr.find_parent('thead') is not None
                )
            rows.append([self._cell_text(cell, inline) for cell in cells])

        if rows:
            blocks.append(PortableBlock(kind=BlockKind.TABLE, rows=rows, has_header=header_row))
        return blocks

    def _cell_text(self, cell: Tag, inline: InlineMarkdownConverter) -> str:
        """Flatten a table cell's blocks onto one line with pipes escaped."""
        text = flatten_blocks(self._walk(cell, inline))
        return text.replace('|', '\\|')

    def _convert_blockquote(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        inner = self._walk(el, inline)
        if not inner:
            return []
        return [PortableBlock(kind=BlockKind.QUOTE, blocks=inner)]

    def _convert_container(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        classes = el.get('class', []) if el.name == 'div' else []
        if 'admonitionblock' in classes:
            return self._convert_admonition(el, inline)
        return self._walk(el, inline)

    def _convert_admonition(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        """Admonition block: a quote whose first paragraph names its kind."""
        label = None
        for cls in el.get('class', []):
            if cls in ADMONITION_LABELS:
                label = ADMONITION_LABELS[cls]
                break

        icon_cell = el.find(class_='icon')
        if label is None and icon_cell is not None:
            icon = icon_cell.find(title=True)
            label = icon['title'] if icon is not None else icon_cell.get_text(strip=True) or None

        content = el.find(class_='content')
        inner = self._walk(content, inline) if content is not None else self._walk(el, inline)
        if label:
            inner.insert(0, PortableBlock(kind=BlockKind.PARAGRAPH, text=f'**{label}:**'))
        if not inner:
            return []
        return [PortableBlock(kind=BlockKind.QUOTE, blocks=inner)]

    def _convert_image(self, el: Tag, inline: InlineMarkdownConverter) -> Optional[PortableBlock]:
        alt = el.get('alt') or el.get('title') or ''
        src = el.get('src')
        if not src or not src.strip():
            if alt:
                return PortableBlock(kind=BlockKind.FALLBACK, text=alt)
            return None
        resolved = self.link_resolver.resolve(src, inline.page_url, self.site_base_url)
        return PortableBlock(kind=BlockKind.IMAGE, src=resolved, alt=alt)

    def _convert_fallback(self, el: Tag, inline: InlineMarkdownConverter) -> List[PortableBlock]:
        """Anything unmapped keeps its flattened text content."""
        text = ' '.join(el.get_text(' ').split())
        if not text:
            return []
        self.logger.debug(f"Unmapped element <{el.name}> on {inline.page_url} flattened to text")
        return [PortableBlock(kind=BlockKind.FALLBACK, text=text)]


def flatten_blocks(blocks: List[PortableBlock]) -> str:
    """Reduce blocks to a single line of text."""
    parts = []
    for block in blocks:
        if block.kind == BlockKind.LIST:
            for item in block.items:
                parts.append(item.text)
                parts.append(flatten_blocks(item.blocks))
        elif block.kind == BlockKind.TABLE:
            parts.extend(' '.join(row) for row in block.rows)
        elif block.kind == BlockKind.IMAGE:
            parts.append(f'![{block.alt}]({block.src})')
        elif block.kind == BlockKind.QUOTE:
            parts.append(flatten_blocks(block.blocks))
        else:
            parts.append(block.text)
    return ' '.join(' '.join(part.split()) for part in parts if part and part.strip())


__all__ = ['HtmlToPortableConverter', 'flatten_blocks']
