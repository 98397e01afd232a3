"""Inline HTML to Markdown rendering with link resolution."""

import logging
import re
from typing import Iterable, Optional

from bs4 import NavigableString
from markdownify import MarkdownConverter as MarkdownifyConverter
from markdownify import chomp

from .link_resolver import LinkResolver

logger = logging.getLogger('site_export_pipeline.converters.inlineconverter')

BACKTICK_RUN = re.compile(r'`+')
LINK_TEXT_BRACKET = re.compile(r'([\[\]])')


def longest_backtick_run(text: str) -> int:
    """Length of the longest run of backticks in text."""
    runs = [len(match.group(0)) for match in BACKTICK_RUN.finditer(text or '')]
    return max(runs) if runs else 0


class InlineMarkdownConverter(MarkdownifyConverter):
    """
    Renders inline HTML (text, emphasis, code, links, images) to Markdown.

    Block structure is handled by HtmlToPortableConverter; this class only
    sees the contents of a single block. Every ``href`` and ``src`` is passed
    through the LinkResolver before it is emitted.
    """

    def __init__(self, link_resolver: LinkResolver, page_url: str,
                 site_base_url: Optional[str] = None, logger: logging.Logger = None, **kwargs):
        """Initialize inline converter for one page."""
        markdownify_options = {
            'escape_asterisks': False,
            'escape_underscores': False,
            'escape_misc': False,
            'wrap': False,
            'autolinks': False
        }
        markdownify_options.update(kwargs)
        super().__init__(**markdownify_options)

        self.logger = logger or logging.getLogger('site_export_pipeline.converters.inlineconverter')
        self.link_resolver = link_resolver
        self.page_url = page_url
        self.site_base_url = site_base_url

    def render(self, nodes: Iterable) -> str:
        """
        Render a run of sibling nodes to a single line of inline Markdown.

        Falls back to the flattened text when markdownify cannot handle the
        markup.
        """
        nodes = list(nodes)
        html = ''.join(
            node.output_ready(formatter='minimal') if isinstance(node, NavigableString) else node.decode()
            for node in nodes
        )
        if not html.strip():
            return ''

        try:
            markdown = self.convert(html)
        except Exception as e:
            self.logger.warning(f"Inline conversion failed on {self.page_url}, using plain text: {e}")
            markdown = ' '.join(
                node if isinstance(node, NavigableString) else node.get_text(' ')
                for node in nodes
            )
            markdown = ' '.join(markdown.split())

        return markdown.strip()

    def process_text(self, el, parent_tags=None):
        """Text inside a link has its brackets escaped so the link text stays closed."""
        text = super().process_text(el, parent_tags=parent_tags)
        if parent_tags and 'a' in parent_tags and 'pre' not in parent_tags:
            text = LINK_TEXT_BRACKET.sub(r'\\\1', text)
        return text

    def convert_a(self, el, text, parent_tags=None, **kwargs):
        """Emit a Markdown link with its target resolved; plain text if there is none."""
        prefix, suffix, text = chomp(text)
        if not text:
            return ''

        href = el.get('href')
        if not href or not href.strip():
            return f'{prefix}{text}{suffix}'

        resolved = self.link_resolver.resolve(href, self.page_url, self.site_base_url)
        if not resolved or not resolved.strip():
            return f'{prefix}{text}{suffix}'

        target = resolved.strip()
        if ' ' in target:
            target = f'<{target}>'

        title = el.get('title')
        title_part = ' "%s"' % title.replace('"', r'\"') if title else ''
        return f'{prefix}[{text}]({target}{title_part}){suffix}'

    def convert_img(self, el, text, parent_tags=None, **kwargs):
        """Emit an image with its source resolved; alt falls back to title."""
        alt = el.get('alt') or el.get('title') or ''
        src = el.get('src')
        if not src or not src.strip():
            return alt

        resolved = self.link_resolver.resolve(src, self.page_url, self.site_base_url)
        return f'![{alt}]({resolved})'

    def convert_code(self, el, text, parent_tags=None, **kwargs):
        """Inline code, fenced with enough backticks to hold its content."""
        parent = el.parent
        if parent is not None and parent.name == 'pre':
            return text

        code = el.get_text()
        if not code:
            return ''
        fence = '`' * (longest_backtick_run(code) + 1)
        if code.startswith('`') or code.endswith('`'):
            return f'{fence} {code} {fence}'
        return f'{fence}{code}{fence}'

    convert_kbd = convert_code
    convert_samp = convert_code


__all__ = ['InlineMarkdownConverter', 'longest_backtick_run']
