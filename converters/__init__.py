"""Converters package for turning rendered site HTML into portable Markdown."""

import logging

from .inline_converter import InlineMarkdownConverter
from .link_resolver import LinkResolver, normalize_path
from .markdown_writer import MarkdownWriter
from .portable_converter import HtmlToPortableConverter, flatten_blocks

logger = logging.getLogger('site_export_pipeline.converters')


def convert_page(page, site_base_url, logger=None):
    """
    Convenience function to convert a SitePage to a portable document.

    Args:
        page: SitePage with rendered HTML in page.contents
        site_base_url: Absolute base URL of the published site
        logger: Optional logger instance (uses module logger if not provided)

    Returns:
        PortableTextDocument for the page

    Example:
        >>> from converters import convert_page
        >>> from models import SitePage
        >>> page = SitePage(url='/guide/page.html', contents='<h1>Title</h1>')
        >>> document = convert_page(page, 'https://docs.example.com')
        >>> document.blocks[0].text
        'Title'
    """
    if logger is None:
        logger = logging.getLogger('site_export_pipeline.converters')

    converter = HtmlToPortableConverter(site_base_url, logger=logger)
    return converter.convert(page.contents, page.url, title=page.title)


__all__ = [
    'convert_page',
    'HtmlToPortableConverter',
    'InlineMarkdownConverter',
    'LinkResolver',
    'MarkdownWriter',
    'flatten_blocks',
    'normalize_path'
]
