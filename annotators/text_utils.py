"""Plain-text helpers shared by the annotator and the search index."""

from bs4 import BeautifulSoup

NON_CONTENT_TAGS = ['script', 'style', 'template', 'noscript']

# Elements whose boundaries separate words; inline markup does not
BLOCK_TAGS = [
    'address', 'article', 'aside', 'blockquote', 'br', 'caption', 'dd', 'details',
    'div', 'dl', 'dt', 'figcaption', 'figure', 'footer', 'form', 'h1', 'h2', 'h3',
    'h4', 'h5', 'h6', 'header', 'hr', 'li', 'main', 'nav', 'ol', 'p', 'pre',
    'section', 'summary', 'table', 'tbody', 'td', 'tfoot', 'th', 'thead', 'tr', 'ul'
]


def html_to_text(html_content: str) -> str:
    """Strip markup from rendered HTML, returning whitespace-normalized text."""
    if not html_content or not html_content.strip():
        return ''

    soup = BeautifulSoup(html_content, 'lxml')
    for element in soup.find_all(NON_CONTENT_TAGS):
        element.decompose()
    for element in soup.find_all(BLOCK_TAGS):
        element.insert_before(' ')
        element.insert_after(' ')

    return ' '.join(soup.get_text().split())


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens."""
    if not text:
        return 0
    return len(text.split())


__all__ = ['html_to_text', 'count_words']
