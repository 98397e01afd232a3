"""Tests for reading a rendered site directory."""

import pytest

from fetchers import SiteReader

GUIDE_HTML = '''<!DOCTYPE html>
<html>
<head>
  <title>Guide Page | Docs</title>
  <meta name="page-component" content="docs">
  <meta name="page-version" content="2.0">
  <meta name="page-origin-path" content="modules/ROOT/pages/page.adoc">
  <meta name="page-last-updated" content="2024-03-01">
</head>
<body>
  <nav class="nav">Menu</nav>
  <article class="doc"><h1>Guide Page</h1><p>Hello</p></article>
</body>
</html>
'''

INDEX_HTML = '''<html><head><title>Home</title></head>
<body><main><p>Welcome</p></main></body></html>
'''


@pytest.fixture
def site(tmp_path):
    root = tmp_path / 'site'
    (root / 'guide').mkdir(parents=True)
    (root / '_export').mkdir()
    (root / 'guide' / 'page.html').write_text(GUIDE_HTML, encoding='utf-8')
    (root / 'index.html').write_text(INDEX_HTML, encoding='utf-8')
    (root / 'guide' / 'notes.txt').write_text('not a page', encoding='utf-8')
    (root / '_export' / 'stale.html').write_text('<p>old</p>', encoding='utf-8')
    return root


class TestSiteReader:

    def test_reads_pages_in_sorted_order(self, site):
        reader = SiteReader(str(site), exclude=[str(site / '_export')])
        pages = reader.read_pages()

        assert [page.url for page in pages] == ['/guide/page.html', '/index.html']
        assert reader.get_stats()['pages_read'] == 2

    def test_excluded_directory_is_skipped(self, site):
        urls = [page.url for page in SiteReader(str(site)).read_pages()]
        assert '/_export/stale.html' in urls

        urls = [page.url for page in SiteReader(str(site), exclude=[str(site / '_export')]).read_pages()]
        assert '/_export/stale.html' not in urls

    def test_page_fields(self, site):
        page = SiteReader(str(site)).read_page(site / 'guide' / 'page.html')

        assert page.url == '/guide/page.html'
        assert page.title == 'Guide Page'
        assert page.component == 'docs'
        assert page.version == '2.0'
        assert page.src_path == 'modules/ROOT/pages/page.adoc'
        assert page.attributes['page-last-updated'] == '2024-03-01'
        assert '<h1>Guide Page</h1>' in page.contents
        assert 'Menu' not in page.contents

    def test_title_falls_back_to_title_tag(self, site):
        page = SiteReader(str(site)).read_page(site / 'index.html')

        assert page.title == 'Home'
        assert page.contents == '<p>Welcome</p>'
        assert page.component is None

    def test_content_selector(self, tmp_path):
        root = tmp_path / 'site'
        root.mkdir()
        (root / 'a.html').write_text(
            '<body><div class="chrome">Header</div><div class="body-content"><p>Body</p></div></body>',
            encoding='utf-8'
        )

        page = SiteReader(str(root), content_selector='div.body-content').read_pages()[0]

        assert page.contents == '<p>Body</p>'

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SiteReader(str(tmp_path / 'missing'))
