"""Tests for the export controller and search index aggregation."""

import json

import pytest

from converters import HtmlToPortableConverter
from errors import DuplicatePageIdentityError, OutputDirectoryError
from exporters import ExportController, SearchIndex, check_identities, page_identity
from models import ExportConfiguration, SearchIndexEntry, SitePage

BASE_URL = 'https://docs.example.com'


def make_config(output_directory, **overrides):
    values = {
        'enabled': True,
        'output_directory': str(output_directory),
        'base_url': BASE_URL,
        'source': 'override'
    }
    values.update(overrides)
    return ExportConfiguration(**values)


def make_pages():
    return [
        SitePage(
            url='/index.html',
            title='Home',
            contents='<h1>Home</h1><p>Welcome to the <a href="guide/page.html">guide</a>.</p>',
            metadata={'reading_time_minutes': 1, 'word_count': 5}
        ),
        SitePage(
            url='/guide/page.html',
            title='Guide',
            component='docs',
            version='2.0',
            contents='<h1>Guide</h1><pre class="language-sh">make install</pre>',
            metadata={'reading_time_minutes': 1, 'word_count': 3}
        ),
    ]


class FailingConverter(HtmlToPortableConverter):
    """Converter that fails on one page."""

    def __init__(self, failing_url):
        super().__init__(BASE_URL)
        self.failing_url = failing_url

    def convert(self, html, page_url, title=None):
        if page_url == self.failing_url:
            raise RuntimeError('boom')
        return super().convert(html, page_url, title=title)


class TestPageIdentity:

    @pytest.mark.parametrize('url,expected', [
        ('/guide/page.html', 'guide/page.md'),
        ('/guide/', 'guide/index.md'),
        ('/', 'index.md'),
        ('', 'index.md'),
        ('/a.htm', 'a.md'),
        ('/Guide/Page.HTML', 'Guide/Page.md'),
        ('/guide/page.html#section', 'guide/page.md'),
        ('/guide/page.html?print=1', 'guide/page.md'),
        ('guide/page.html', 'guide/page.md'),
        ('/data.json', 'data.json.md'),
        ('/../../etc/passwd', 'etc/passwd.md'),
        ('/guide/./sub/../page.html', 'guide/page.md'),
    ])
    def test_identity(self, url, expected):
        assert page_identity(url) == expected

    def test_check_identities_maps_every_page(self):
        pages = make_pages()
        assert sorted(check_identities(pages)) == ['guide/page.md', 'index.md']

    @pytest.mark.parametrize('urls', [
        ['/a.html', '/a.htm'],
        ['/guide/', '/guide/index.html'],
        ['/guide/page.html', '/guide/page.html#top'],
    ])
    def test_duplicates_rejected(self, urls):
        pages = [SitePage(url=url, contents='') for url in urls]
        with pytest.raises(DuplicatePageIdentityError) as excinfo:
            check_identities(pages)
        assert excinfo.value.urls == urls


class TestSearchIndex:

    def test_duplicate_identity_rejected(self):
        index = SearchIndex()
        index.add('a.md', SearchIndexEntry(url='/a.html', title='A', text='a'))
        with pytest.raises(DuplicatePageIdentityError):
            index.add('a.md', SearchIndexEntry(url='/a.htm', title='A', text='a'))

    def test_entries_sorted_by_identity(self):
        index = SearchIndex()
        index.add('z.md', SearchIndexEntry(url='/z.html', title='Z', text='z'))
        index.add('a.md', SearchIndexEntry(url='/a.html', title='A', text='a'))

        data = index.to_dict()
        assert data['version'] == 1
        assert data['count'] == 2
        assert list(data['entries']) == ['a.md', 'z.md']
        assert [entry.url for entry in index.entries()] == ['/a.html', '/z.html']
        assert 'a.md' in index and len(index) == 2


class TestRunExport:

    def test_writes_pages_and_index(self, tmp_path):
        output = tmp_path / 'out'
        result = ExportController(make_config(output)).run_export(make_pages())

        assert result.pages_total == 2
        assert result.pages_converted == 2
        assert result.pages_failed == 0
        assert sorted(result.written_files) == [str(output / 'guide/page.md'), str(output / 'index.md')]

        guide = (output / 'guide' / 'page.md').read_text(encoding='utf-8')
        assert 'url: https://docs.example.com/guide/page.html' in guide
        assert 'component: docs' in guide
        assert '```sh\nmake install\n```' in guide

        home = (output / 'index.md').read_text(encoding='utf-8')
        assert '[guide](https://docs.example.com/guide/page.html)' in home

        index = json.loads((output / 'search-index.json').read_text(encoding='utf-8'))
        assert result.index_path == str(output / 'search-index.json')
        assert index['count'] == 2
        assert list(index['entries']) == ['guide/page.md', 'index.md']
        assert index['entries']['index.md'] == {
            'url': '/index.html',
            'title': 'Home',
            'text': 'Home Welcome to the guide.',
            'component': None,
            'version': None,
            'reading_time': 1,
            'word_count': 5
        }

    def test_duplicate_identity_aborts_before_writing(self, tmp_path):
        output = tmp_path / 'out'
        pages = make_pages() + [SitePage(url='/guide/page.htm', contents='<p>dup</p>')]

        with pytest.raises(DuplicatePageIdentityError) as excinfo:
            ExportController(make_config(output)).run_export(pages)

        assert excinfo.value.identity == 'guide/page.md'
        assert not output.exists()

    def test_unwritable_output_directory(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory', encoding='utf-8')

        with pytest.raises(OutputDirectoryError):
            ExportController(make_config(blocker / 'out')).run_export(make_pages())

    def test_page_failure_is_recorded_and_run_continues(self, tmp_path):
        output = tmp_path / 'out'
        controller = ExportController(make_config(output), converter=FailingConverter('/index.html'))

        result = controller.run_export(make_pages())

        assert result.pages_failed == 1
        assert result.pages_converted == 1
        assert result.errors[0]['page_url'] == '/index.html'
        assert result.errors[0]['error'] == 'boom'
        assert not (output / 'index.md').exists()
        assert (output / 'guide' / 'page.md').exists()

        index = json.loads((output / 'search-index.json').read_text(encoding='utf-8'))
        assert list(index['entries']) == ['guide/page.md']

    def test_unchanged_files_are_not_rewritten(self, tmp_path):
        output = tmp_path / 'out'
        ExportController(make_config(output)).run_export(make_pages())
        first_index = (output / 'search-index.json').read_bytes()

        result = ExportController(make_config(output)).run_export(make_pages())

        assert result.pages_unchanged == 2
        assert result.pages_converted == 0
        assert result.written_files == []
        assert (output / 'search-index.json').read_bytes() == first_index

    def test_changed_page_is_rewritten(self, tmp_path):
        output = tmp_path / 'out'
        ExportController(make_config(output)).run_export(make_pages())

        pages = make_pages()
        pages[0].contents = '<h1>Home</h1><p>Updated.</p>'
        result = ExportController(make_config(output)).run_export(pages)

        assert result.pages_converted == 1
        assert result.pages_unchanged == 1
        assert 'Updated.' in (output / 'index.md').read_text(encoding='utf-8')

    def test_dry_run_writes_nothing(self, tmp_path):
        output = tmp_path / 'out'
        result = ExportController(make_config(output, dry_run=True)).run_export(make_pages())

        assert result.pages_converted == 2
        assert result.written_files == []
        assert result.index_path is None
        assert not output.exists()

    def test_parallel_export_matches_sequential(self, tmp_path):
        pages = [
            SitePage(url=f'/section/page-{number}.html', title=f'Page {number}',
                     contents=f'<h1>Page {number}</h1><p>Body of page {number}.</p>')
            for number in range(12)
        ]

        sequential = ExportController(make_config(tmp_path / 'seq')).run_export(pages)
        parallel = ExportController(make_config(tmp_path / 'par', max_workers=4)).run_export(pages)

        assert sequential.pages_converted == parallel.pages_converted == 12
        assert (tmp_path / 'seq' / 'search-index.json').read_bytes() == \
            (tmp_path / 'par' / 'search-index.json').read_bytes()
        for number in range(12):
            relative = f'section/page-{number}.md'
            assert (tmp_path / 'seq' / relative).read_bytes() == (tmp_path / 'par' / relative).read_bytes()

    def test_index_flushed_once_after_all_pages(self, tmp_path, monkeypatch):
        output = tmp_path / 'out'
        calls = []
        original_write = SearchIndex.write

        def recording_write(index, path):
            calls.append(sorted(p.relative_to(output).as_posix() for p in output.rglob('*.md')))
            return original_write(index, path)

        monkeypatch.setattr(SearchIndex, 'write', recording_write)
        ExportController(make_config(output)).run_export(make_pages())

        assert calls == [['guide/page.md', 'index.md']]

    def test_should_export_follows_configuration(self, tmp_path):
        assert ExportController(make_config(tmp_path)).should_export() is True
        assert ExportController(make_config(tmp_path, enabled=False)).should_export() is False
