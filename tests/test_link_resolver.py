"""Tests for resolving page-relative hrefs to absolute site URLs."""

from concurrent.futures import ThreadPoolExecutor
from urllib.parse import urljoin

import pytest

from converters.link_resolver import LinkResolver, normalize_path

BASE_URL = 'https://docs.example.com'
PAGE_URL = '/guide/page.html'


@pytest.fixture
def resolver():
    return LinkResolver(BASE_URL)


class TestResolve:
    """Resolution rules for the different href shapes."""

    def test_parent_relative_link(self, resolver):
        assert resolver.resolve('../other.html', PAGE_URL) == 'https://docs.example.com/other.html'

    def test_sibling_link(self, resolver):
        assert resolver.resolve('install.html', PAGE_URL) == 'https://docs.example.com/guide/install.html'

    def test_fragment_only_link_targets_current_page(self, resolver):
        assert resolver.resolve('#setup', PAGE_URL) == 'https://docs.example.com/guide/page.html#setup'

    def test_site_root_relative_link(self, resolver):
        assert resolver.resolve('/reference/api.html', PAGE_URL) == 'https://docs.example.com/reference/api.html'

    def test_query_and_fragment_are_kept(self, resolver):
        resolved = resolver.resolve('setup.html?os=linux#step-2', PAGE_URL)
        assert resolved == 'https://docs.example.com/guide/setup.html?os=linux#step-2'

    def test_query_only_link_targets_current_page(self, resolver):
        assert resolver.resolve('?tab=2', PAGE_URL) == 'https://docs.example.com/guide/page.html?tab=2'

    @pytest.mark.parametrize('href', [
        'https://example.org/page',
        'http://example.org',
        'mailto:docs@example.com',
        'tel:+123456',
        '//cdn.example.com/lib.js',
    ])
    def test_absolute_and_protocol_relative_unchanged(self, resolver, href):
        assert resolver.resolve(href, PAGE_URL) == href

    @pytest.mark.parametrize('href', ['', '   ', None])
    def test_empty_href_unchanged(self, resolver, href):
        assert resolver.resolve(href, PAGE_URL) == href

    def test_malformed_href_unchanged(self, resolver):
        href = 'http://[not-an-ipv6'
        assert resolver.resolve(href, PAGE_URL) == href
        assert resolver.get_stats()['links_unresolved'] == 1

    def test_no_base_url_leaves_link_relative(self):
        resolver = LinkResolver()
        assert resolver.resolve('other.html', PAGE_URL) == 'other.html'

    def test_explicit_base_url_overrides_default(self):
        resolver = LinkResolver('https://ignored.example.com')
        resolved = resolver.resolve('other.html', PAGE_URL, 'https://docs.example.com')
        assert resolved == 'https://docs.example.com/guide/other.html'


class TestBasePath:
    """Sites published below a path prefix."""

    def test_relative_link_keeps_base_path(self):
        resolver = LinkResolver('https://docs.example.com/docs/')
        assert resolver.resolve('sub/a.html', PAGE_URL) == 'https://docs.example.com/docs/guide/sub/a.html'

    def test_root_relative_link_is_under_base_path(self):
        resolver = LinkResolver('https://docs.example.com/docs')
        assert resolver.resolve('/other.html', PAGE_URL) == 'https://docs.example.com/docs/other.html'

    def test_parent_segments_never_climb_above_base(self):
        resolver = LinkResolver('https://docs.example.com/docs/')
        assert resolver.resolve('../../../../x.html', PAGE_URL) == 'https://docs.example.com/docs/x.html'


class TestResolutionProperties:
    """Properties that hold for every relative href."""

    HREFS = [
        'other.html',
        './other.html',
        '../other.html',
        'a/b/../c.html',
        'sub/',
        '#anchor',
        '?q=1',
        '/root.html',
        'child/page.html#section',
    ]

    @pytest.mark.parametrize('href', HREFS)
    def test_result_is_absolute(self, resolver, href):
        assert resolver.resolve(href, PAGE_URL).startswith('https://docs.example.com/')

    @pytest.mark.parametrize('href', HREFS)
    def test_re_resolving_is_stable(self, resolver, href):
        resolved = resolver.resolve(href, PAGE_URL)
        assert resolver.resolve(resolved, PAGE_URL) == resolved

    @pytest.mark.parametrize('href', HREFS)
    def test_matches_standard_url_joining(self, resolver, href):
        expected = urljoin(BASE_URL + PAGE_URL, href)
        assert resolver.resolve(href, PAGE_URL) == expected

    def test_stats_count_each_kind(self, resolver):
        resolver.resolve('https://example.org', PAGE_URL)
        resolver.resolve('#top', PAGE_URL)
        resolver.resolve('other.html', PAGE_URL)
        resolver.resolve('', PAGE_URL)

        stats = resolver.get_stats()
        assert stats == {
            'links_absolute': 1,
            'links_fragment': 1,
            'links_relative': 1,
            'links_unresolved': 1
        }

    def test_stats_are_exact_across_threads(self, resolver):
        hrefs = ['other.html', '#top'] * 500
        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda href: resolver.resolve(href, PAGE_URL), hrefs))

        stats = resolver.get_stats()
        assert stats['links_relative'] == 500
        assert stats['links_fragment'] == 500


class TestPageUrl:

    def test_page_url(self, resolver):
        assert resolver.page_url(PAGE_URL) == 'https://docs.example.com/guide/page.html'

    def test_page_url_without_base(self):
        assert LinkResolver().page_url(PAGE_URL) is None


class TestNormalizePath:

    @pytest.mark.parametrize('path,expected', [
        ('/a/./b/../c', '/a/c'),
        ('/../..', '/'),
        ('/a/b/', '/a/b/'),
        ('/a/b/..', '/a/'),
        ('/a/..', '/'),
        ('//a//b', '/a/b'),
        ('/', '/'),
    ])
    def test_normalize(self, path, expected):
        assert normalize_path(path) == expected
