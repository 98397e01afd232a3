import tempfile
import unittest
from pathlib import Path

from annotators import GitProvenance, MetadataAnnotator, count_words, html_to_text, reading_time
from models import SitePage

SOURCE_PATH = 'modules/ROOT/pages/page.adoc'
COMMIT_DATE = '2024-01-02T03:04:05+00:00'


class FixedProvenance:
    """Provenance answering from a fixed mapping of source path to timestamp."""

    def __init__(self, timestamps):
        self.timestamps = dict(timestamps)

    def last_updated(self, src_path):
        return self.timestamps.get(src_path)


class TestReadingTime(unittest.TestCase):
    def test_minimum_is_one_minute(self):
        self.assertEqual(reading_time(0), 1)
        self.assertEqual(reading_time(1), 1)
        self.assertEqual(reading_time(200), 1)

    def test_rounds_up(self):
        self.assertEqual(reading_time(201), 2)
        self.assertEqual(reading_time(1000, 250), 4)
        self.assertEqual(reading_time(1001, 250), 5)

    def test_monotonic_in_word_count(self):
        previous = reading_time(0)
        for word_count in range(0, 5000, 37):
            current = reading_time(word_count)
            self.assertGreaterEqual(current, previous)
            self.assertGreaterEqual(current, 1)
            previous = current


class TestTextUtils(unittest.TestCase):
    def test_script_and_style_are_not_counted(self):
        html = '<p>one two three</p><script>var a = b;</script><style>p { margin: 0 }</style>'
        self.assertEqual(html_to_text(html), 'one two three')
        self.assertEqual(count_words(html_to_text(html)), 3)

    def test_adjacent_blocks_do_not_merge_words(self):
        self.assertEqual(count_words(html_to_text('<h1>Title</h1><p>Body</p>')), 2)

    def test_inline_markup_does_not_split_words(self):
        self.assertEqual(html_to_text('<p>un<b>believ</b>able</p>'), 'unbelievable')
        self.assertEqual(count_words(html_to_text('<p>un<b>believ</b>able <em>really</em></p>')), 2)

    def test_table_cells_and_list_items_separate_words(self):
        html = '<table><tr><td>a</td><td>b</td></tr></table><ul><li>c</li><li>d</li></ul>x<br>y'
        self.assertEqual(html_to_text(html), 'a b c d x y')

    def test_empty(self):
        self.assertEqual(html_to_text(''), '')
        self.assertEqual(count_words(''), 0)


class TestMetadataAnnotator(unittest.TestCase):
    def setUp(self):
        self.provenance = FixedProvenance({SOURCE_PATH: COMMIT_DATE})
        self.annotator = MetadataAnnotator(provenance=self.provenance)

    def test_empty_page(self):
        """An empty page still reads in one minute and has no last-updated."""
        page = SitePage(url='/empty.html', contents='')
        self.annotator.annotate(page)

        self.assertEqual(page.metadata, {'reading_time_minutes': 1, 'word_count': 0})
        self.assertNotIn('last_updated', page.metadata)

    def test_word_count_and_reading_time(self):
        words = ' '.join(['word'] * 450)
        page = SitePage(url='/long.html', contents=f'<p>{words}</p>')
        self.annotator.annotate(page)

        self.assertEqual(page.metadata['word_count'], 450)
        self.assertEqual(page.metadata['reading_time_minutes'], 3)

    def test_custom_words_per_minute(self):
        annotator = MetadataAnnotator(words_per_minute=100)
        page = SitePage(url='/a.html', contents='<p>' + 'w ' * 150 + '</p>')
        self.assertEqual(annotator.compute(page).reading_time_minutes, 2)

    def test_invalid_words_per_minute(self):
        for value in (0, -5, 2.5, True, '200'):
            with self.assertRaises(ValueError):
                MetadataAnnotator(words_per_minute=value)

    def test_last_updated_from_provenance(self):
        page = SitePage(url='/a.html', contents='<p>x</p>', src_path=SOURCE_PATH)
        self.annotator.annotate(page)
        self.assertEqual(page.metadata['last_updated'], COMMIT_DATE)

    def test_pinned_last_updated_wins(self):
        page = SitePage(
            url='/a.html', contents='<p>x</p>', src_path=SOURCE_PATH,
            attributes={'page-last-updated': '2023-05-01'}
        )
        self.annotator.annotate(page)
        self.assertEqual(page.metadata['last_updated'], '2023-05-01T00:00:00')

    def test_unparseable_pinned_value_falls_back(self):
        page = SitePage(
            url='/a.html', contents='<p>x</p>', src_path=SOURCE_PATH,
            attributes={'page-last-updated': 'sometime last spring'}
        )
        with self.assertLogs('site_export_pipeline.annotators.metadata', level='WARNING'):
            self.annotator.annotate(page)
        self.assertEqual(page.metadata['last_updated'], COMMIT_DATE)

    def test_only_metadata_is_modified(self):
        page = SitePage(
            url='/a.html', contents='<p>x</p>', title='A',
            attributes={'role': 'guide'}, metadata={'custom': 'kept', 'last_updated': 'stale'}
        )
        self.annotator.annotate(page)

        self.assertEqual(page.url, '/a.html')
        self.assertEqual(page.contents, '<p>x</p>')
        self.assertEqual(page.attributes, {'role': 'guide'})
        self.assertEqual(page.metadata['custom'], 'kept')
        self.assertNotIn('last_updated', page.metadata)

    def test_annotation_is_repeatable(self):
        page = SitePage(url='/a.html', contents='<p>one two</p>')
        self.annotator.annotate(page)
        first = dict(page.metadata)
        self.annotator.annotate(page)
        self.assertEqual(page.metadata, first)


class TestGitProvenance(unittest.TestCase):
    def test_disabled(self):
        self.assertIsNone(GitProvenance(enabled=False).last_updated(SOURCE_PATH))

    def test_missing_source_path(self):
        self.assertIsNone(GitProvenance().last_updated(None))

    def test_untracked_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / 'page.adoc'
            source.write_text('= Page\n', encoding='utf-8')

            provenance = GitProvenance()
            self.assertIsNone(provenance.last_updated(str(source)))
            # Second lookup is answered from the cache
            self.assertIsNone(provenance.last_updated(str(source)))


if __name__ == '__main__':
    unittest.main()
