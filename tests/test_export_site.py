"""End-to-end tests of the site-export command line."""

import json
import logging

import pytest

import export_site
from logger import LOGGER_NAME

PAGE_HTML = '''<html><head><title>Guide</title></head>
<body><article><h1>Guide</h1>
<p>See <a href="../index.html">home</a>.</p>
<pre><code class="language-python">print("hi")</code></pre>
</article></body></html>
'''


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    pipeline_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(pipeline_logger.handlers):
        pipeline_logger.removeHandler(handler)
        handler.close()
    pipeline_logger.setLevel(logging.NOTSET)


@pytest.fixture
def site(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv('CI', raising=False)
    monkeypatch.delenv('SITE_EXPORT', raising=False)

    root = tmp_path / 'site'
    (root / 'guide').mkdir(parents=True)
    (root / 'guide' / 'page.html').write_text(PAGE_HTML, encoding='utf-8')
    (root / 'index.html').write_text('<html><body><main><h1>Home</h1></main></body></html>', encoding='utf-8')
    return root


def run_cli(site, output, *extra):
    return export_site.main([
        '--site-dir', str(site),
        '--base-url', 'https://docs.example.com',
        '--output-dir', str(output),
        *extra
    ])


class TestExportSite:

    def test_forced_export(self, site, tmp_path, capsys):
        output = tmp_path / 'out'

        assert run_cli(site, output, '--export') == 0

        markdown = (output / 'guide' / 'page.md').read_text(encoding='utf-8')
        assert '[home](https://docs.example.com/index.html)' in markdown
        assert '```python\nprint("hi")\n```' in markdown

        index = json.loads((output / 'search-index.json').read_text(encoding='utf-8'))
        assert list(index['entries']) == ['guide/page.md', 'index.md']

        report = json.loads((output / 'export-report.json').read_text(encoding='utf-8'))
        assert report['summary']['pages_converted'] == 2
        assert report['summary']['activation_source'] == 'override'

        assert 'EXPORT REPORT' in capsys.readouterr().out

    def test_export_off_by_default(self, site, tmp_path):
        output = tmp_path / 'out'
        assert run_cli(site, output) == 0
        assert not output.exists()

    def test_ci_enables_export(self, site, tmp_path, monkeypatch):
        monkeypatch.setenv('CI', 'true')
        output = tmp_path / 'out'

        assert run_cli(site, output) == 0
        assert (output / 'index.md').exists()

    def test_no_export_flag_beats_ci(self, site, tmp_path, monkeypatch):
        monkeypatch.setenv('CI', 'true')
        output = tmp_path / 'out'

        assert run_cli(site, output, '--no-export') == 0
        assert not output.exists()

    def test_dry_run(self, site, tmp_path):
        output = tmp_path / 'out'
        assert run_cli(site, output, '--export', '--dry-run') == 0
        assert not output.exists()

    def test_config_file(self, site, tmp_path):
        output = tmp_path / 'configured'
        config_file = tmp_path / 'custom.yaml'
        config_file.write_text(
            'site:\n'
            '  base_url: https://docs.example.com\n'
            f'  directory: {site}\n'
            'export:\n'
            '  enabled: true\n'
            f'  output_directory: {output}\n'
            '  write_report: false\n',
            encoding='utf-8'
        )

        assert export_site.main(['--config', str(config_file)]) == 0
        assert (output / 'guide' / 'page.md').exists()
        assert not (output / 'export-report.json').exists()

    def test_missing_base_url_is_configuration_error(self, site, tmp_path):
        assert export_site.main(['--site-dir', str(site), '--export']) == 2

    def test_missing_config_file(self, site):
        assert export_site.main(['--config', 'does-not-exist.yaml']) == 2

    def test_unwritable_output_is_fatal(self, site, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('file', encoding='utf-8')

        assert run_cli(site, blocker / 'out', '--export') == 1

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            export_site.main(['--version'])
        assert excinfo.value.code == 0
        assert export_site.__version__ in capsys.readouterr().out
