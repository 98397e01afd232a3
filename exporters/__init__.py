"""Conditional export of Markdown renditions and the site search index.

Package Structure:
- activation: Resolves whether export runs for this build (override, CI signal, default)
- export_controller: Converts every page, writes it to its identity path
- search_index: Append-only index aggregate, flushed once per run

Output Layout:
- <output_directory>/<identity>.md for every page (``/guide/page.html`` -> ``guide/page.md``)
- <output_directory>/search-index.json
"""

from .activation import (
    CI_ENV_VAR,
    OVERRIDE_ENV_VAR,
    ci_signal_present,
    parse_bool,
    resolve_activation,
    should_export
)
from .export_controller import ExportController, check_identities, page_identity
from .search_index import INDEX_FORMAT_VERSION, SearchIndex

__all__ = [
    'CI_ENV_VAR',
    'OVERRIDE_ENV_VAR',
    'ci_signal_present',
    'parse_bool',
    'resolve_activation',
    'should_export',
    'ExportController',
    'check_identities',
    'page_identity',
    'INDEX_FORMAT_VERSION',
    'SearchIndex'
]
