"""In-memory search index aggregate, flushed once per export run."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from errors import DuplicatePageIdentityError
from models import SearchIndexEntry

logger = logging.getLogger('site_export_pipeline.exporters.searchindex')

INDEX_FORMAT_VERSION = 1


class SearchIndex:
    """Append-only collection of search entries keyed by page identity."""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger('site_export_pipeline.exporters.searchindex')
        self._entries: Dict[str, SearchIndexEntry] = {}

    def add(self, identity: str, entry: SearchIndexEntry) -> None:
        """
        Append an entry.

        Raises:
            DuplicatePageIdentityError: If identity is already present
        """
        existing = self._entries.get(identity)
        if existing is not None:
            raise DuplicatePageIdentityError(identity, [existing.url, entry.url])
        self._entries[identity] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: str) -> bool:
        return identity in self._entries

    def entries(self) -> List[SearchIndexEntry]:
        """Entries ordered by identity."""
        return [self._entries[key] for key in sorted(self._entries)]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the index; key order is fixed so output is reproducible."""
        return {
            'version': INDEX_FORMAT_VERSION,
            'count': len(self._entries),
            'entries': {key: self._entries[key].to_dict() for key in sorted(self._entries)}
        }

    def write(self, path: Path) -> str:
        """Write the index as JSON and return the path written."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
            f.write('\n')
        self.logger.info(f"Wrote search index with {len(self._entries)} entries to {path}")
        return str(path)


__all__ = ['SearchIndex', 'INDEX_FORMAT_VERSION']
