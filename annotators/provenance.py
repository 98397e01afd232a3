"""Provenance sources supplying a page's last modification time."""

import logging
import subprocess
from pathlib import Path
from typing import Dict, Optional

from dateutil.parser import isoparse

logger = logging.getLogger('site_export_pipeline.annotators.provenance')


class GitProvenance:
    """Reads the last commit date of a page's source file from git history."""

    def __init__(self, repository_root: Optional[str] = None, enabled: bool = True,
                 logger: logging.Logger = None):
        """
        Initialize git provenance.

        Args:
            repository_root: Directory git is run from; defaults to the source file's directory
            enabled: When False, no timestamps are ever reported
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger('site_export_pipeline.annotators.provenance')
        self.repository_root = repository_root
        self.enabled = enabled
        self._cache: Dict[str, Optional[str]] = {}

    def last_updated(self, src_path: Optional[str]) -> Optional[str]:
        """
        Return the ISO-8601 commit timestamp of the last change to src_path.

        Returns None when git is missing, the file is untracked, or the path
        is outside a repository.
        """
        if not self.enabled or not src_path:
            return None
        if src_path in self._cache:
            return self._cache[src_path]

        timestamp = self._query_git(src_path)
        self._cache[src_path] = timestamp
        return timestamp

    def _query_git(self, src_path: str) -> Optional[str]:
        cwd = self.repository_root
        target = src_path
        if cwd is None:
            path = Path(src_path)
            if path.parent.is_dir():
                cwd = str(path.parent)
                target = path.name

        cmd = ['git', 'log', '-1', '--format=%cI', '--', target]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False, cwd=cwd)
        except OSError as e:
            self.logger.warning(f"git is unavailable, disabling last-updated provenance: {e}")
            self.enabled = False
            return None

        output = result.stdout.strip()
        if result.returncode != 0 or not output:
            self.logger.debug(f"No git history for {src_path}")
            return None

        try:
            return isoparse(output.splitlines()[0]).isoformat()
        except ValueError:
            self.logger.debug(f"Unparseable git date for {src_path}: {output!r}")
            return None


__all__ = ['GitProvenance']
