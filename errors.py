"""Exceptions that abort a site export run."""

from typing import List, Optional


class SiteExportError(Exception):
    """Base class for fatal pipeline errors."""


class DuplicatePageIdentityError(SiteExportError):
    """Two or more pages map to the same export identity."""

    def __init__(self, identity: str, urls: List[str]):
        self.identity = identity
        self.urls = list(urls)
        super().__init__(
            f"Duplicate page identity '{identity}' shared by: {', '.join(self.urls)}"
        )


class OutputDirectoryError(SiteExportError):
    """The export output directory cannot be created or written to."""

    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        message = f"Output directory is not writable: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class PipelineStateError(SiteExportError):
    """A lifecycle event arrived in a phase that does not accept it."""


__all__ = [
    'SiteExportError',
    'DuplicatePageIdentityError',
    'OutputDirectoryError',
    'PipelineStateError'
]
