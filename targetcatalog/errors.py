"""Exception types raised by the catalog ingestion pipeline."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog ingestion errors."""


class ContentFetchError(CatalogError):
    """Raised when the source page cannot be retrieved. Fatal for the run."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class NoCandidatesError(CatalogError):
    """Raised when no extraction strategy matched the page structure. Fatal for the run."""


class StorageError(CatalogError):
    """Wraps a driver-level failure for a single store operation."""
