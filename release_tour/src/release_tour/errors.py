"""
Error Taxonomy

Exceptions raised by the release tour core. All of them are recovered at the
session boundary (TourSession.handle) and surfaced as a banner or an
execution result; none of them is fatal to the process.
"""

from typing import Optional


class ReleaseTourError(Exception):
    """Base class for all release tour errors."""


class ValidationError(ReleaseTourError):
    """Local, pre-network validation failure (e.g. empty code)."""


class CatalogFetchError(ReleaseTourError):
    """
    Lesson catalog could not be fetched for a version.

    The cache is left unpopulated, so raising this is the retry signal:
    the next navigation to the same version fetches again.
    """

    def __init__(self, version: str, cause: Optional[BaseException] = None):
        self.version = version
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to load lessons for version {version}{detail}")


class TransportError(ReleaseTourError):
    """Network or HTTP failure while talking to a remote service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
