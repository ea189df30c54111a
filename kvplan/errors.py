"""Exceptions raised by the key-value client."""

from __future__ import annotations

from typing import Any, Iterable


class KvError(Exception):
    """Base class of every error raised by this package."""


class LeaderNotFoundError(KvError):
    """The leader of a region is not known."""

    def __init__(self, region_id: int) -> None:
        super().__init__(f"Leader of region {region_id} is not found")
        self.region_id = region_id


class StringError(KvError):
    """A general error described by a message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EntryNotFoundInRegionCacheError(KvError):
    """A region entry that was expected in the cache is missing."""

    def __init__(self) -> None:
        super().__init__("Cache entry not found in region cache")


class RegionError(KvError):
    """A server reported a region error that could not be resolved."""

    def __init__(self, error: Any) -> None:
        super().__init__(f"Region error: {error!r}")
        self.error = error


class MultipleKeyErrors(KvError):
    """A response carried one or more key errors."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = list(errors)
        super().__init__(f"Multiple key errors: {self.errors!r}")


class ExtractedErrors(KvError):
    """Errors extracted from a response that otherwise succeeded."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = list(errors)
        super().__init__(f"Multiple errors: {self.errors!r}")


class ResolveLockError(KvError):
    """Locks met by a request could not be resolved."""

    def __init__(self) -> None:
        super().__init__("Failed to resolve lock")


class UnimplementedError(KvError):
    """The requested feature is not implemented."""

    def __init__(self) -> None:
        super().__init__("Unimplemented feature")