from __future__ import annotations

from collections.abc import Iterable

from .base import PlaygroundError

__all__ = ["NotLoadedError", "DataUnavailableError", "ConcurrentLoadError", "UnknownDatasetError"]


class NotLoadedError(PlaygroundError):
    """An accessor was used before the underlying data was loaded."""

    def __init__(self, message: str = "Data not loaded. Call load() first.") -> None:
        super().__init__(message)


class DataUnavailableError(PlaygroundError):
    """Loading from an external source failed (network, decode, format)."""


class ConcurrentLoadError(PlaygroundError):
    """A load (or a cache clear) was requested while a load is in flight."""


class UnknownDatasetError(PlaygroundError, LookupError):
    def __init__(self, name: str, available: Iterable[str]) -> None:
        self.name = name
        self.available = tuple(available)
        super().__init__(f"Unknown dataset: {name}. Available: {', '.join(self.available)}")
