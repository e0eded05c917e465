from __future__ import annotations

__all__ = ["PlaygroundError"]


class PlaygroundError(Exception):
    """Base class for every hard failure raised by the core."""
