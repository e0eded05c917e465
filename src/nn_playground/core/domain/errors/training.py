from __future__ import annotations

from .base import PlaygroundError

__all__ = ["TrainingError"]


class TrainingError(PlaygroundError):
    pass
