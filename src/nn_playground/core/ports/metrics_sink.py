from __future__ import annotations

from typing import Any, Protocol


class MetricsSinkPort(Protocol):
    """Port for training records (run start, per-epoch logs, test evaluation)."""

    def log(self, *, step: int, metrics: dict[str, Any]) -> None:
        ...
