from __future__ import annotations

from typing import Any

from nn_playground.core.ports.metrics_sink import MetricsSinkPort


def _format_value(value: Any, precision: int) -> str:
    if isinstance(value, float):
        return f"{value:.{precision}f}"
    return str(value)


class StdoutMetricsSink(MetricsSinkPort):
    """One line per record: `[step=3] epoch=3, loss=0.4121, accuracy=0.8750`."""

    def __init__(self, *, precision: int = 4) -> None:
        self._precision = precision

    def log(self, *, step: int, metrics: dict[str, Any]) -> None:
        items = ", ".join(f"{k}={_format_value(v, self._precision)}" for k, v in metrics.items())
        print(f"[step={step}] {items}")
