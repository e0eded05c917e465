from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any

import numpy as np

from nn_playground.core.ports.metrics_sink import MetricsSinkPort


def _to_jsonable(value: Any) -> Any:
    """Best-effort conversion of training records to strict JSON values.

    Non-finite floats become None so the log stays readable by strict parsers.
    """

    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if value is None or isinstance(value, (bool, int, str)):
        return value

    # numpy scalars
    if isinstance(value, np.generic):
        return _to_jsonable(value.item())

    # arrays (numpy / jax) -> scalar or nested list
    if hasattr(value, "shape") and hasattr(value, "dtype"):
        arr = np.asarray(value)
        if arr.shape == ():
            return _to_jsonable(arr.item())
        return [_to_jsonable(v) for v in arr.tolist()]

    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]

    return str(value)


class JsonlFileMetricsSink(MetricsSinkPort):
    """Append-only JSONL log of training records.

    Each call writes one JSON object on a single line:
      {"ts": "...", "step": 3, "metrics": {"epoch": 3, "loss": 0.41, ...}}
    """

    def __init__(self, *, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    def log(self, *, step: int, metrics: dict[str, Any]) -> None:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "step": int(step),
            "metrics": _to_jsonable(metrics),
        }
        line = json.dumps(record, ensure_ascii=False)

        with self._lock:
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")


def read_jsonl_metrics_records(path: str | Path, *, event: str | None = None) -> list[dict[str, Any]]:
    """Read back a JSONL log; `event` keeps only records with that `metrics.event`."""

    records = []
    with Path(path).open(encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            record = json.loads(line)
            if event is None or record.get("metrics", {}).get("event") == event:
                records.append(record)
    return records


class CompositeMetricsSink(MetricsSinkPort):
    """Tee records to multiple sinks."""

    def __init__(self, *sinks: MetricsSinkPort | None) -> None:
        self._sinks = [s for s in sinks if s is not None]

    def log(self, *, step: int, metrics: dict[str, Any]) -> None:
        for s in self._sinks:
            s.log(step=step, metrics=metrics)
