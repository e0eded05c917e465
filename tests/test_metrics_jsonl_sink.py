from __future__ import annotations

import json

import numpy as np

from nn_playground.adapters.right.metrics_jsonl import (
    CompositeMetricsSink,
    JsonlFileMetricsSink,
    read_jsonl_metrics_records,
)
from nn_playground.adapters.right.metrics_stdout import StdoutMetricsSink


def test_jsonl_metrics_sink_writes_valid_lines(tmp_path) -> None:
    p = tmp_path / "logs" / "metrics.jsonl"
    sink = JsonlFileMetricsSink(path=p)

    sink.log(step=0, metrics={"event": "run_start", "lr": 1e-3})
    sink.log(step=1, metrics={"epoch": 1, "loss": 0.5, "val_accuracy": 0.9})

    text = p.read_text(encoding="utf-8").strip()
    lines = [ln for ln in text.splitlines() if ln.strip()]
    assert len(lines) == 2

    rec0 = json.loads(lines[0])
    assert rec0["step"] == 0
    assert rec0["metrics"]["event"] == "run_start"

    rec1 = json.loads(lines[1])
    assert rec1["step"] == 1
    assert "val_accuracy" in rec1["metrics"]


def test_non_finite_and_numpy_values_become_strict_json(tmp_path) -> None:
    p = tmp_path / "metrics.jsonl"
    JsonlFileMetricsSink(path=p).log(
        step=np.int64(2),
        metrics={"loss": float("nan"), "accuracy": np.float32(0.5), "shape": np.zeros((2,))},
    )

    rec = json.loads(p.read_text(encoding="utf-8"))
    assert rec["metrics"] == {"loss": None, "accuracy": 0.5, "shape": [0.0, 0.0]}


def test_read_back_filters_by_event(tmp_path) -> None:
    p = tmp_path / "metrics.jsonl"
    sink = JsonlFileMetricsSink(path=p)
    sink.log(step=0, metrics={"event": "run_start"})
    sink.log(step=1, metrics={"epoch": 1, "loss": 0.7})
    sink.log(step=1, metrics={"event": "test_eval", "test/accuracy": 0.8})

    assert len(read_jsonl_metrics_records(p)) == 3
    [record] = read_jsonl_metrics_records(p, event="test_eval")
    assert record["metrics"]["test/accuracy"] == 0.8


def test_composite_sink_tees_records(tmp_path, capsys) -> None:
    p = tmp_path / "metrics.jsonl"
    sink = CompositeMetricsSink(StdoutMetricsSink(precision=2), None, JsonlFileMetricsSink(path=p))

    sink.log(step=3, metrics={"epoch": 3, "loss": 0.41234})

    assert capsys.readouterr().out.strip() == "[step=3] epoch=3, loss=0.41"
    assert read_jsonl_metrics_records(p)[0]["metrics"]["loss"] == 0.41234
