from __future__ import annotations

import json
import os

os.environ.setdefault("JAX_PLATFORMS", "cpu")

import numpy as np
from typer.testing import CliRunner

from nn_playground.adapters.left.cli import app, load_architecture

runner = CliRunner()

MLP = [
    {"id": "in", "type": "input", "params": {"units": 784}},
    {"id": "hidden", "type": "dense", "params": {"units": 128, "activation": "relu"}},
    {"id": "out", "type": "dense", "params": {"units": 10, "activation": "softmax"}},
]


def test_datasets_lists_builtins() -> None:
    result = runner.invoke(app, ["datasets"])

    assert result.exit_code == 0, result.output
    for name in ("mnist", "cifar10", "fashion-mnist", "imdb", "ag-news"):
        assert name in result.output
    assert "55000 train / 10000 test" in result.output


def test_summary_of_valid_architecture(tmp_path) -> None:
    path = tmp_path / "arch.json"
    path.write_text(json.dumps({"layers": MLP, "num_classes": 10}), encoding="utf-8")

    result = runner.invoke(app, ["summary", str(path)])

    assert result.exit_code == 0, result.output
    assert "Neural Network Architecture:" in result.output
    assert "Parameters: 101,770" in result.output


def test_summary_of_invalid_architecture_exits_non_zero(tmp_path) -> None:
    path = tmp_path / "arch.json"
    path.write_text(json.dumps(MLP), encoding="utf-8")

    result = runner.invoke(app, ["summary", str(path), "--num-classes", "3"])

    assert result.exit_code == 1
    assert "error: Output layer should have 3 units to match 3 classes (has 10)" in result.output


def test_summary_of_a_template() -> None:
    result = runner.invoke(app, ["summary", "--template", "simple-cnn", "--num-classes", "10"])

    assert result.exit_code == 0, result.output
    assert "Total Layers: 8" in result.output

    unknown = runner.invoke(app, ["summary", "--template", "resnet"])
    assert unknown.exit_code == 2
    assert "Unknown template: resnet" in unknown.output


def test_summary_needs_exactly_one_source(tmp_path) -> None:
    assert runner.invoke(app, ["summary"]).exit_code == 2

    path = tmp_path / "arch.json"
    path.write_text(json.dumps(MLP), encoding="utf-8")
    assert runner.invoke(app, ["summary", str(path), "--template", "simple-dense"]).exit_code == 2


def test_templates_lists_the_catalogue() -> None:
    result = runner.invoke(app, ["templates", "--category", "computer-vision"])

    assert result.exit_code == 0, result.output
    assert "simple-cnn" in result.output
    assert "advanced-cnn" in result.output
    assert "simple-dense" not in result.output


def test_load_architecture_reads_compile_settings(tmp_path) -> None:
    path = tmp_path / "arch.json"
    path.write_text(
        json.dumps({"layers": MLP, "compile": {"optimizer": "sgd", "learning_rate": 0.01}}),
        encoding="utf-8",
    )

    arch = load_architecture(path)
    assert arch.compile_command.optimizer == "sgd"
    assert len(arch) == 3


def test_train_on_npz_file(tmp_path) -> None:
    data = tmp_path / "toy.npz"
    rng = np.random.default_rng(0)
    np.savez(
        data,
        x_train=rng.normal(size=(20, 6)).astype(np.float32),
        y_train=rng.integers(0, 2, size=20),
        x_test=rng.normal(size=(8, 6)).astype(np.float32),
        y_test=rng.integers(0, 2, size=8),
    )
    log_path = tmp_path / "logs" / "train.jsonl"

    result = runner.invoke(
        app,
        ["train", "--npz-path", str(data), "--epochs", "1", "--batch-size", "4", "--log-path", str(log_path)],
    )

    assert result.exit_code == 0, result.output
    assert "Training complete" in result.output
    events = [json.loads(line)["metrics"].get("event") for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert events[0] == "run_start"
    assert events[-1] == "test_eval"


def test_train_unknown_dataset_is_a_usage_error() -> None:
    result = runner.invoke(app, ["train", "--dataset", "nope", "--epochs", "1"])

    assert result.exit_code == 2
    assert "Unknown dataset: nope" in result.output


def test_train_rejects_zero_sample_ratio() -> None:
    result = runner.invoke(app, ["train", "--train-sample-ratio", "0", "--epochs", "1"])

    assert result.exit_code == 2
    assert "--train-sample-ratio must be greater than 0" in result.output

    result = runner.invoke(app, ["train", "--test-sample-ratio", "0.0", "--epochs", "1"])
    assert result.exit_code == 2
