from __future__ import annotations

from dataclasses import asdict
import json
import logging
import os
import warnings
from pathlib import Path
from typing import Any

import inject
import typer

# Default to CPU unless explicitly overridden by the user.
# This avoids noisy CUDA plugin initialization errors on machines without CUDA libraries.
os.environ.setdefault("JAX_PLATFORMS", "cpu")

# Reduce known-noisy warning coming from TF/Keras in some environments.
warnings.filterwarnings(
    "ignore",
    message=r"In the future `np\.object` will be defined as the corresponding NumPy scalar\.",
    category=FutureWarning,
)

from nn_playground.adapters.left.inject_config import configure_injections
from nn_playground.adapters.right.data_loaders.npz_classification import NpzClassificationDataset
from nn_playground.adapters.right.metrics_jsonl import CompositeMetricsSink, JsonlFileMetricsSink
from nn_playground.adapters.right.metrics_stdout import StdoutMetricsSink
from nn_playground.core.domain.commands.compile import CompileCommand
from nn_playground.core.domain.commands.train import TrainCommand
from nn_playground.core.domain.entities.architecture import Architecture
from nn_playground.core.domain.errors import PlaygroundError
from nn_playground.core.domain.registry import DatasetRegistry
from nn_playground.core.domain.templates import MODEL_TEMPLATES, get_template, templates_by_category
from nn_playground.core.ports.dataset_provider import DatasetPort
from nn_playground.core.use_cases.train_model import TrainModelUseCase

app = typer.Typer(add_completion=False, no_args_is_help=True)


def configure_logging() -> None:
    """Log level from LOG_LEVEL (default INFO)."""

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.callback()
def main() -> None:
    """Dataset loading, architecture checks and training for small teaching networks."""

    configure_logging()


def load_architecture(path: str | Path, *, num_classes: int | None = None) -> Architecture:
    """Read an architecture JSON file.

    Either a list of layer objects or
    `{"layers": [...], "num_classes": 10, "compile": {"optimizer": "sgd", "learning_rate": 0.01}}`.
    """

    try:
        raw: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"cannot read architecture {path}: {exc}") from exc

    compile_command = None
    if isinstance(raw, dict):
        if num_classes is None:
            num_classes = raw.get("num_classes")
        if raw.get("compile"):
            compile_command = CompileCommand(**raw["compile"])
        raw = raw.get("layers", [])
    if not isinstance(raw, list):
        raise typer.BadParameter(f"{path}: expected a list of layers or an object with 'layers'")

    try:
        return Architecture.from_dicts(raw, num_classes=num_classes, compile_command=compile_command)
    except (TypeError, ValueError) as exc:
        raise typer.BadParameter(f"{path}: {exc}") from exc


@app.command()
def datasets() -> None:
    """List the registered datasets."""

    registry = configure_injections(metrics_sink=StdoutMetricsSink())
    for name in registry.names():
        info = registry.get(name).get_metadata()
        shape = "x".join(str(d) for d in info.input_shape)
        typer.echo(
            f"{name:<14} {info.name} | {info.description} | input {shape}x{info.channels} | "
            f"{info.num_classes} classes | {info.train_size} train / {info.test_size} test"
        )


@app.command()
def templates(category: str = typer.Option("", help="Only list this category")) -> None:
    """List the built-in architecture templates."""

    chosen = templates_by_category(category) if category else list(MODEL_TEMPLATES)
    for template in chosen:
        typer.echo(
            f"{template.id:<14} {template.name} | {template.category} | "
            f"{len(template.layers)} layers | try it on {template.recommended_dataset}"
        )


@app.command()
def summary(
    architecture_path: str = typer.Argument("", help="Architecture JSON file"),
    template: str = typer.Option("", help="Use a built-in template (see `templates`) instead of a file"),
    num_classes: int = typer.Option(0, help="Expected output classes (0: take it from the file, if any)"),
) -> None:
    """Validate an architecture and print its parameter/memory summary."""

    if bool(architecture_path) == bool(template):
        raise typer.BadParameter("pass either an architecture file or --template")
    if template:
        try:
            architecture = get_template(template).build(num_classes=num_classes or None)
        except PlaygroundError as exc:
            raise typer.BadParameter(str(exc)) from exc
    else:
        architecture = load_architecture(architecture_path, num_classes=num_classes or None)

    typer.echo(architecture.describe())
    result = architecture.validation
    for error in result.errors:
        typer.echo(f"error: {error}")
    for warning in result.warnings:
        typer.echo(f"warning: {warning}")
    for suggestion in result.suggestions:
        typer.echo(f"suggestion: {suggestion}")
    if not result.is_valid:
        raise typer.Exit(code=1)


@app.command()
def train(
    dataset: str = typer.Option("mnist", help="Registered dataset name (see `datasets`)"),
    npz_path: str = typer.Option("", help="Train on a .npz file instead of a registered dataset"),
    tfds_name: str = typer.Option("", help="Train on a TFDS image dataset instead of a registered dataset"),
    tfds_data_dir: str = typer.Option("/tmp/tfds", envvar="NN_PLAYGROUND_DATA_DIR", help="TFDS cache directory"),
    architecture_path: str = typer.Option("", "--architecture", help="Architecture JSON (default: built-in per dataset)"),
    epochs: int = typer.Option(10, min=1),
    batch_size: int = typer.Option(32, min=1),
    lr: float = typer.Option(1e-3),
    optimizer: str = typer.Option("adam", help="adam | adamw | sgd | rmsprop"),
    validation_split: float = typer.Option(0.2, min=0.0, max=0.9),
    seed: int = typer.Option(0),
    train_sample_ratio: float = typer.Option(1.0, min=0.0, max=1.0),
    test_sample_ratio: float = typer.Option(1.0, min=0.0, max=1.0),
    log_path: str = typer.Option(
        "",
        help="If set, append run/epoch records as JSONL to this path (e.g. logs/train.jsonl)",
    ),
    cpu: bool = typer.Option(True, "--cpu/--no-cpu", help="Force CPU (recommended on machines without CUDA libs)"),
) -> None:
    """Compile an architecture and train it on a dataset."""

    if cpu and os.environ.get("JAX_PLATFORMS") != "cpu":
        typer.echo("Note: set JAX_PLATFORMS=cpu before running to force CPU.")
    for flag, ratio in (("--train-sample-ratio", train_sample_ratio), ("--test-sample-ratio", test_sample_ratio)):
        if ratio <= 0:
            raise typer.BadParameter(f"{flag} must be greater than 0, got {ratio}")
    if optimizer.lower() not in {"adam", "adamw", "sgd", "rmsprop"}:
        raise typer.BadParameter("optimizer must be one of: adam, adamw, sgd, rmsprop")

    stdout_metrics = StdoutMetricsSink()
    metrics = (
        CompositeMetricsSink(stdout_metrics, JsonlFileMetricsSink(path=log_path))
        if log_path
        else stdout_metrics
    )
    configure_injections(metrics_sink=metrics)

    source: str | DatasetPort
    try:
        if npz_path:
            source = NpzClassificationDataset(path=npz_path)
        elif tfds_name:
            # TFDS pulls in its own heavy import chain; only pay for it when asked.
            from nn_playground.adapters.right.data_loaders.tfds_classification import TfdsClassificationDataset

            source = TfdsClassificationDataset(name=tfds_name, data_dir=tfds_data_dir)
        else:
            source = inject.instance(DatasetRegistry).get(dataset)
    except PlaygroundError as exc:
        raise typer.BadParameter(str(exc)) from exc

    architecture = load_architecture(architecture_path) if architecture_path else None
    cmd = TrainCommand(
        epochs=epochs,
        batch_size=batch_size,
        seed=seed,
        validation_split=validation_split,
        train_sample_ratio=train_sample_ratio,
        test_sample_ratio=test_sample_ratio,
        compile_command=CompileCommand(optimizer=optimizer.lower(), learning_rate=lr, seed=seed),
    )

    use_case = inject.instance(TrainModelUseCase)
    try:
        result = use_case.run(cmd, dataset=source, architecture=architecture)
    except PlaygroundError as exc:
        typer.echo(f"Training failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo("Training complete")
    typer.echo(result.model.summary())
    typer.echo(f"Final epoch: {result.history.last}")
    typer.echo(f"Test: {result.test_metrics}")
    typer.echo(f"Train command: {asdict(cmd)}")
    result.model.dispose()
