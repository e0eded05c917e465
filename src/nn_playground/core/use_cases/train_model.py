from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from nn_playground.core.domain.commands.train import TrainCommand
from nn_playground.core.domain.entities.architecture import Architecture
from nn_playground.core.domain.entities.dataset import DatasetMetadata
from nn_playground.core.domain.entities.model import CompiledModel, History
from nn_playground.core.domain.errors.training import TrainingError
from nn_playground.core.domain.registry import DatasetRegistry
from nn_playground.core.ports.dataset_provider import DatasetPort
from nn_playground.core.ports.metrics_sink import MetricsSinkPort
from nn_playground.core.use_cases.compile_model import DynamicModelCompiler

logger = logging.getLogger(__name__)

TrainingCallback = Callable[[int, dict[str, float], CompiledModel], None]


@dataclass(frozen=True)
class TrainResult:
    model: CompiledModel
    history: History
    test_metrics: dict[str, float]
    metadata: DatasetMetadata


class TrainModelUseCase:
    """Dataset -> architecture -> compiled model -> fit -> test evaluation."""

    def __init__(
        self,
        *,
        registry: DatasetRegistry,
        compiler: DynamicModelCompiler,
        metrics_sink: MetricsSinkPort | None = None,
    ) -> None:
        self._registry = registry
        self._compiler = compiler
        self._metrics = metrics_sink

    def run(
        self,
        command: TrainCommand,
        *,
        dataset: str | DatasetPort,
        architecture: Architecture | None = None,
        on_epoch_end: TrainingCallback | None = None,
    ) -> TrainResult:
        """Train `architecture` (or the dataset's default one) on `dataset`.

        The architecture's class count is pinned to the dataset's. The
        compiled model is returned undisposed; the dataset tensors are always
        released before returning.
        """

        source = self._registry.get(dataset) if isinstance(dataset, str) else dataset
        info = source.get_metadata()
        if info.num_classes <= 1:
            raise TrainingError(f"num_classes must be >= 2, got {info.num_classes}")

        if architecture is None:
            architecture = Architecture.default_for(info)
        architecture.set_num_classes(info.num_classes)
        input_layer = architecture.input_layer
        if input_layer is not None and input_layer.units != info.example_size:
            raise TrainingError(
                f"input layer has {input_layer.units} features but {info.name} examples have {info.example_size}"
            )

        model = self._compiler.compile(architecture, command=command.compile_command)
        if model.model.output_shape != (info.num_classes,):
            model.dispose()
            raise TrainingError(
                f"model outputs {model.model.output_shape} but {info.name} labels have {info.num_classes} classes"
            )
        self._log(
            step=0,
            metrics={
                "event": "run_start",
                "dataset": info.name,
                "layers": len(architecture),
                "params": model.count_params(),
                "loss": model.loss,
                "optimizer": model.optimizer_name,
                "lr": model.learning_rate,
                "epochs": command.epochs,
                "batch_size": command.batch_size,
                "seed": command.seed,
            },
        )

        def _epoch_end(epoch: int, logs: dict[str, float]) -> None:
            self._log(step=epoch + 1, metrics={"epoch": epoch + 1, **logs})
            if on_epoch_end is not None:
                on_epoch_end(epoch, logs, model)

        tensors = source.load_tensors(command.load_options())
        try:
            history = model.fit(
                tensors.train_data,
                tensors.train_labels,
                epochs=command.epochs,
                batch_size=command.batch_size,
                validation_split=command.validation_split,
                shuffle=command.shuffle,
                seed=command.seed,
                on_epoch_end=_epoch_end,
            )
            test_metrics: dict[str, float] = {}
            if tensors.test_labels.shape[0]:
                test_metrics = model.evaluate(tensors.test_data, tensors.test_labels, batch_size=command.batch_size)
        finally:
            tensors.dispose()

        self._log(
            step=len(history.epoch),
            metrics={"event": "test_eval", **{f"test/{name}": value for name, value in test_metrics.items()}},
        )
        logger.info("Training on %s finished after %d epoch(s): %s", info.name, len(history.epoch), test_metrics)
        return TrainResult(model=model, history=history, test_metrics=test_metrics, metadata=info)

    def _log(self, *, step: int, metrics: dict[str, Any]) -> None:
        if self._metrics:
            self._metrics.log(step=step, metrics=metrics)
