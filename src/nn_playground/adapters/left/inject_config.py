from __future__ import annotations

from typing import Optional

import inject

from nn_playground.adapters.right.data_loaders import register_builtin_datasets
from nn_playground.core.domain.registry import DatasetRegistry, dataset_registry
from nn_playground.core.ports.metrics_sink import MetricsSinkPort
from nn_playground.core.use_cases.compile_model import DynamicModelCompiler
from nn_playground.core.use_cases.train_model import TrainModelUseCase


# pylint: disable=invalid-name
def get_dependencies_injection_config(
    *,
    registry: DatasetRegistry,
    metrics_sink: MetricsSinkPort,
    compiler: Optional[DynamicModelCompiler] = None,
):
    """Return an inject binder function.

    No imports occur inside the returned function.
    """

    compiler = compiler or DynamicModelCompiler()

    def configure_dependencies_injection(binder: inject.Binder) -> None:
        binder.bind(DatasetRegistry, registry)
        binder.bind(MetricsSinkPort, metrics_sink)
        binder.bind(DynamicModelCompiler, compiler)

        # Bind the use case as a fully-wired object.
        binder.bind(
            TrainModelUseCase,
            TrainModelUseCase(registry=registry, compiler=compiler, metrics_sink=metrics_sink),
        )

    return configure_dependencies_injection


def configure_injections(
    *,
    metrics_sink: MetricsSinkPort,
    registry: Optional[DatasetRegistry] = None,
    compiler: Optional[DynamicModelCompiler] = None,
) -> DatasetRegistry:
    """Populate the dataset registry and configure inject with this app's bindings.

    Uses the process-wide registry unless one is given. Safe to call multiple
    times (clears previous bindings).
    """

    registry = register_builtin_datasets(registry if registry is not None else dataset_registry)
    config = get_dependencies_injection_config(registry=registry, metrics_sink=metrics_sink, compiler=compiler)

    if inject.is_configured():
        inject.clear_and_configure(config)
    else:
        inject.configure(config)
    return registry
