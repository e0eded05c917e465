from __future__ import annotations

from collections.abc import Callable

from nn_playground.core.domain.errors.dataset import UnknownDatasetError
from nn_playground.core.ports.dataset_provider import DatasetPort

DatasetFactory = Callable[[], DatasetPort]


class DatasetRegistry:
    """Maps dataset names to zero-argument factories.

    Registering an existing name replaces the previous factory.
    """

    def __init__(self) -> None:
        self._factories: dict[str, DatasetFactory] = {}

    def register(self, name: str, factory: DatasetFactory) -> None:
        self._factories[name] = factory

    def get(self, name: str) -> DatasetPort:
        """Return a fresh instance for `name`."""

        try:
            factory = self._factories[name]
        except KeyError as exc:
            raise UnknownDatasetError(name, self.names()) from exc
        return factory()

    def names(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories


dataset_registry = DatasetRegistry()


def register_dataset(name: str, factory: DatasetFactory) -> None:
    dataset_registry.register(name, factory)


def get_dataset(name: str) -> DatasetPort:
    return dataset_registry.get(name)


__all__ = [
    "DatasetFactory",
    "DatasetRegistry",
    "dataset_registry",
    "get_dataset",
    "register_dataset",
]
