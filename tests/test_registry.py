from __future__ import annotations

import pytest

from nn_playground.adapters.right.data_loaders import (
    BUILTIN_DATASETS,
    Cifar10Dataset,
    ImdbDataset,
    register_builtin_datasets,
)
from nn_playground.core.domain.errors import UnknownDatasetError
from nn_playground.core.domain.registry import DatasetRegistry


def test_get_returns_a_fresh_instance_per_call() -> None:
    registry = DatasetRegistry()
    registry.register("tiny", lambda: Cifar10Dataset(train_size=2, test_size=1))

    first = registry.get("tiny")
    second = registry.get("tiny")
    assert isinstance(first, Cifar10Dataset)
    assert first is not second
    assert "tiny" in registry


def test_unknown_name_lists_available_datasets() -> None:
    registry = DatasetRegistry()
    registry.register("a", lambda: Cifar10Dataset(train_size=2, test_size=1))
    registry.register("b", lambda: Cifar10Dataset(train_size=2, test_size=1))

    with pytest.raises(UnknownDatasetError) as excinfo:
        registry.get("c")
    assert str(excinfo.value) == "Unknown dataset: c. Available: a, b"
    assert excinfo.value.available == ("a", "b")
    assert isinstance(excinfo.value, LookupError)


def test_registering_a_name_again_replaces_it() -> None:
    registry = DatasetRegistry()
    registry.register("x", lambda: Cifar10Dataset(train_size=2, test_size=1))
    registry.register("x", lambda: ImdbDataset(train_size=2, test_size=1))

    assert isinstance(registry.get("x"), ImdbDataset)
    assert registry.names() == ["x"]


def test_builtin_datasets() -> None:
    registry = register_builtin_datasets(DatasetRegistry())

    assert registry.names() == ["mnist", "cifar10", "fashion-mnist", "imdb", "ag-news"]
    assert set(registry.names()) == set(BUILTIN_DATASETS)
    # Metadata never triggers a download.
    assert registry.get("mnist").get_metadata().train_size == 55_000
    assert registry.get("imdb").get_metadata().input_shape == (200,)
