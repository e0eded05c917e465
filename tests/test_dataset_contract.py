from __future__ import annotations

import os

# Ensure tests run on CPU-only machines even if JAX is installed with CUDA extras.
os.environ.setdefault("JAX_PLATFORMS", "cpu")

import numpy as np
import pytest

from nn_playground.adapters.right.data_loaders import (
    AgNewsDataset,
    Cifar10Dataset,
    FashionMnistDataset,
    ImdbDataset,
)
from nn_playground.adapters.right.data_loaders.base import Dataset
from nn_playground.core.domain.entities.dataset import DatasetArrays, DatasetLoadOptions, DatasetMetadata
from nn_playground.core.domain.errors import ConcurrentLoadError, DataUnavailableError


def _cifar() -> Cifar10Dataset:
    return Cifar10Dataset(train_size=20, test_size=10, seed=0)


def _labels(flat: np.ndarray, num_classes: int) -> list[int]:
    return flat.reshape(-1, num_classes).argmax(axis=1).tolist()


@pytest.mark.parametrize(
    "factory",
    [
        _cifar,
        lambda: FashionMnistDataset(train_size=20, test_size=10, seed=0),
        lambda: ImdbDataset(train_size=20, test_size=10, max_length=16, vocab_size=50, seed=0),
        lambda: AgNewsDataset(train_size=20, test_size=10, max_length=16, vocab_size=50, seed=0),
    ],
)
def test_buffer_lengths_match_metadata(factory) -> None:
    ds = factory()
    meta = ds.get_metadata()
    arrays = ds.load_data()

    assert len(arrays.train_images) == meta.train_size * meta.example_size
    assert len(arrays.train_labels) == meta.train_size * meta.num_classes
    assert len(arrays.test_images) == meta.test_size * meta.example_size
    assert len(arrays.test_labels) == meta.test_size * meta.num_classes
    np.testing.assert_allclose(arrays.train_labels.reshape(-1, meta.num_classes).sum(axis=1), 1.0)
    assert arrays.train_images.dtype == np.float32


def test_cached_load_returns_same_arrays() -> None:
    ds = _cifar()
    assert ds.load_data() is ds.load_data()


def test_uncached_seeded_loads_are_equal_but_distinct() -> None:
    ds = _cifar()
    opts = DatasetLoadOptions(seed=5, cache=False)
    first = ds.load_data(opts)
    second = ds.load_data(opts)

    assert first is not second
    np.testing.assert_array_equal(first.train_images, second.train_images)
    np.testing.assert_array_equal(first.test_labels, second.test_labels)


def test_shuffle_reorders_examples_and_keeps_pairs() -> None:
    ordered = _cifar().load_data(DatasetLoadOptions(shuffle=False, cache=False))
    shuffled = _cifar().load_data(DatasetLoadOptions(shuffle=True, seed=1, cache=False))

    assert _labels(ordered.train_labels, 10) == [i % 10 for i in range(20)]
    assert _labels(shuffled.train_labels, 10) != _labels(ordered.train_labels, 10)
    assert sorted(_labels(shuffled.train_labels, 10)) == sorted(_labels(ordered.train_labels, 10))

    # Colour intensity encodes the class, so pairs can be checked from the first red value.
    pixels = shuffled.train_images.reshape(20, -1)
    for row, label in zip(pixels, _labels(shuffled.train_labels, 10)):
        base = label / 10 * 0.8 + 0.1
        assert base <= row[0] < base + 0.1 + 1e-6


def test_sample_ratios_take_floor_prefix() -> None:
    arrays = _cifar().load_data(DatasetLoadOptions(shuffle=False, train_sample_ratio=0.5, test_sample_ratio=0.35))

    assert arrays.num_train(10) == 10
    assert arrays.num_test(10) == 3


def test_sample_ratio_must_be_positive() -> None:
    with pytest.raises(ValueError):
        DatasetLoadOptions(train_sample_ratio=0.0)


def test_clear_cache_forces_reload() -> None:
    ds = _cifar()
    first = ds.load_data()
    ds.clear_cache()
    second = ds.load_data()

    assert first is not second
    np.testing.assert_array_equal(first.train_labels, second.train_labels)


def test_load_tensors_shapes_and_dispose() -> None:
    ds = _cifar()
    tensors = ds.load_tensors(DatasetLoadOptions(seed=0))

    assert tensors.train_data.shape == (20, 32, 32, 3)
    assert tensors.train_labels.shape == (20, 10)
    assert tensors.test_data.shape == (10, 32, 32, 3)

    tensors.dispose()
    tensors.dispose()
    assert tensors.disposed
    assert tensors.train_data.is_deleted()


def test_text_tensors_are_rank_two() -> None:
    ds = ImdbDataset(train_size=20, test_size=10, max_length=16, vocab_size=50, seed=0)
    with ds.load_tensors() as tensors:
        assert tensors.train_data.shape == (20, 16)
        assert tensors.train_labels.shape == (20, 2)
    assert tensors.disposed


def test_text_ids_respect_vocabulary() -> None:
    ds = AgNewsDataset(train_size=20, test_size=10, max_length=16, vocab_size=20, seed=0)
    arrays = ds.load_data()

    assert arrays.train_images.max() < 20
    assert ds.tokenizer.word_index


class _ReentrantDataset(Dataset):
    def __init__(self) -> None:
        super().__init__(
            DatasetMetadata(
                name="reentrant",
                description="loads itself",
                input_shape=(2,),
                channels=1,
                num_classes=2,
                train_size=1,
                test_size=1,
                class_names=("a", "b"),
            )
        )

    def _read_arrays(self) -> DatasetArrays:
        return self.load_data()


def test_load_while_loading_is_rejected() -> None:
    ds = _ReentrantDataset()
    with pytest.raises(ConcurrentLoadError):
        ds.load_data()
    assert not ds.is_loading


class _ShortDataset(_ReentrantDataset):
    def _read_arrays(self) -> DatasetArrays:
        empty = np.zeros(0, dtype=np.float32)
        return DatasetArrays(train_images=empty, train_labels=empty, test_images=empty, test_labels=empty)


def test_wrong_buffer_sizes_are_reported() -> None:
    with pytest.raises(DataUnavailableError):
        _ShortDataset().load_data()
