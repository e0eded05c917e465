from __future__ import annotations

import os

os.environ.setdefault("JAX_PLATFORMS", "cpu")

import numpy as np
import pytest

from nn_playground.adapters.right.data_loaders.npz_classification import NpzClassificationDataset
from nn_playground.core.domain.entities.dataset import DatasetLoadOptions
from nn_playground.core.domain.errors import DataUnavailableError


def test_feature_vectors_with_integer_labels(tmp_path) -> None:
    path = tmp_path / "toy.npz"
    rng = np.random.default_rng(0)
    np.savez(
        path,
        x_train=rng.normal(size=(6, 4)).astype(np.float32),
        y_train=np.array([0, 1, 2, 0, 1, 2]),
        x_test=rng.normal(size=(3, 4)).astype(np.float32),
        y_test=np.array([2, 1, 0]),
    )

    ds = NpzClassificationDataset(path=path)
    meta = ds.get_metadata()
    assert meta.name == "toy"
    assert meta.input_shape == (4,)
    assert meta.num_classes == 3

    arrays = ds.load_data(DatasetLoadOptions(shuffle=False))
    assert arrays.test_labels.reshape(3, 3).argmax(axis=1).tolist() == [2, 1, 0]

    with ds.load_tensors() as tensors:
        assert tensors.train_data.shape == (6, 4)
        assert tensors.test_labels.shape == (3, 3)


def test_uint8_images_with_one_hot_labels_and_valid_split(tmp_path) -> None:
    path = tmp_path / "images.npz"
    np.savez(
        path,
        x_train=np.full((4, 5, 5, 3), 255, dtype=np.uint8),
        y_train=np.eye(2, dtype=np.float32)[[0, 1, 1, 0]],
        x_valid=np.zeros((2, 5, 5, 3), dtype=np.uint8),
        y_valid=np.eye(2, dtype=np.float32)[[1, 0]],
    )

    ds = NpzClassificationDataset(path=path, name="imgs")
    meta = ds.get_metadata()
    assert (meta.input_shape, meta.channels, meta.num_classes) == ((5, 5), 3, 2)

    arrays = ds.load_data(DatasetLoadOptions(shuffle=False))
    assert arrays.train_images.max() == pytest.approx(1.0)
    assert arrays.num_test(2) == 2
    with ds.load_tensors() as tensors:
        assert tensors.train_data.shape == (4, 5, 5, 3)


def test_missing_file_is_data_unavailable(tmp_path) -> None:
    with pytest.raises(DataUnavailableError):
        NpzClassificationDataset(path=tmp_path / "nope.npz")
