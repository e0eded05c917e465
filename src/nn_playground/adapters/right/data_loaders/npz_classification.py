from __future__ import annotations

from pathlib import Path

import numpy as np

from nn_playground.adapters.right.data_loaders.base import Dataset
from nn_playground.core.domain.entities.dataset import DatasetArrays, DatasetMetadata
from nn_playground.core.domain.errors.dataset import DataUnavailableError
from nn_playground.core.domain.utils.arrays import one_hot_encode


def _as_class_ids(y: np.ndarray) -> np.ndarray:
    return np.argmax(y, axis=-1) if y.ndim == 2 else y.astype(np.int64)


class NpzClassificationDataset(Dataset):
    """Loads supervised arrays from a .npz file.

    Expected keys:
      - x_train, y_train
      - x_test, y_test  (or x_valid, y_valid)

    Labels may be integer class ids or one-hot rows. uint8 inputs are scaled
    to [0, 1]. Inputs of shape (H, W, C) keep C as channels.
    """

    def __init__(self, *, path: str | Path, name: str | None = None) -> None:
        path = Path(path)
        try:
            with np.load(path) as data:
                x_train = data["x_train"]
                y_train = data["y_train"]
                if "x_valid" in data and "y_valid" in data:
                    x_test, y_test = data["x_valid"], data["y_valid"]
                else:
                    x_test, y_test = data["x_test"], data["y_test"]
        except (OSError, KeyError, ValueError) as exc:
            raise DataUnavailableError(f"cannot read {path}: {exc}") from exc

        y_train_ids, y_test_ids = _as_class_ids(y_train), _as_class_ids(y_test)
        if y_train.ndim == 2:
            num_classes = int(y_train.shape[1])
        else:
            num_classes = int(max(y_train_ids.max(initial=0), y_test_ids.max(initial=0))) + 1

        shape = tuple(int(d) for d in x_train.shape[1:])
        input_shape, channels = (shape[:2], shape[2]) if len(shape) == 3 else (shape, 1)
        super().__init__(
            DatasetMetadata(
                name=name or path.stem,
                description=f"Arrays from {path.name}",
                input_shape=input_shape,
                channels=channels,
                num_classes=num_classes,
                train_size=len(x_train),
                test_size=len(x_test),
                class_names=tuple(str(i) for i in range(num_classes)),
            )
        )
        self._x = (x_train, x_test)
        self._y = (y_train_ids, y_test_ids)

    def example_shape(self) -> tuple[int, ...]:
        if self.metadata.is_sequence:
            return self.metadata.input_shape
        return super().example_shape()

    def _read_arrays(self) -> DatasetArrays:
        def _flat(x: np.ndarray) -> np.ndarray:
            scale = 255.0 if x.dtype == np.uint8 else 1.0
            return (x.astype(np.float32) / scale).reshape(-1)

        num_classes = self.metadata.num_classes
        return DatasetArrays(
            train_images=_flat(self._x[0]),
            train_labels=one_hot_encode(self._y[0], num_classes),
            test_images=_flat(self._x[1]),
            test_labels=one_hot_encode(self._y[1], num_classes),
        )
