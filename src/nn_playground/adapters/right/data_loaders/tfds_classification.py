from __future__ import annotations

import numpy as np
import tensorflow as tf
import tensorflow_datasets as tfds

from nn_playground.adapters.right.data_loaders.base import Dataset
from nn_playground.core.domain.entities.dataset import DatasetArrays, DatasetMetadata
from nn_playground.core.domain.errors.dataset import DataUnavailableError
from nn_playground.core.domain.utils.arrays import one_hot_encode


class TfdsClassificationDataset(Dataset):
    """TFDS-backed image classification dataset.

    Uses TFDS + tf.data for decoding and normalisation, then materialises the
    flat arrays the dataset contract works with.
    """

    def __init__(
        self,
        *,
        name: str,
        data_dir: str = "/tmp/tfds",
        image_normalize_0_1: bool = True,
    ) -> None:
        try:
            data, info = tfds.load(name=name, data_dir=data_dir, as_supervised=True, with_info=True)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise DataUnavailableError(f"TFDS dataset '{name}' could not be loaded: {exc}") from exc

        test_split = "test" if "test" in data else "validation"
        self._tf_train = data.get("train")
        self._tf_test = data.get(test_split)
        if self._tf_train is None or self._tf_test is None:
            raise DataUnavailableError(f"TFDS dataset '{name}' must have train and test/validation splits")

        # input shape from features; for images, it's (H, W, C)
        shape = info.features["image"].shape
        if any(d is None for d in shape):
            raise DataUnavailableError(f"TFDS dataset '{name}' has variable image size {shape}")
        label = info.features["label"]
        description = (info.description or name).strip().splitlines()[0]

        super().__init__(
            DatasetMetadata(
                name=name,
                description=description,
                input_shape=tuple(int(d) for d in shape[:2]),
                channels=int(shape[2]),
                num_classes=int(label.num_classes),
                train_size=int(info.splits["train"].num_examples),
                test_size=int(info.splits[test_split].num_examples),
                class_names=tuple(label.names),
            )
        )

        def preprocess(image, label):
            image = tf.cast(image, tf.float32)
            if image_normalize_0_1:
                image = image / 255.0
            return image, label

        self._preprocess = preprocess

    def _materialise(self, ds: tf.data.Dataset) -> tuple[np.ndarray, np.ndarray]:
        images = []
        labels = []
        ds = ds.map(self._preprocess, num_parallel_calls=tf.data.AUTOTUNE).batch(1024)
        for x, y in tfds.as_numpy(ds.prefetch(tf.data.AUTOTUNE)):
            images.append(np.asarray(x, dtype=np.float32).reshape(-1))
            labels.append(np.asarray(y))
        return np.concatenate(images), one_hot_encode(np.concatenate(labels), self.metadata.num_classes)

    def _read_arrays(self) -> DatasetArrays:
        train_images, train_labels = self._materialise(self._tf_train)
        test_images, test_labels = self._materialise(self._tf_test)
        return DatasetArrays(
            train_images=train_images,
            train_labels=train_labels,
            test_images=test_images,
            test_labels=test_labels,
        )
