from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import numpy as np
import tensorflow as tf

from nn_playground.adapters.right.data_loaders.base import Dataset
from nn_playground.core.domain.entities.dataset import DatasetArrays, DatasetMetadata
from nn_playground.core.domain.errors.dataset import DataUnavailableError, NotLoadedError

logger = logging.getLogger(__name__)

MNIST_IMAGES_SPRITE_URL = "https://storage.googleapis.com/learnjs-data/model-builder/mnist_images.png"
MNIST_LABELS_URL = "https://storage.googleapis.com/learnjs-data/model-builder/mnist_labels_uint8"

IMAGE_SIZE = 28 * 28
NUM_CLASSES = 10
NUM_DATASET_ELEMENTS = 65_000
NUM_TRAIN_ELEMENTS = 55_000

Fetch = Callable[[str], bytes]


def keras_cached_fetch(url: str, *, cache_dir: str | None = None) -> bytes:
    """Download once into the Keras cache (~/.keras/nn_playground) and read the bytes."""

    path = tf.keras.utils.get_file(
        fname=url.rsplit("/", 1)[-1],
        origin=url,
        cache_dir=cache_dir,
        cache_subdir="nn_playground",
    )
    return Path(path).read_bytes()


class MnistSpriteSource:
    """The MNIST sprite: one PNG row of 784 pixels per digit plus a one-hot uint8 label file.

    The first `num_train` rows are the training split, the rest the test split.
    """

    def __init__(
        self,
        *,
        fetch: Fetch | None = None,
        num_examples: int = NUM_DATASET_ELEMENTS,
        num_train: int = NUM_TRAIN_ELEMENTS,
    ) -> None:
        if not 0 < num_train < num_examples:
            raise ValueError(f"num_train must be in (0, {num_examples}), got {num_train}")
        self._fetch = fetch or keras_cached_fetch
        self.num_examples = num_examples
        self.num_train = num_train
        self._images: np.ndarray | None = None
        self._labels: np.ndarray | None = None

    @property
    def num_test(self) -> int:
        return self.num_examples - self.num_train

    @property
    def is_loaded(self) -> bool:
        return self._images is not None and self._labels is not None

    def load(self) -> None:
        try:
            sprite = self._fetch(MNIST_IMAGES_SPRITE_URL)
            label_bytes = self._fetch(MNIST_LABELS_URL)
            pixels = tf.io.decode_png(sprite).numpy()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise DataUnavailableError(f"MNIST download/decode failed: {exc}") from exc

        if pixels.shape[0] < self.num_examples or pixels.shape[1] != IMAGE_SIZE:
            raise DataUnavailableError(
                f"MNIST sprite has shape {pixels.shape[:2]}, expected at least ({self.num_examples}, {IMAGE_SIZE})"
            )
        labels = np.frombuffer(label_bytes, dtype=np.uint8)
        if labels.size < self.num_examples * NUM_CLASSES:
            raise DataUnavailableError(
                f"MNIST labels have {labels.size} bytes, expected {self.num_examples * NUM_CLASSES}"
            )

        # Grayscale digits: the first (red) channel carries the intensity.
        self._images = (pixels[: self.num_examples, :, 0].astype(np.float32) / 255.0).reshape(-1)
        self._labels = labels[: self.num_examples * NUM_CLASSES].astype(np.float32)
        logger.info("MNIST sprite decoded: %d examples", self.num_examples)

    def unload(self) -> None:
        self._images = None
        self._labels = None

    def get_train_data(self) -> tuple[np.ndarray, np.ndarray]:
        images, labels = self._require()
        return images[: self.num_train * IMAGE_SIZE], labels[: self.num_train * NUM_CLASSES]

    def get_test_data(self) -> tuple[np.ndarray, np.ndarray]:
        images, labels = self._require()
        return images[self.num_train * IMAGE_SIZE :], labels[self.num_train * NUM_CLASSES :]

    def _require(self) -> tuple[np.ndarray, np.ndarray]:
        if self._images is None or self._labels is None:
            raise NotLoadedError()
        return self._images, self._labels


class MnistDataset(Dataset):
    """Real MNIST digits from the sprite source (downloaded on first load)."""

    def __init__(self, *, source: MnistSpriteSource | None = None) -> None:
        self._sprite = source or MnistSpriteSource()
        super().__init__(
            DatasetMetadata(
                name="MNIST",
                description="Handwritten digits (0-9) from the MNIST database",
                input_shape=(28, 28),
                channels=1,
                num_classes=NUM_CLASSES,
                train_size=self._sprite.num_train,
                test_size=self._sprite.num_test,
                class_names=tuple(str(d) for d in range(10)),
            )
        )

    def _read_arrays(self) -> DatasetArrays:
        if not self._sprite.is_loaded:
            self._sprite.load()
        train_images, train_labels = self._sprite.get_train_data()
        test_images, test_labels = self._sprite.get_test_data()
        return DatasetArrays(
            train_images=train_images,
            train_labels=train_labels,
            test_images=test_images,
            test_labels=test_labels,
        )

    def clear_cache(self) -> None:
        super().clear_cache()
        self._sprite.unload()
