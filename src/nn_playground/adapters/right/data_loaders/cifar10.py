from __future__ import annotations

import numpy as np

from nn_playground.adapters.right.data_loaders.base import Dataset
from nn_playground.core.domain.entities.dataset import DatasetArrays, DatasetMetadata
from nn_playground.core.domain.utils.arrays import one_hot_encode

CIFAR10_CLASS_NAMES = (
    "airplane",
    "automobile",
    "bird",
    "cat",
    "deer",
    "dog",
    "frog",
    "horse",
    "ship",
    "truck",
)
IMAGE_HEIGHT = 32
IMAGE_WIDTH = 32
NUM_CHANNELS = 3
NUM_CLASSES = 10


def synthesize_cifar10(num_examples: int, rng: np.random.Generator) -> tuple[np.ndarray, np.ndarray]:
    """Colour-coded stand-in images: example i has class i % 10.

    Every pixel is base + noise on red, base + 0.8 * noise on green and
    base + 0.6 * noise on blue (clipped at 1), base = class / 10 * 0.8 + 0.1,
    noise ~ U[0, 0.1).
    """

    labels = np.arange(num_examples) % NUM_CLASSES
    base = (labels / NUM_CLASSES * 0.8 + 0.1)[:, None, None]
    noise = rng.random((num_examples, IMAGE_HEIGHT * IMAGE_WIDTH, 1)) * 0.1
    pixels = np.minimum(1.0, base + noise * np.array([1.0, 0.8, 0.6]))
    return pixels.astype(np.float32).reshape(-1), labels


class Cifar10Dataset(Dataset):
    """Synthetic CIFAR-10 (32x32 RGB, 10 classes); no download involved."""

    def __init__(self, *, train_size: int = 50_000, test_size: int = 10_000, seed: int | None = None) -> None:
        super().__init__(
            DatasetMetadata(
                name="CIFAR-10",
                description="32x32 color images in 10 classes of common objects",
                input_shape=(IMAGE_HEIGHT, IMAGE_WIDTH),
                channels=NUM_CHANNELS,
                num_classes=NUM_CLASSES,
                train_size=train_size,
                test_size=test_size,
                class_names=CIFAR10_CLASS_NAMES,
            )
        )
        self._seed = seed

    def _read_arrays(self) -> DatasetArrays:
        rng = np.random.default_rng(self._seed)
        train_images, train_labels = synthesize_cifar10(self.metadata.train_size, rng)
        test_images, test_labels = synthesize_cifar10(self.metadata.test_size, rng)
        return DatasetArrays(
            train_images=train_images,
            train_labels=one_hot_encode(train_labels, NUM_CLASSES),
            test_images=test_images,
            test_labels=one_hot_encode(test_labels, NUM_CLASSES),
        )
