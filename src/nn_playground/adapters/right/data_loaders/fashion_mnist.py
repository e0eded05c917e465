from __future__ import annotations

import numpy as np

from nn_playground.adapters.right.data_loaders.base import Dataset
from nn_playground.core.domain.entities.dataset import DatasetArrays, DatasetMetadata
from nn_playground.core.domain.utils.arrays import one_hot_encode

FASHION_MNIST_CLASS_NAMES = (
    "T-shirt/top",
    "Trouser",
    "Pullover",
    "Dress",
    "Coat",
    "Sandal",
    "Shirt",
    "Sneaker",
    "Bag",
    "Ankle boot",
)
IMAGE_SIZE = 28
NUM_CLASSES = 10


def class_patterns() -> np.ndarray:
    """(10, 28, 28) noiseless template per clothing class."""

    y, x = np.mgrid[0:IMAGE_SIZE, 0:IMAGE_SIZE].astype(np.float64)
    center = IMAGE_SIZE / 2
    distance = np.sqrt((x - center) ** 2 + (y - center) ** 2)
    s = IMAGE_SIZE
    patterns = [
        np.abs(np.sin(y * 0.3)) * 0.5,  # t-shirt: horizontal stripes
        np.where(y > s / 2, 0.7, 0.2),  # trouser: legs
        np.where(distance < 10, 0.8, 0.3),  # pullover: round neck
        np.abs(np.sin(x * 0.2) * np.cos(y * 0.1)) * 0.7,  # dress: waves
        np.where((x < s / 3) | (x > 2 * s / 3), 0.8, 0.4),  # coat: lapels
        np.where(y > s * 0.7, 0.9, 0.1),  # sandal: straps
        np.abs(np.cos(x * 0.3)) * 0.6,  # shirt: buttons
        np.where((distance < 8) | (y > s * 0.8), 0.9, 0.2),  # sneaker
        np.where((x > s * 0.3) & (x < s * 0.7), 0.8, 0.3),  # bag
        np.where(y > s * 0.6, 0.9, np.where(distance < 6, 0.7, 0.2)),  # ankle boot
    ]
    return np.stack(patterns)


def synthesize_fashion_mnist(num_examples: int, rng: np.random.Generator) -> tuple[np.ndarray, np.ndarray]:
    labels = np.arange(num_examples) % NUM_CLASSES
    images = class_patterns()[labels] + rng.random((num_examples, IMAGE_SIZE, IMAGE_SIZE)) * 0.1
    return images.astype(np.float32).reshape(-1), labels


class FashionMnistDataset(Dataset):
    """Synthetic Fashion-MNIST (28x28 grayscale, 10 clothing classes)."""

    def __init__(self, *, train_size: int = 60_000, test_size: int = 10_000, seed: int | None = None) -> None:
        super().__init__(
            DatasetMetadata(
                name="Fashion-MNIST",
                description="Grayscale images of fashion products from Zalando",
                input_shape=(IMAGE_SIZE, IMAGE_SIZE),
                channels=1,
                num_classes=NUM_CLASSES,
                train_size=train_size,
                test_size=test_size,
                class_names=FASHION_MNIST_CLASS_NAMES,
            )
        )
        self._seed = seed

    def _read_arrays(self) -> DatasetArrays:
        rng = np.random.default_rng(self._seed)
        train_images, train_labels = synthesize_fashion_mnist(self.metadata.train_size, rng)
        test_images, test_labels = synthesize_fashion_mnist(self.metadata.test_size, rng)
        return DatasetArrays(
            train_images=train_images,
            train_labels=one_hot_encode(train_labels, NUM_CLASSES),
            test_images=test_images,
            test_labels=one_hot_encode(test_labels, NUM_CLASSES),
        )
