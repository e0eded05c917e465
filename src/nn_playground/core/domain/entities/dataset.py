from __future__ import annotations

import math
from dataclasses import dataclass, field

import jax
import jax.numpy as jnp
import numpy as np

__all__ = ["DatasetMetadata", "DatasetArrays", "DatasetTensors", "DatasetLoadOptions"]


@dataclass(frozen=True)
class DatasetMetadata:
    """Display and shape information for a dataset. Pure data, no I/O."""

    name: str
    description: str
    input_shape: tuple[int, ...]
    channels: int
    num_classes: int
    train_size: int
    test_size: int
    class_names: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_shape", tuple(int(d) for d in self.input_shape))
        object.__setattr__(self, "class_names", tuple(self.class_names))
        if self.channels < 1:
            raise ValueError(f"channels must be >= 1, got {self.channels}")
        if len(self.class_names) != self.num_classes:
            raise ValueError(
                f"class_names has {len(self.class_names)} entries, expected num_classes={self.num_classes}"
            )

    @property
    def example_size(self) -> int:
        """Number of values per example in the flat image/sequence buffer."""
        return math.prod(self.input_shape) * self.channels

    @property
    def is_sequence(self) -> bool:
        return len(self.input_shape) == 1


@dataclass(frozen=True, eq=False)
class DatasetArrays:
    """Flat float32 buffers, one row per example, labels one-hot."""

    train_images: np.ndarray
    train_labels: np.ndarray
    test_images: np.ndarray
    test_labels: np.ndarray

    def num_train(self, num_classes: int) -> int:
        return len(self.train_labels) // num_classes

    def num_test(self, num_classes: int) -> int:
        return len(self.test_labels) // num_classes


@dataclass(eq=False)
class DatasetTensors:
    """Structured JAX views of a `DatasetArrays`.

    Caller-owned: call `dispose()` (or use the instance as a context manager)
    once training is done so device buffers are released eagerly.
    """

    train_data: jax.Array
    train_labels: jax.Array
    test_data: jax.Array
    test_labels: jax.Array
    _disposed: bool = field(default=False, init=False, repr=False)

    @classmethod
    def from_arrays(
        cls,
        arrays: DatasetArrays,
        *,
        example_shape: tuple[int, ...],
        num_classes: int,
    ) -> DatasetTensors:
        def _shape(images: np.ndarray, labels: np.ndarray) -> tuple[jax.Array, jax.Array]:
            n = len(labels) // num_classes
            return (
                jnp.asarray(np.reshape(images, (n, *example_shape))),
                jnp.asarray(np.reshape(labels, (n, num_classes))),
            )

        train_x, train_y = _shape(arrays.train_images, arrays.train_labels)
        test_x, test_y = _shape(arrays.test_images, arrays.test_labels)
        return cls(train_data=train_x, train_labels=train_y, test_data=test_x, test_labels=test_y)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        for arr in (self.train_data, self.train_labels, self.test_data, self.test_labels):
            if not arr.is_deleted():
                arr.delete()
        self._disposed = True

    def __enter__(self) -> DatasetTensors:
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()


@dataclass(frozen=True)
class DatasetLoadOptions:
    shuffle: bool = True
    seed: int | None = None
    train_sample_ratio: float = 1.0
    test_sample_ratio: float = 1.0
    cache: bool = True

    def __post_init__(self) -> None:
        for name in ("train_sample_ratio", "test_sample_ratio"):
            ratio = getattr(self, name)
            if not 0.0 < ratio <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {ratio}")
