from __future__ import annotations

import math
from collections.abc import Callable, Iterator, Sequence

import numpy as np

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280


def lcg_random(seed: int) -> Callable[[], float]:
    """Seeded uniform source in [0, 1).

    seed = (seed * 9301 + 49297) % 233280; returns seed / 233280. Kept exact so
    a seeded shuffle reproduces the same permutation everywhere.
    """

    state = int(seed)

    def _next() -> float:
        nonlocal state
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return state / LCG_MODULUS

    return _next


def random_source(seed: int | None) -> Callable[[], float]:
    if seed is not None:
        return lcg_random(seed)
    rng = np.random.default_rng()
    return lambda: float(rng.random())


def permutation(n: int, random: Callable[[], float]) -> np.ndarray:
    """Fisher-Yates over [0, n): for i = n-1..1 swap i with floor(random() * (i + 1))."""

    indices = np.arange(n)
    for i in range(n - 1, 0, -1):
        j = int(math.floor(random() * (i + 1)))
        indices[i], indices[j] = indices[j], indices[i]
    return indices


def shuffle_examples(
    images: np.ndarray,
    labels: np.ndarray,
    *,
    example_size: int,
    num_classes: int,
    random: Callable[[], float],
) -> tuple[np.ndarray, np.ndarray]:
    """Gather full example rows (pixels + one-hot block) in permuted order.

    Destination row k receives source row perm[k], so image/label pairs stay together.
    """

    n = len(labels) // num_classes
    order = permutation(n, random)
    shuffled_images = np.reshape(images, (n, example_size))[order].reshape(-1)
    shuffled_labels = np.reshape(labels, (n, num_classes))[order].reshape(-1)
    return shuffled_images, shuffled_labels


def take_prefix(flat: np.ndarray, *, rows: int, row_size: int) -> np.ndarray:
    """Copy of the first `rows` rows of a flat row-major buffer."""

    return np.array(flat[: rows * row_size], dtype=np.float32, copy=True)


def one_hot_encode(labels: Sequence[int] | np.ndarray, num_classes: int) -> np.ndarray:
    """Flat float32 one-hot buffer, `num_classes` values per label."""

    labels = np.asarray(labels, dtype=np.int64)
    if labels.size and (labels.min() < 0 or labels.max() >= num_classes):
        raise ValueError(f"labels must be in [0, {num_classes}), got range [{labels.min()}, {labels.max()}]")
    encoded = np.zeros((labels.size, num_classes), dtype=np.float32)
    encoded[np.arange(labels.size), labels] = 1.0
    return encoded.reshape(-1)


def iter_minibatches(n: int, batch_size: int, *, order: np.ndarray | None = None) -> Iterator[np.ndarray]:
    """Yield index arrays covering [0, n) in `batch_size` chunks (last one may be short)."""

    idx = np.arange(n) if order is None else order
    for start in range(0, n, batch_size):
        yield idx[start : start + batch_size]
