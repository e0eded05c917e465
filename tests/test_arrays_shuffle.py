from __future__ import annotations

import numpy as np
import pytest

from nn_playground.core.domain.utils.arrays import (
    iter_minibatches,
    lcg_random,
    one_hot_encode,
    permutation,
    shuffle_examples,
    take_prefix,
)


def test_lcg_sequence_is_exact() -> None:
    rnd = lcg_random(42)
    state = 42
    for _ in range(5):
        state = (state * 9301 + 49297) % 233280
        assert rnd() == state / 233280


def test_lcg_values_are_in_unit_interval() -> None:
    rnd = lcg_random(7)
    values = [rnd() for _ in range(1000)]
    assert all(0.0 <= v < 1.0 for v in values)


def test_seeded_permutation_is_reproducible() -> None:
    a = permutation(50, lcg_random(3))
    b = permutation(50, lcg_random(3))

    np.testing.assert_array_equal(a, b)
    assert sorted(a.tolist()) == list(range(50))


def test_shuffle_keeps_images_and_labels_paired() -> None:
    n, example_size, num_classes = 12, 4, 3
    # Every pixel of example i holds i; its label is i % 3.
    images = np.repeat(np.arange(n, dtype=np.float32), example_size)
    labels = one_hot_encode(np.arange(n) % num_classes, num_classes)

    shuffled_images, shuffled_labels = shuffle_examples(
        images, labels, example_size=example_size, num_classes=num_classes, random=lcg_random(1)
    )

    rows = shuffled_images.reshape(n, example_size)
    classes = shuffled_labels.reshape(n, num_classes).argmax(axis=1)
    assert sorted(rows[:, 0].tolist()) == list(range(n))
    for row, cls in zip(rows, classes):
        assert np.all(row == row[0])
        assert int(row[0]) % num_classes == cls


def test_take_prefix_copies() -> None:
    flat = np.arange(10, dtype=np.float32)
    head = take_prefix(flat, rows=2, row_size=3)

    head[0] = 99.0
    np.testing.assert_array_equal(head, [99.0, 1.0, 2.0, 3.0, 4.0, 5.0])
    assert flat[0] == 0.0


def test_one_hot_encode_is_flat_and_rejects_out_of_range() -> None:
    np.testing.assert_array_equal(one_hot_encode([1, 0], 2), [0.0, 1.0, 1.0, 0.0])
    with pytest.raises(ValueError):
        one_hot_encode([2], 2)


def test_iter_minibatches_covers_all_rows() -> None:
    batches = list(iter_minibatches(7, 3))
    assert [len(b) for b in batches] == [3, 3, 1]
    assert np.concatenate(batches).tolist() == list(range(7))
