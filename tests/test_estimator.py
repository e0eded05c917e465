from __future__ import annotations

import pytest

from nn_playground.core.domain.entities.layers import (
    Conv2DLayer,
    DenseLayer,
    DropoutLayer,
    FlattenLayer,
    InputLayer,
    MaxPooling2DLayer,
)
from nn_playground.core.domain.utils.estimator import estimate_parameters, format_bytes, trace_shapes


def test_reference_mlp_parameter_count() -> None:
    layers = [
        InputLayer(shape=(784,), id="in"),
        DenseLayer(units=128, id="hidden"),
        DropoutLayer(rate=0.2, id="drop"),
        DenseLayer(units=10, activation="softmax", id="out"),
    ]
    summary = estimate_parameters(layers)

    assert summary.total == 101_770
    assert summary.for_layer("hidden") == 100_480
    assert summary.for_layer("drop") == 0
    assert summary.for_layer("out") == 1_290
    assert summary.memory.model_bytes == 101_770 * 4
    assert summary.memory.activation_bytes == 128 * 4
    assert summary.memory.formatted == {"model": "397.54 KB", "activations": "512 B", "total": "398.04 KB"}


def test_dense_without_bias() -> None:
    summary = estimate_parameters([InputLayer(shape=(3,)), DenseLayer(units=2, use_bias=False)])
    assert summary.total == 6


def test_conv_counts_and_shapes() -> None:
    layers = [
        InputLayer(shape=(28, 28)),
        Conv2DLayer(filters=32, kernel_size=3, padding="valid"),
        MaxPooling2DLayer(pool_size=2, strides=2),
        FlattenLayer(),
        DenseLayer(units=10, activation="softmax"),
    ]

    trace = trace_shapes(layers)
    assert trace.error is None
    assert trace.shapes == ((28, 28, 1), (26, 26, 32), (13, 13, 32), (5408,), (10,))
    assert estimate_parameters(layers).total == 320 + 5408 * 10 + 10


def test_same_padding_keeps_spatial_size() -> None:
    trace = trace_shapes([InputLayer(shape=(7, 7, 3)), Conv2DLayer(filters=4, kernel_size=3, strides=2)])
    assert trace.shapes[-1] == (4, 4, 4)


def test_trace_stops_at_first_bad_layer() -> None:
    trace = trace_shapes([InputLayer(shape=(10,)), MaxPooling2DLayer(), DenseLayer(units=2)])

    assert trace.error is not None
    assert trace.error.startswith("Layer 2 (maxpooling2d)")
    assert trace.shapes == ((10,), None, None)


@pytest.mark.parametrize(
    "num_bytes, expected",
    [(0, "0 B"), (512, "512 B"), (1024, "1 KB"), (1536, "1.5 KB"), (1024**2, "1 MB"), (3 * 1024**3, "3 GB")],
)
def test_format_bytes(num_bytes, expected) -> None:
    assert format_bytes(num_bytes) == expected


def test_malformed_parameters_end_the_trace_instead_of_raising() -> None:
    layers = [
        InputLayer(shape=(28, 28, 1)),
        Conv2DLayer(filters=8, strides=0, id="conv"),
        FlattenLayer(),
        DenseLayer(units=10, activation="softmax"),
    ]

    trace = trace_shapes(layers)
    assert trace.error == "Layer 2 (conv2d): strides must be positive, got 0"
    assert trace.shapes[1:] == (None, None, None)
    assert estimate_parameters(layers).for_layer("conv") == 8 * 9 + 8


def test_non_numeric_units_and_bad_kernels_count_as_zero() -> None:
    layers = [
        InputLayer(shape=(28, 28, 1)),
        Conv2DLayer(filters=8, kernel_size=(3, 3, 3), id="conv"),
        FlattenLayer(),
        DenseLayer(units="64", id="hidden"),
        DenseLayer(units=10, activation="softmax", id="out"),
    ]

    summary = estimate_parameters(layers)
    assert summary.for_layer("conv") == 0
    assert summary.for_layer("hidden") == 0
    assert summary.for_layer("out") == 10
    assert summary.memory.activation_bytes == 10 * 4
