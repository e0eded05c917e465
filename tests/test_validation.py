from __future__ import annotations

from nn_playground.core.domain.entities.layers import (
    Conv2DLayer,
    DenseLayer,
    DropoutLayer,
    FlattenLayer,
    InputLayer,
    UnknownLayer,
)
from nn_playground.core.domain.utils.validation import (
    MSG_EMPTY,
    MSG_FIRST_NOT_INPUT,
    MSG_NO_DENSE,
    validate_architecture,
)

SOFTMAX_WARNING = "Output layer should typically use softmax activation for classification"


def _mlp(*middle, out=None):
    return [
        InputLayer(shape=(784,)),
        DenseLayer(units=128),
        *middle,
        out or DenseLayer(units=10, activation="softmax"),
    ]


def test_valid_mlp_has_no_violations() -> None:
    result = validate_architecture(_mlp(), num_classes=10)

    assert result.is_valid
    assert result.violations == ()
    assert result.suggestions == ()


def test_empty_architecture() -> None:
    result = validate_architecture([])

    assert MSG_EMPTY in result.errors
    assert MSG_NO_DENSE in result.errors


def test_first_layer_must_be_input_and_input_only_first() -> None:
    result = validate_architecture([DenseLayer(units=10, activation="softmax"), InputLayer()])

    assert MSG_FIRST_NOT_INPUT in result.errors
    assert "Input layer must be the first layer (found at position 2)" in result.errors


def test_at_least_one_dense_layer() -> None:
    result = validate_architecture([InputLayer(), DropoutLayer()])
    assert MSG_NO_DENSE in result.errors


def test_consecutive_dropout_is_an_error() -> None:
    result = validate_architecture(_mlp(DropoutLayer(), DropoutLayer()), num_classes=10)

    assert not result.is_valid
    assert any("Consecutive dropout" in e for e in result.errors)


def test_output_units_must_match_classes() -> None:
    result = validate_architecture(_mlp(out=DenseLayer(units=5, activation="softmax")), num_classes=10)
    assert result.errors == ("Output layer should have 10 units to match 10 classes (has 5)",)

    unchecked = validate_architecture(_mlp(out=DenseLayer(units=5, activation="softmax")))
    assert unchecked.is_valid


def test_non_softmax_output_is_a_warning() -> None:
    result = validate_architecture(_mlp(out=DenseLayer(units=10, activation="relu")), num_classes=10)

    assert result.is_valid
    assert SOFTMAX_WARNING in result.warnings
    assert SOFTMAX_WARNING in result.violations


def test_size_warnings() -> None:
    tiny = validate_architecture([InputLayer(shape=(4,)), DenseLayer(units=2, activation="softmax")])
    assert "Very small model - may underfit the data" in tiny.warnings

    huge = validate_architecture(
        [InputLayer(shape=(784,)), DenseLayer(units=2048), DenseLayer(units=10, activation="softmax")]
    )
    assert "Very large model - may be slow to train" in huge.warnings


def test_suggestions() -> None:
    single = validate_architecture([InputLayer(shape=(784,)), DenseLayer(units=10, activation="softmax")])
    assert "Consider adding hidden layers for better performance" in single.suggestions
    assert single.is_valid

    deep = validate_architecture(_mlp(DenseLayer(units=64)), num_classes=10)
    assert "Consider adding dropout layers to prevent overfitting" in deep.suggestions
    assert deep.violations == ()


def test_parameter_errors() -> None:
    result = validate_architecture(
        [
            InputLayer(shape=(784,)),
            DenseLayer(units=0),
            DropoutLayer(rate=0.95),
            DenseLayer(units=10, activation="banana"),
        ]
    )

    assert "Layer 2 (dense): units must be a positive integer" in result.errors
    assert any(e.startswith("Layer 3 (dropout): dropout rate") for e in result.errors)
    assert "Layer 4 (dense): unknown activation 'banana'" in result.errors


def test_shapes_that_cannot_flow() -> None:
    result = validate_architecture(
        [InputLayer(shape=(784,)), Conv2DLayer(filters=8), DenseLayer(units=10, activation="softmax")]
    )
    assert any(e.startswith("Layer 2 (conv2d):") for e in result.errors)


def test_unknown_layers_are_warned_about() -> None:
    result = validate_architecture(_mlp(UnknownLayer(type="lstm")), num_classes=10)

    assert result.is_valid
    assert "Layer 3: unsupported layer type 'lstm' will be skipped" in result.warnings


def test_zero_strides_are_reported_not_raised() -> None:
    result = validate_architecture(
        [
            InputLayer(shape=(28, 28, 1)),
            Conv2DLayer(filters=8, strides=0),
            FlattenLayer(),
            DenseLayer(units=10, activation="softmax"),
        ],
        num_classes=10,
    )

    assert "Layer 2 (conv2d): strides must be a positive integer or a pair of them" in result.errors
    assert not any("Very" in w for w in result.warnings)


def test_malformed_window_and_unit_values_are_reported() -> None:
    result = validate_architecture(
        [
            InputLayer(shape=(28, 28, 1)),
            Conv2DLayer(filters=8, kernel_size=(3, 3, 3)),
            FlattenLayer(),
            DenseLayer(units="lots"),
            DropoutLayer(rate="half"),
            DenseLayer(units=10, activation="softmax"),
        ]
    )

    assert "Layer 2 (conv2d): kernel size must be a positive integer or a pair of them" in result.errors
    assert "Layer 4 (dense): units must be a positive integer" in result.errors
    assert any(e.startswith("Layer 5 (dropout): dropout rate") for e in result.errors)


def test_non_string_choices_are_reported() -> None:
    result = validate_architecture(
        [InputLayer(shape=(4,)), DenseLayer(units=10, activation=["relu"], kernel_initializer=None)]
    )

    assert "Layer 2 (dense): unknown activation '['relu']'" in result.errors
    assert "Layer 2 (dense): unknown kernel initializer 'None'" in result.errors
