"""Architecture validation.

Violations are returned as data so callers can display them inline; nothing
here raises for an invalid architecture.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from nn_playground.core.domain.entities.layers import (
    ACTIVATIONS,
    KERNEL_INITIALIZERS,
    PADDINGS,
    Conv2DLayer,
    DenseLayer,
    DropoutLayer,
    InputLayer,
    Layer,
    MaxPooling2DLayer,
    UnknownLayer,
)
from nn_playground.core.domain.utils.estimator import estimate_parameters, trace_shapes

MAX_DROPOUT_RATE = 0.8
LARGE_MODEL_PARAMS = 1_000_000
SMALL_MODEL_PARAMS = 1_000

MSG_EMPTY = "Architecture must contain at least one layer"
MSG_FIRST_NOT_INPUT = "First layer must be an input layer"
MSG_NO_DENSE = "Architecture must contain at least one dense layer"


@dataclass(frozen=True)
class ValidationResult:
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()

    @property
    def violations(self) -> tuple[str, ...]:
        """Errors followed by warnings; suggestions are not violations."""
        return self.errors + self.warnings

    @property
    def is_valid(self) -> bool:
        return not self.errors


def structural_errors(layers: Sequence[Layer]) -> list[str]:
    """Violations that make compilation impossible."""

    if not layers:
        return [MSG_EMPTY, MSG_NO_DENSE]

    errors = []
    if not isinstance(layers[0], InputLayer):
        errors.append(MSG_FIRST_NOT_INPUT)
    for position, layer in enumerate(layers[1:], start=2):
        if isinstance(layer, InputLayer):
            errors.append(f"Input layer must be the first layer (found at position {position})")
    if not any(isinstance(layer, DenseLayer) for layer in layers):
        errors.append(MSG_NO_DENSE)
    return errors


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_rate(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0.0 <= value <= MAX_DROPOUT_RATE


def _one_of(value: Any, allowed: frozenset[str]) -> bool:
    return isinstance(value, str) and value in allowed


def _window_ok(value: Any) -> bool:
    """A positive int or a pair of them."""

    pair = value if isinstance(value, tuple) else (value, value)
    return len(pair) == 2 and all(_is_positive_int(v) for v in pair)


def _parameter_errors(layer: Layer, position: int) -> list[str]:
    where = f"Layer {position} ({layer.type})"
    errors = []

    if isinstance(layer, InputLayer):
        shape = layer.shape
        if not isinstance(shape, tuple) or not 1 <= len(shape) <= 3 or not all(_is_positive_int(d) for d in shape):
            errors.append(f"{where}: input shape must have 1 to 3 positive dimensions")
    if isinstance(layer, DenseLayer):
        if not _is_positive_int(layer.units):
            errors.append(f"{where}: units must be a positive integer")
    if isinstance(layer, Conv2DLayer):
        if not _is_positive_int(layer.filters):
            errors.append(f"{where}: filters must be a positive integer")
        if not _window_ok(layer.kernel_size):
            errors.append(f"{where}: kernel size must be a positive integer or a pair of them")
    if isinstance(layer, MaxPooling2DLayer) and not _window_ok(layer.pool_size):
        errors.append(f"{where}: pool size must be a positive integer or a pair of them")
    if isinstance(layer, (Conv2DLayer, MaxPooling2DLayer)):
        if not _window_ok(layer.strides):
            errors.append(f"{where}: strides must be a positive integer or a pair of them")
        if not _one_of(layer.padding, PADDINGS):
            errors.append(f"{where}: padding must be one of {', '.join(sorted(PADDINGS))}")
    if isinstance(layer, (DenseLayer, Conv2DLayer)):
        if not _one_of(layer.activation, ACTIVATIONS):
            errors.append(f"{where}: unknown activation '{layer.activation}'")
        if not _one_of(layer.kernel_initializer, KERNEL_INITIALIZERS):
            errors.append(f"{where}: unknown kernel initializer '{layer.kernel_initializer}'")
    if isinstance(layer, DropoutLayer):
        if not _is_rate(layer.rate):
            errors.append(f"{where}: dropout rate must be between 0 and {MAX_DROPOUT_RATE}")
    return errors


def parameter_errors(layers: Sequence[Layer]) -> list[str]:
    """Per-layer parameter problems (bad units, rates, activations, ...)."""

    errors = []
    for position, layer in enumerate(layers, start=1):
        errors.extend(_parameter_errors(layer, position))
    return errors


def validate_architecture(layers: Sequence[Layer], *, num_classes: int | None = None) -> ValidationResult:
    """Run every rule over `layers` and collect all violations.

    `num_classes` is the class count the output layer must match; when None
    the output width is not checked.
    """

    layers = list(layers)
    errors = structural_errors(layers)
    warnings: list[str] = []
    suggestions: list[str] = []

    bad_params = parameter_errors(layers)
    errors.extend(bad_params)
    for position, layer in enumerate(layers, start=1):
        if isinstance(layer, UnknownLayer):
            warnings.append(f"Layer {position}: unsupported layer type '{layer.type}' will be skipped")

    for position, (current, following) in enumerate(zip(layers, layers[1:]), start=1):
        if isinstance(current, DropoutLayer) and isinstance(following, DropoutLayer):
            errors.append(
                f"Consecutive dropout layers are not recommended (positions {position} and {position + 1})"
            )

    last = layers[-1] if layers else None
    if isinstance(last, DenseLayer) and num_classes is not None and last.units != num_classes:
        errors.append(f"Output layer should have {num_classes} units to match {num_classes} classes (has {last.units})")

    dense_layers = [layer for layer in layers if isinstance(layer, DenseLayer)]
    if len(layers) > 1 and dense_layers and dense_layers[-1].activation != "softmax":
        warnings.append("Output layer should typically use softmax activation for classification")

    # Shapes and sizes are meaningless until every layer's parameters are valid.
    if not bad_params:
        trace = trace_shapes(layers)
        if trace.error:
            errors.append(trace.error)

        total = estimate_parameters(layers).total
        if total > LARGE_MODEL_PARAMS:
            warnings.append("Very large model - may be slow to train")
        elif total < SMALL_MODEL_PARAMS:
            warnings.append("Very small model - may underfit the data")

    if len(dense_layers) == 1:
        suggestions.append("Consider adding hidden layers for better performance")
    if len(dense_layers) > 2 and not any(isinstance(layer, DropoutLayer) for layer in layers):
        suggestions.append("Consider adding dropout layers to prevent overfitting")

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings), suggestions=tuple(suggestions))
