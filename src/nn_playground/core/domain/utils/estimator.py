from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from nn_playground.core.domain.entities.layers import (
    Conv2DLayer,
    DenseLayer,
    InputLayer,
    Layer,
    UnknownLayer,
    as_pair,
    layer_output_shape,
    resolve_input_shape,
)

BYTES_PER_FLOAT = 4
_UNITS = ("B", "KB", "MB", "GB")

# Raised by malformed parameters (zero strides, strings, 3-tuples) while tracing.
_SHAPE_ERRORS = (ValueError, TypeError, ZeroDivisionError)


@dataclass(frozen=True)
class ShapeTrace:
    """Per-layer shapes (without batch) for a layer sequence.

    `shapes[i]` is the output of `layers[i]`, or None once tracing failed;
    `error` describes the first layer whose input could not be handled.
    """

    shapes: tuple[tuple[int, ...] | None, ...]
    error: str | None = None


@dataclass(frozen=True)
class MemoryEstimate:
    model_bytes: int
    activation_bytes: int

    @property
    def total_bytes(self) -> int:
        return self.model_bytes + self.activation_bytes

    @property
    def formatted(self) -> dict[str, str]:
        return {
            "model": format_bytes(self.model_bytes),
            "activations": format_bytes(self.activation_bytes),
            "total": format_bytes(self.total_bytes),
        }


@dataclass(frozen=True)
class ParameterSummary:
    total: int
    by_layer: tuple[tuple[str, int], ...]
    memory: MemoryEstimate

    def for_layer(self, layer_id: str) -> int:
        return dict(self.by_layer).get(layer_id, 0)


def format_bytes(num_bytes: int) -> str:
    """Human readable size with 1024 steps, e.g. `397.54 KB`."""

    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(_UNITS) - 1:
        value /= 1024
        i += 1
    return f"{float(f'{value:.2f}'):g} {_UNITS[i]}"


def trace_shapes(layers: Sequence[Layer]) -> ShapeTrace:
    """Trace shapes through `layers`; bad parameters end the trace, never raise."""

    if not layers or not isinstance(layers[0], InputLayer):
        return ShapeTrace(shapes=tuple(None for _ in layers))

    first = next((layer for layer in layers[1:] if not isinstance(layer, UnknownLayer)), None)
    try:
        shape: tuple[int, ...] | None = resolve_input_shape(layers[0], first)
    except _SHAPE_ERRORS as exc:
        return ShapeTrace(shapes=tuple(None for _ in layers), error=f"Layer 1 (input): {exc}")
    shapes: list[tuple[int, ...] | None] = [shape]
    error = None
    for position, layer in enumerate(layers[1:], start=2):
        if shape is not None:
            try:
                shape = layer_output_shape(layer, shape)
            except _SHAPE_ERRORS as exc:
                error = f"Layer {position} ({layer.type}): {exc}"
                shape = None
        shapes.append(shape)
    return ShapeTrace(shapes=tuple(shapes), error=error)


def _count(value: object) -> int:
    """`value` if it is a positive int, else 0."""

    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return 0


def _layer_params(layer: Layer, in_shape: tuple[int, ...] | None) -> int:
    if isinstance(layer, DenseLayer):
        in_features = _count(in_shape[-1]) if in_shape else 0
        units = _count(layer.units)
        return in_features * units + (units if layer.use_bias else 0)
    if isinstance(layer, Conv2DLayer):
        in_channels = _count(in_shape[-1]) if in_shape else 0
        filters = _count(layer.filters)
        try:
            kh, kw = as_pair(layer.kernel_size)
        except _SHAPE_ERRORS:
            return 0
        return max(kh, 0) * max(kw, 0) * in_channels * filters + (filters if layer.use_bias else 0)
    return 0


def estimate_parameters(layers: Sequence[Layer]) -> ParameterSummary:
    """Count trainable parameters and estimate memory without building a model.

    Dense: in_features * units + units, where in_features is the last axis of
    the incoming shape (the previous layer's units for a plain MLP).
    Conv2D: kh * kw * in_channels * filters + filters. Everything else is free.
    Memory is params * 4 bytes plus the widest dense activation * 4 bytes.
    """

    trace = trace_shapes(layers)
    by_layer: list[tuple[str, int]] = []
    previous: tuple[int, ...] | None = None
    for layer, shape in zip(layers, trace.shapes):
        by_layer.append((layer.id, _layer_params(layer, previous)))
        # Past a shape error, keep counting dense layers from the previous width.
        previous = shape if shape is not None else _fallback_shape(layer, previous)

    total = sum(count for _, count in by_layer)
    widest = max((_count(layer.units) for layer in layers if isinstance(layer, DenseLayer)), default=0)
    memory = MemoryEstimate(model_bytes=total * BYTES_PER_FLOAT, activation_bytes=widest * BYTES_PER_FLOAT)
    return ParameterSummary(total=total, by_layer=tuple(by_layer), memory=memory)


def _fallback_shape(layer: Layer, previous: tuple[int, ...] | None) -> tuple[int, ...] | None:
    if isinstance(layer, DenseLayer):
        return (_count(layer.units),)
    if isinstance(layer, InputLayer):
        try:
            return (_count(layer.units),)
        except TypeError:
            return None
    return previous
