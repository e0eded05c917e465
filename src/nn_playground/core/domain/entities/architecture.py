from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Literal

from nn_playground.core.domain.commands.compile import CompileCommand
from nn_playground.core.domain.entities.dataset import DatasetMetadata
from nn_playground.core.domain.entities.layers import (
    Conv2DLayer,
    DenseLayer,
    DropoutLayer,
    FlattenLayer,
    InputLayer,
    Layer,
    MaxPooling2DLayer,
    layer_from_dict,
    with_params,
)
from nn_playground.core.domain.utils.estimator import ParameterSummary, estimate_parameters
from nn_playground.core.domain.utils.validation import ValidationResult, validate_architecture

__all__ = ["Architecture"]

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]


class Architecture:
    """Ordered layer list edited by the designer.

    Every mutation builds a candidate list, re-validates the whole sequence
    and recomputes the parameter summary before the candidate replaces the
    current layers. Structural moves that would displace the input layer
    are refused (the method returns False and nothing changes).
    """

    def __init__(
        self,
        layers: Iterable[Layer] | None = None,
        *,
        num_classes: int | None = None,
        compile_command: CompileCommand | None = None,
    ) -> None:
        candidate: list[Layer] = list(layers) if layers is not None else [InputLayer(shape=(784,))]
        ids = [layer.id for layer in candidate]
        if len(ids) != len(set(ids)):
            raise ValueError("layer ids must be unique")
        self._num_classes = num_classes
        self.compile_command = compile_command
        self._commit(candidate)

    @classmethod
    def from_dicts(
        cls,
        rows: Iterable[Mapping[str, Any]],
        *,
        num_classes: int | None = None,
        compile_command: CompileCommand | None = None,
    ) -> Architecture:
        return cls(
            [layer_from_dict(row) for row in rows],
            num_classes=num_classes,
            compile_command=compile_command,
        )

    @classmethod
    def default_for(cls, metadata: DatasetMetadata) -> Architecture:
        """Fixed architecture used when nothing was designed.

        Images get a small CNN, token sequences a one-hidden-layer MLP.
        """

        n = metadata.num_classes
        if metadata.is_sequence:
            layers: list[Layer] = [
                InputLayer(shape=metadata.input_shape),
                DenseLayer(units=64, activation="relu"),
                DropoutLayer(rate=0.2),
                DenseLayer(units=n, activation="softmax"),
            ]
        else:
            layers = [
                InputLayer(shape=(*metadata.input_shape, metadata.channels)),
                Conv2DLayer(filters=32, kernel_size=3, padding="valid"),
                MaxPooling2DLayer(pool_size=2, strides=2),
                Conv2DLayer(filters=64, kernel_size=3, padding="valid"),
                MaxPooling2DLayer(pool_size=2, strides=2),
                FlattenLayer(),
                DropoutLayer(rate=0.2),
                DenseLayer(units=128, activation="relu"),
                DenseLayer(units=n, activation="softmax"),
            ]
        return cls(layers, num_classes=n)

    # Read-only views

    @property
    def layers(self) -> tuple[Layer, ...]:
        return tuple(self._layers)

    @property
    def input_layer(self) -> InputLayer | None:
        first = self._layers[0] if self._layers else None
        return first if isinstance(first, InputLayer) else None

    @property
    def num_classes(self) -> int | None:
        return self._num_classes

    @property
    def validation(self) -> ValidationResult:
        return self._validation

    @property
    def summary(self) -> ParameterSummary:
        return self._summary

    @property
    def is_valid(self) -> bool:
        return self._validation.is_valid

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(tuple(self._layers))

    def get(self, layer_id: str) -> Layer | None:
        index = self._index_of(layer_id)
        return None if index is None else self._layers[index]

    # Mutations

    def set_num_classes(self, num_classes: int | None) -> None:
        validation = validate_architecture(self._layers, num_classes=num_classes)
        self._num_classes = num_classes
        self._validation = validation

    def add(self, layer: Layer, *, after_id: str | None = None) -> bool:
        """Insert `layer` after `after_id`, or at the end when `after_id` is
        None or unknown.

        An input layer is only accepted when none exists; it goes to index 0.
        """

        if self._index_of(layer.id) is not None:
            raise ValueError(f"duplicate layer id: {layer.id}")

        candidate = list(self._layers)
        if isinstance(layer, InputLayer):
            if any(isinstance(existing, InputLayer) for existing in candidate):
                logger.debug("Refusing to add a second input layer")
                return False
            candidate.insert(0, layer)
            self._commit(candidate)
            return True

        after = None if after_id is None else self._index_of(after_id)
        if after_id is not None and after is None:
            logger.debug("Unknown layer %s, appending %s at the end", after_id, layer.id)
        index = len(candidate) if after is None else after + 1
        if index == 0:
            return False

        candidate.insert(index, layer)
        self._commit(candidate)
        return True

    def update(self, layer_id: str, **params: Any) -> bool:
        index = self._index_of(layer_id)
        if index is None:
            return False
        candidate = list(self._layers)
        candidate[index] = with_params(candidate[index], **params)
        self._commit(candidate)
        return True

    def delete(self, layer_id: str) -> bool:
        index = self._index_of(layer_id)
        if index is None or isinstance(self._layers[index], InputLayer):
            return False
        candidate = list(self._layers)
        del candidate[index]
        self._commit(candidate)
        return True

    def move(self, layer_id: str, direction: Direction) -> bool:
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        index = self._index_of(layer_id)
        if index is None or isinstance(self._layers[index], InputLayer):
            return False

        target = index - 1 if direction == "up" else index + 1
        # Position 0 belongs to the input layer.
        if index == 0 or target <= 0 or target >= len(self._layers):
            return False

        candidate = list(self._layers)
        candidate[index], candidate[target] = candidate[target], candidate[index]
        self._commit(candidate)
        return True

    def describe(self) -> str:
        lines = [
            "Neural Network Architecture:",
            f"- Total Layers: {len(self._layers)}",
            f"- Parameters: {self._summary.total:,}",
            f"- Memory: {self._summary.memory.formatted['total']}",
            "",
            "Layer Details:",
        ]
        for position, layer in enumerate(self._layers, start=1):
            lines.append(f"{position}. {layer.type.capitalize()}{_layer_detail(layer)}")
        return "\n".join(lines) + "\n"

    def _index_of(self, layer_id: str) -> int | None:
        for index, layer in enumerate(self._layers):
            if layer.id == layer_id:
                return index
        return None

    def _commit(self, layers: list[Layer]) -> None:
        """Validate and measure `layers`, then make them current."""

        validation = validate_architecture(layers, num_classes=self._num_classes)
        summary = estimate_parameters(layers)
        self._layers, self._validation, self._summary = layers, validation, summary


def _layer_detail(layer: Layer) -> str:
    if isinstance(layer, InputLayer):
        try:
            return f" ({layer.units} features)"
        except TypeError:
            return f" (shape {layer.shape})"
    if isinstance(layer, DenseLayer):
        return f" ({layer.units} units, {layer.activation})"
    if isinstance(layer, DropoutLayer):
        if isinstance(layer.rate, (int, float)):
            return f" ({layer.rate * 100:.0f}% rate)"
        return f" (rate {layer.rate!r})"
    if isinstance(layer, Conv2DLayer):
        return f" ({layer.filters} filters, {layer.activation})"
    if isinstance(layer, MaxPooling2DLayer):
        return f" (pool {layer.pool_size})"
    return ""
