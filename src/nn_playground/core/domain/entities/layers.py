from __future__ import annotations

import json
import math
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any, ClassVar, Union

__all__ = [
    "ACTIVATIONS",
    "KERNEL_INITIALIZERS",
    "PADDINGS",
    "InputLayer",
    "DenseLayer",
    "DropoutLayer",
    "Conv2DLayer",
    "MaxPooling2DLayer",
    "FlattenLayer",
    "UnknownLayer",
    "Layer",
    "LAYER_TYPES",
    "layer_from_dict",
    "layer_to_dict",
    "params_of",
    "sanitize_param_value",
    "with_params",
    "as_pair",
    "window_output_length",
    "resolve_input_shape",
    "layer_output_shape",
]

ACTIVATIONS = frozenset(
    {
        "relu",
        "sigmoid",
        "tanh",
        "softmax",
        "linear",
        "elu",
        "selu",
        "softplus",
        "softsign",
        "swish",
        "mish",
    }
)

KERNEL_INITIALIZERS = frozenset(
    {
        "glorotUniform",
        "glorotNormal",
        "heUniform",
        "heNormal",
        "leCunUniform",
        "leCunNormal",
        "zeros",
        "ones",
        "randomUniform",
        "randomNormal",
        "truncatedNormal",
        "varianceScaling",
    }
)

PADDINGS = frozenset({"valid", "same"})


def _new_id(kind: str) -> str:
    return f"{kind}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class InputLayer:
    """Carries shape information only; never becomes a model layer."""

    type: ClassVar[str] = "input"

    shape: tuple[int, ...] = (28, 28)
    id: str = field(default_factory=lambda: _new_id("input"))

    @property
    def units(self) -> int:
        return math.prod(self.shape)


@dataclass(frozen=True)
class DenseLayer:
    type: ClassVar[str] = "dense"

    units: int = 128
    activation: str = "relu"
    use_bias: bool = True
    kernel_initializer: str = "glorotUniform"
    id: str = field(default_factory=lambda: _new_id("dense"))


@dataclass(frozen=True)
class DropoutLayer:
    type: ClassVar[str] = "dropout"

    rate: float = 0.2
    id: str = field(default_factory=lambda: _new_id("dropout"))


@dataclass(frozen=True)
class Conv2DLayer:
    type: ClassVar[str] = "conv2d"

    filters: int = 32
    kernel_size: int | tuple[int, int] = 3
    strides: int | tuple[int, int] = 1
    padding: str = "same"
    activation: str = "relu"
    use_bias: bool = True
    kernel_initializer: str = "glorotUniform"
    id: str = field(default_factory=lambda: _new_id("conv2d"))


@dataclass(frozen=True)
class MaxPooling2DLayer:
    type: ClassVar[str] = "maxpooling2d"

    pool_size: int | tuple[int, int] = 2
    strides: int | tuple[int, int] = 2
    padding: str = "valid"
    id: str = field(default_factory=lambda: _new_id("maxpooling2d"))


@dataclass(frozen=True)
class FlattenLayer:
    type: ClassVar[str] = "flatten"

    id: str = field(default_factory=lambda: _new_id("flatten"))


@dataclass(frozen=True, eq=False)
class UnknownLayer:
    """A layer tag this package does not understand (kept so it can be skipped)."""

    type: str
    params: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: _new_id("layer"))


Layer = Union[InputLayer, DenseLayer, DropoutLayer, Conv2DLayer, MaxPooling2DLayer, FlattenLayer, UnknownLayer]

LAYER_TYPES: dict[str, type] = {
    cls.type: cls
    for cls in (InputLayer, DenseLayer, DropoutLayer, Conv2DLayer, MaxPooling2DLayer, FlattenLayer)
}

# The designer's output layer is a dense layer with its own palette entry.
_TYPE_ALIASES = {"output": "dense"}

# Keys that designer payloads carry but that have no effect on the network.
_IGNORED_KEYS = frozenset({"name", "position", "label"})

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(name: str) -> str:
    return _CAMEL.sub("_", name).lower()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


_NUMERIC_PARAMS = frozenset({"units", "filters", "kernel_size", "strides", "pool_size", "rate", "shape"})
_BOOLEAN_PARAMS = frozenset({"use_bias"})


def sanitize_param_value(name: str, value: Any) -> Any:
    """Coerce a form-style value to the type parameter `name` expects.

    `"64"` becomes 64, `"0.5"` 0.5, `"true"` True and `"[3, 3]"` or `[3, 3]`
    the tuple (3, 3). Values that do not parse are returned unchanged so
    validation can report them.
    """

    if isinstance(value, (list, tuple)):
        return tuple(sanitize_param_value(name, item) for item in value)
    if not isinstance(value, str):
        return value

    text = value.strip()
    if text.startswith("[") and text.endswith("]"):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return value
        return sanitize_param_value(name, parsed) if isinstance(parsed, list) else value
    if name in _NUMERIC_PARAMS:
        for convert in (int, float):
            try:
                return convert(text)
            except ValueError:
                continue
    if name in _BOOLEAN_PARAMS and text in ("true", "false"):
        return text == "true"
    return value


def _sanitize(params: Mapping[str, Any]) -> dict[str, Any]:
    sanitized = {}
    for key, value in params.items():
        name = _snake(key)
        sanitized[name] = sanitize_param_value(name, value)
    return sanitized


def params_of(layer: Layer) -> dict[str, Any]:
    """Type-specific parameters of a layer (everything except its id)."""

    if isinstance(layer, UnknownLayer):
        return dict(layer.params)
    return {f.name: getattr(layer, f.name) for f in fields(layer) if f.name != "id"}


def with_params(layer: Layer, **params: Any) -> Layer:
    """Return a copy of `layer` with some parameters replaced.

    camelCase names and form strings (see `sanitize_param_value`) are
    accepted. Unknown parameter names raise ValueError; bad values are left
    for validation.
    """

    params = _sanitize(params)
    if isinstance(layer, UnknownLayer):
        return replace(layer, params={**layer.params, **params})
    if isinstance(layer, InputLayer):
        if "units" in params:
            params["shape"] = params.pop("units")
        if "shape" in params and not isinstance(params["shape"], tuple):
            params["shape"] = (params["shape"],)

    allowed = set(params_of(layer))
    unknown = sorted(set(params) - allowed)
    if unknown:
        raise ValueError(f"{layer.type} layer has no parameter(s): {', '.join(unknown)}")
    return replace(layer, **params)


def layer_from_dict(data: Mapping[str, Any]) -> Layer:
    """Build a layer from a designer payload.

    Accepts both `{"id": ..., "type": "dense", "params": {"units": 10}}` and the
    flat `{"type": "dense", "units": 10}`. An input layer may be given by
    `units` (a flat feature vector) or by `shape`/`inputShape`.
    """

    data = dict(data)
    if "type" not in data:
        raise ValueError(f"Layer definition without a 'type': {data!r}")
    kind = str(data.pop("type"))
    layer_id = data.pop("id", None)
    params = dict(data.pop("params", None) or {})
    params.update(data)
    params = _sanitize({k: v for k, v in params.items() if k not in _IGNORED_KEYS})
    id_kwargs = {"id": str(layer_id)} if layer_id else {}

    cls = LAYER_TYPES.get(_TYPE_ALIASES.get(kind.lower(), kind.lower()))
    if cls is None:
        return UnknownLayer(type=kind, params=params, **id_kwargs)

    if cls is InputLayer:
        if "input_shape" in params:
            params["shape"] = sanitize_param_value("shape", params.pop("input_shape"))
        if "units" in params:
            params["shape"] = params.pop("units")
        if "shape" in params and not isinstance(params["shape"], tuple):
            params["shape"] = (params["shape"],)

    allowed = {f.name for f in fields(cls)} - {"id"}
    unknown = sorted(set(params) - allowed)
    if unknown:
        raise ValueError(f"{kind} layer has no parameter(s): {', '.join(unknown)}")
    return cls(**params, **id_kwargs)


def layer_to_dict(layer: Layer) -> dict[str, Any]:
    params = {_camel(k): list(v) if isinstance(v, tuple) else v for k, v in params_of(layer).items()}
    return {"id": layer.id, "type": layer.type, "params": params}


def as_pair(value: int | tuple[int, ...]) -> tuple[int, int]:
    if isinstance(value, (tuple, list)):
        if len(value) != 2:
            raise ValueError(f"expected an int or a pair, got {value!r}")
        return int(value[0]), int(value[1])
    return int(value), int(value)


def window_output_length(length: int, window: int, stride: int, padding: str) -> int:
    """Output length of a sliding window along one axis (Keras semantics)."""

    if stride <= 0:
        raise ValueError(f"strides must be positive, got {stride}")
    if padding == "same":
        return -(-length // stride)
    return max(0, (length - window) // stride + 1)


def resolve_input_shape(input_layer: InputLayer, first_layer: Layer | None) -> tuple[int, ...]:
    """Input shape (without batch) attached to the first translated layer.

    A dense first layer consumes the flattened feature vector; spatial layers
    on a 2-D shape get a single channel appended.
    """

    shape = tuple(input_layer.shape)
    if isinstance(first_layer, DenseLayer):
        return (input_layer.units,)
    if isinstance(first_layer, (Conv2DLayer, MaxPooling2DLayer)) and len(shape) == 2:
        return (*shape, 1)
    return shape


def layer_output_shape(layer: Layer, shape: tuple[int, ...]) -> tuple[int, ...]:
    """Shape (without batch) produced by `layer` from an input of `shape`."""

    if isinstance(layer, DenseLayer):
        return (*shape[:-1], int(layer.units))
    if isinstance(layer, FlattenLayer):
        return (math.prod(shape),)
    if isinstance(layer, (Conv2DLayer, MaxPooling2DLayer)):
        if len(shape) != 3:
            raise ValueError(f"{layer.type} expects a (height, width, channels) input, got {shape}")
        window = as_pair(layer.kernel_size if isinstance(layer, Conv2DLayer) else layer.pool_size)
        strides = as_pair(layer.strides)
        h = window_output_length(shape[0], window[0], strides[0], layer.padding)
        w = window_output_length(shape[1], window[1], strides[1], layer.padding)
        channels = layer.filters if isinstance(layer, Conv2DLayer) else shape[2]
        return (h, w, int(channels))
    return tuple(shape)
