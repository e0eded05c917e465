from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import jax
import jax.numpy as jnp
import numpy as np
import optax
from jax import lax

from nn_playground.core.domain.entities.layers import as_pair, window_output_length
from nn_playground.core.domain.errors.training import TrainingError
from nn_playground.core.domain.utils.arrays import iter_minibatches
from nn_playground.core.domain.utils.jax_rng import fold_in_step, model_keys
from nn_playground.core.domain.utils.metrics import LOSS_METRICS, LOSSES

Params = Any  # JAX pytree
Initializer = Callable[..., jax.Array]
EpochCallback = Callable[[int, dict[str, float]], None]


def _mish(x: jax.Array) -> jax.Array:
    return x * jnp.tanh(jax.nn.softplus(x))


ACTIVATION_FNS: dict[str, Callable[[jax.Array], jax.Array]] = {
    "relu": jax.nn.relu,
    "sigmoid": jax.nn.sigmoid,
    "tanh": jnp.tanh,
    "softmax": lambda x: jax.nn.softmax(x, axis=-1),
    "linear": lambda x: x,
    "elu": jax.nn.elu,
    "selu": jax.nn.selu,
    "softplus": jax.nn.softplus,
    "softsign": jax.nn.soft_sign,
    "swish": jax.nn.swish,
    "mish": _mish,
}


def _uniform(key: jax.Array, shape: tuple[int, ...], dtype: Any = jnp.float32) -> jax.Array:
    return jax.random.uniform(key, shape, dtype, minval=-0.05, maxval=0.05)


INITIALIZERS: dict[str, Initializer] = {
    "glorotUniform": jax.nn.initializers.glorot_uniform(),
    "glorotNormal": jax.nn.initializers.glorot_normal(),
    "heUniform": jax.nn.initializers.he_uniform(),
    "heNormal": jax.nn.initializers.he_normal(),
    "leCunUniform": jax.nn.initializers.lecun_uniform(),
    "leCunNormal": jax.nn.initializers.lecun_normal(),
    "zeros": jax.nn.initializers.zeros,
    "ones": jax.nn.initializers.ones,
    "randomUniform": _uniform,
    "randomNormal": jax.nn.initializers.normal(stddev=0.05),
    "truncatedNormal": jax.nn.initializers.truncated_normal(stddev=0.05),
    "varianceScaling": jax.nn.initializers.variance_scaling(1.0, "fan_in", "truncated_normal"),
}


class LayerFns(Protocol):
    """Pure functions for one layer.

    Implementations must be JAX-compatible (jit/vmap friendly).
    """

    def output_shape(self, input_shape: tuple[int, ...]) -> tuple[int, ...]: ...

    def init(self, *, key: jax.Array, input_shape: tuple[int, ...]) -> Params: ...

    def apply(self, params: Params, x: jax.Array, *, is_training: bool, key: jax.Array | None) -> jax.Array: ...


@dataclass(frozen=True)
class DenseFns:
    """Fully connected layer over the last axis."""

    units: int
    activation: str = "relu"
    use_bias: bool = True
    kernel_initializer: str = "glorotUniform"

    def output_shape(self, input_shape: tuple[int, ...]) -> tuple[int, ...]:
        return (*input_shape[:-1], self.units)

    def init(self, *, key: jax.Array, input_shape: tuple[int, ...]) -> Params:
        w = INITIALIZERS[self.kernel_initializer](key, (input_shape[-1], self.units), jnp.float32)
        params = {"w": w}
        if self.use_bias:
            params["b"] = jnp.zeros((self.units,), dtype=jnp.float32)
        return params

    def apply(self, params: Params, x: jax.Array, *, is_training: bool, key: jax.Array | None) -> jax.Array:
        h = jnp.dot(x, params["w"])
        if "b" in params:
            h = h + params["b"]
        return ACTIVATION_FNS[self.activation](h)


@dataclass(frozen=True)
class DropoutFns:
    rate: float = 0.2

    def output_shape(self, input_shape: tuple[int, ...]) -> tuple[int, ...]:
        return input_shape

    def init(self, *, key: jax.Array, input_shape: tuple[int, ...]) -> Params:
        return {}

    def apply(self, params: Params, x: jax.Array, *, is_training: bool, key: jax.Array | None) -> jax.Array:
        if not is_training or key is None or self.rate <= 0.0:
            return x
        keep = 1.0 - self.rate
        if keep <= 0.0:
            return jnp.zeros_like(x)
        mask = jax.random.bernoulli(key, keep, x.shape)
        return jnp.where(mask, x / keep, 0.0)


@dataclass(frozen=True)
class Conv2DFns:
    """2-D convolution on NHWC inputs with HWIO kernels."""

    filters: int
    kernel_size: tuple[int, int] = (3, 3)
    strides: tuple[int, int] = (1, 1)
    padding: str = "same"
    activation: str = "relu"
    use_bias: bool = True
    kernel_initializer: str = "glorotUniform"

    def output_shape(self, input_shape: tuple[int, ...]) -> tuple[int, ...]:
        h, w, _ = input_shape
        return (
            window_output_length(h, self.kernel_size[0], self.strides[0], self.padding),
            window_output_length(w, self.kernel_size[1], self.strides[1], self.padding),
            self.filters,
        )

    def init(self, *, key: jax.Array, input_shape: tuple[int, ...]) -> Params:
        kernel_shape = (*self.kernel_size, input_shape[-1], self.filters)
        params = {"w": INITIALIZERS[self.kernel_initializer](key, kernel_shape, jnp.float32)}
        if self.use_bias:
            params["b"] = jnp.zeros((self.filters,), dtype=jnp.float32)
        return params

    def apply(self, params: Params, x: jax.Array, *, is_training: bool, key: jax.Array | None) -> jax.Array:
        h = lax.conv_general_dilated(
            x,
            params["w"],
            window_strides=self.strides,
            padding=self.padding.upper(),
            dimension_numbers=("NHWC", "HWIO", "NHWC"),
        )
        if "b" in params:
            h = h + params["b"]
        return ACTIVATION_FNS[self.activation](h)


@dataclass(frozen=True)
class MaxPooling2DFns:
    pool_size: tuple[int, int] = (2, 2)
    strides: tuple[int, int] = (2, 2)
    padding: str = "valid"

    def output_shape(self, input_shape: tuple[int, ...]) -> tuple[int, ...]:
        h, w, c = input_shape
        return (
            window_output_length(h, self.pool_size[0], self.strides[0], self.padding),
            window_output_length(w, self.pool_size[1], self.strides[1], self.padding),
            c,
        )

    def init(self, *, key: jax.Array, input_shape: tuple[int, ...]) -> Params:
        return {}

    def apply(self, params: Params, x: jax.Array, *, is_training: bool, key: jax.Array | None) -> jax.Array:
        return lax.reduce_window(
            x,
            -jnp.inf,
            lax.max,
            (1, *self.pool_size, 1),
            (1, *self.strides, 1),
            self.padding.upper(),
        )


@dataclass(frozen=True)
class FlattenFns:
    def output_shape(self, input_shape: tuple[int, ...]) -> tuple[int, ...]:
        return (math.prod(input_shape),)

    def init(self, *, key: jax.Array, input_shape: tuple[int, ...]) -> Params:
        return {}

    def apply(self, params: Params, x: jax.Array, *, is_training: bool, key: jax.Array | None) -> jax.Array:
        return jnp.reshape(x, (x.shape[0], -1))


def conv2d_fns(*, filters: int, kernel_size: Any, strides: Any, **kwargs: Any) -> Conv2DFns:
    return Conv2DFns(filters=filters, kernel_size=as_pair(kernel_size), strides=as_pair(strides), **kwargs)


def max_pooling2d_fns(*, pool_size: Any, strides: Any, padding: str) -> MaxPooling2DFns:
    return MaxPooling2DFns(pool_size=as_pair(pool_size), strides=as_pair(strides), padding=padding)


@dataclass(frozen=True)
class SequentialModel:
    """Layers applied strictly in order; `input_shape` excludes the batch axis."""

    layers: tuple[LayerFns, ...]
    input_shape: tuple[int, ...]
    names: tuple[str, ...] = ()

    def layer_shapes(self) -> list[tuple[int, ...]]:
        shapes = []
        shape = self.input_shape
        for fns in self.layers:
            shape = fns.output_shape(shape)
            shapes.append(shape)
        return shapes

    @property
    def output_shape(self) -> tuple[int, ...]:
        shapes = self.layer_shapes()
        return shapes[-1] if shapes else self.input_shape

    def init(self, key: jax.Array) -> list[Params]:
        keys = jax.random.split(key, max(1, len(self.layers)))
        params = []
        shape = self.input_shape
        for fns, k in zip(self.layers, keys):
            params.append(fns.init(key=k, input_shape=shape))
            shape = fns.output_shape(shape)
        return params

    def apply(self, params: list[Params], x: jax.Array, *, is_training: bool, key: jax.Array | None = None) -> jax.Array:
        h = jnp.reshape(x, (x.shape[0], *self.input_shape)).astype(jnp.float32)
        keys = jax.random.split(key, max(1, len(self.layers))) if key is not None else [None] * len(self.layers)
        for fns, p, k in zip(self.layers, params, keys):
            h = fns.apply(p, h, is_training=is_training, key=k)
        return h


@dataclass
class History:
    """Per-epoch logs, keyed like Keras (`loss`, `accuracy`, `val_loss`, ...)."""

    epoch: list[int] = field(default_factory=list)
    history: dict[str, list[float]] = field(default_factory=dict)

    def append(self, epoch: int, logs: dict[str, float]) -> None:
        self.epoch.append(epoch)
        for name, value in logs.items():
            self.history.setdefault(name, []).append(value)

    @property
    def last(self) -> dict[str, float]:
        return {name: values[-1] for name, values in self.history.items() if values}


class CompiledModel:
    """A sequential model bound to parameters, an Optax optimizer and a loss.

    Only one `fit` may run at a time; setting `stop_training` (or calling
    `request_stop()`, e.g. from an epoch callback) ends training after the
    current epoch.
    """

    def __init__(
        self,
        *,
        model: SequentialModel,
        params: list[Params],
        optimizer: optax.GradientTransformation,
        loss: str,
        optimizer_name: str = "adam",
        learning_rate: float = 1e-3,
        seed: int = 0,
        skipped_layers: tuple[str, ...] = (),
    ) -> None:
        self.model = model
        self.loss = loss
        self.optimizer_name = optimizer_name
        self.learning_rate = learning_rate
        self.metric_name, metric_fn = LOSS_METRICS[loss]
        self.skipped_layers = skipped_layers
        self.stop_training = False

        self._params = params
        self._optimizer = optimizer
        self._opt_state = optimizer.init(params)
        _, self._dropout_key = model_keys(seed)
        self._global_step = 0
        self._training = False
        self._disposed = False

        loss_fn = LOSSES[loss]

        @jax.jit
        def train_step(p: list[Params], s: optax.OptState, x: jax.Array, y: jax.Array, key: jax.Array):
            def _loss_fn(pp: list[Params]):
                y_pred = model.apply(pp, x, is_training=True, key=key)
                return loss_fn(y_pred, y), y_pred

            (loss_value, y_pred), grads = jax.value_and_grad(_loss_fn, has_aux=True)(p)
            updates, s2 = optimizer.update(grads, s, p)
            p2 = optax.apply_updates(p, updates)
            return p2, s2, loss_value, metric_fn(y_pred, y)

        @jax.jit
        def eval_step(p: list[Params], x: jax.Array, y: jax.Array):
            y_pred = model.apply(p, x, is_training=False)
            return loss_fn(y_pred, y), metric_fn(y_pred, y)

        @jax.jit
        def predict_step(p: list[Params], x: jax.Array) -> jax.Array:
            return model.apply(p, x, is_training=False)

        self._train_step = train_step
        self._eval_step = eval_step
        self._predict_step = predict_step

    @property
    def params(self) -> list[Params]:
        self._check_alive()
        return self._params

    @property
    def is_training(self) -> bool:
        return self._training

    def request_stop(self) -> None:
        self.stop_training = True

    def count_params(self) -> int:
        return int(sum(np.size(leaf) for leaf in jax.tree_util.tree_leaves(self.params)))

    def fit(
        self,
        x: Any,
        y: Any,
        *,
        epochs: int = 1,
        batch_size: int = 32,
        validation_split: float = 0.0,
        shuffle: bool = True,
        seed: int | None = None,
        on_epoch_end: EpochCallback | None = None,
    ) -> History:
        """Train for up to `epochs` epochs.

        The validation slice is the last `validation_split` fraction of the
        rows, taken before shuffling (Keras semantics).
        """

        self._check_alive()
        if self._training:
            raise TrainingError("fit() called while another fit() is running on this model")
        if not 0.0 <= validation_split < 1.0:
            raise TrainingError(f"validation_split must be in [0, 1), got {validation_split}")

        x = np.asarray(x, dtype=np.float32)
        y = np.asarray(y, dtype=np.float32)
        if len(x) != len(y):
            raise TrainingError(f"x has {len(x)} rows but y has {len(y)}")

        n_val = int(len(x) * validation_split)
        n_train = len(x) - n_val
        if n_train <= 0:
            raise TrainingError("no training rows left after the validation split")
        x_train, y_train = x[:n_train], y[:n_train]
        x_val, y_val = x[n_train:], y[n_train:]

        rng = np.random.default_rng(seed)
        history = History()
        self.stop_training = False
        self._training = True
        try:
            for epoch in range(epochs):
                order = rng.permutation(n_train) if shuffle else None
                loss_sum = 0.0
                metric_sum = 0.0
                for idx in iter_minibatches(n_train, batch_size, order=order):
                    key = fold_in_step(self._dropout_key, self._global_step)
                    self._params, self._opt_state, loss_value, metric_value = self._train_step(
                        self._params, self._opt_state, jnp.asarray(x_train[idx]), jnp.asarray(y_train[idx]), key
                    )
                    self._global_step += 1
                    loss_sum += float(loss_value) * len(idx)
                    metric_sum += float(metric_value) * len(idx)

                logs = {"loss": loss_sum / n_train, self.metric_name: metric_sum / n_train}
                if n_val:
                    val = self.evaluate(x_val, y_val, batch_size=batch_size)
                    logs.update({f"val_{name}": value for name, value in val.items()})

                history.append(epoch, logs)
                if on_epoch_end is not None:
                    on_epoch_end(epoch, logs)
                if self.stop_training:
                    break
        finally:
            self._training = False
        return history

    def evaluate(self, x: Any, y: Any, *, batch_size: int = 256) -> dict[str, float]:
        self._check_alive()
        x = np.asarray(x, dtype=np.float32)
        y = np.asarray(y, dtype=np.float32)
        if len(x) == 0:
            raise TrainingError("cannot evaluate on an empty set")

        loss_sum = 0.0
        metric_sum = 0.0
        for idx in iter_minibatches(len(x), batch_size):
            loss_value, metric_value = self._eval_step(self._params, jnp.asarray(x[idx]), jnp.asarray(y[idx]))
            loss_sum += float(loss_value) * len(idx)
            metric_sum += float(metric_value) * len(idx)
        return {"loss": loss_sum / len(x), self.metric_name: metric_sum / len(x)}

    def predict(self, x: Any, *, batch_size: int = 256) -> np.ndarray:
        self._check_alive()
        x = np.asarray(x, dtype=np.float32)
        outputs = [
            np.asarray(self._predict_step(self._params, jnp.asarray(x[idx])))
            for idx in iter_minibatches(len(x), batch_size)
        ]
        if not outputs:
            return np.zeros((0, *self.model.output_shape), dtype=np.float32)
        return np.concatenate(outputs, axis=0)

    def summary(self) -> str:
        self._check_alive()
        lines = [f"{'Layer':<28}{'Output shape':<20}{'Params':>10}"]
        shapes = self.model.layer_shapes()
        names = self.model.names or tuple(type(fns).__name__ for fns in self.model.layers)
        for name, shape, p in zip(names, shapes, self._params):
            count = sum(np.size(leaf) for leaf in jax.tree_util.tree_leaves(p))
            lines.append(f"{name:<28}{str((None, *shape)):<20}{count:>10,}")
        lines.append(f"Total params: {self.count_params():,}")
        lines.append(f"Loss: {self.loss} | optimizer: {self.optimizer_name} (lr={self.learning_rate})")
        return "\n".join(lines)

    def dispose(self) -> None:
        """Release parameter and optimizer buffers. Further use raises TrainingError."""

        if self._disposed:
            return
        if self._training:
            raise TrainingError("cannot dispose a model while fit() is running")
        for leaf in jax.tree_util.tree_leaves((self._params, self._opt_state)):
            if isinstance(leaf, jax.Array) and not leaf.is_deleted():
                leaf.delete()
        self._disposed = True

    def _check_alive(self) -> None:
        if self._disposed:
            raise TrainingError("model has been disposed")
