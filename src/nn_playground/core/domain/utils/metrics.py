from __future__ import annotations

from collections.abc import Callable

import jax
import jax.numpy as jnp
import optax

# Models end in their own activation (softmax, sigmoid, ...), so losses take
# probabilities, not logits, and clip them away from 0 and 1.
EPSILON = 1e-7

LossFn = Callable[[jax.Array, jax.Array], jax.Array]


def categorical_crossentropy(y_pred: jax.Array, y_true: jax.Array) -> jax.Array:
    # log of normalised probabilities is a valid logit vector for Optax.
    probs = jnp.clip(y_pred / jnp.sum(y_pred, axis=-1, keepdims=True), EPSILON, 1.0 - EPSILON)
    return jnp.mean(optax.softmax_cross_entropy(logits=jnp.log(probs), labels=y_true))


def binary_crossentropy(y_pred: jax.Array, y_true: jax.Array) -> jax.Array:
    probs = jnp.clip(y_pred, EPSILON, 1.0 - EPSILON)
    logits = jnp.log(probs) - jnp.log1p(-probs)
    return jnp.mean(optax.sigmoid_binary_cross_entropy(logits, y_true))


def mean_squared_error(y_pred: jax.Array, y_true: jax.Array) -> jax.Array:
    return jnp.mean(optax.squared_error(y_pred, y_true))


def mean_absolute_error(y_pred: jax.Array, y_true: jax.Array) -> jax.Array:
    return jnp.mean(jnp.abs(y_pred - y_true))


def categorical_accuracy(y_pred: jax.Array, y_true: jax.Array) -> jax.Array:
    return jnp.mean(jnp.argmax(y_pred, axis=-1) == jnp.argmax(y_true, axis=-1))


def binary_accuracy(y_pred: jax.Array, y_true: jax.Array) -> jax.Array:
    return jnp.mean((y_pred > 0.5) == (y_true > 0.5))


LOSSES: dict[str, LossFn] = {
    "categorical_crossentropy": categorical_crossentropy,
    "binary_crossentropy": binary_crossentropy,
    "mean_squared_error": mean_squared_error,
}

# Metric tracked alongside each loss; logged under the given key.
LOSS_METRICS: dict[str, tuple[str, LossFn]] = {
    "categorical_crossentropy": ("accuracy", categorical_accuracy),
    "binary_crossentropy": ("accuracy", binary_accuracy),
    "mean_squared_error": ("mae", mean_absolute_error),
}
