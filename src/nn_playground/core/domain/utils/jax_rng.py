from __future__ import annotations

import jax


def model_keys(seed: int) -> tuple[jax.Array, jax.Array]:
    """(params_key, dropout_key) derived from one integer seed."""

    params_key, dropout_key = jax.random.split(jax.random.PRNGKey(seed))
    return params_key, dropout_key


def fold_in_step(key: jax.Array, step: int) -> jax.Array:
    """Derive a deterministic per-step key."""

    return jax.random.fold_in(key, step)
