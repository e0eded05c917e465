from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

OptimizerName = Literal["adam", "adamw", "sgd", "rmsprop"]
LossName = Literal["categorical_crossentropy", "binary_crossentropy", "mean_squared_error"]


@dataclass(frozen=True)
class CompileCommand:
    """Intent to compile an architecture into a trainable model."""

    optimizer: OptimizerName = "adam"
    learning_rate: float = 1e-3

    # None: chosen from the final layer (sigmoid/1 unit, linear, otherwise categorical).
    loss: LossName | None = None

    # Only used by adamw.
    weight_decay: float = 0.0

    # PRNG seed for parameter initialisation.
    seed: int = 0
