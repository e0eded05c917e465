from __future__ import annotations

from dataclasses import dataclass

from nn_playground.core.domain.commands.compile import CompileCommand
from nn_playground.core.domain.entities.dataset import DatasetLoadOptions


@dataclass(frozen=True)
class TrainCommand:
    """Intent to train a compiled architecture on a dataset."""

    epochs: int = 10
    batch_size: int = 32
    seed: int = 0

    # Fraction of the training split held out (from its end) for val_ metrics.
    validation_split: float = 0.2
    shuffle: bool = True

    # Dataset loading
    train_sample_ratio: float = 1.0
    test_sample_ratio: float = 1.0
    cache: bool = True

    # None: the architecture's own compile settings, else Adam(1e-3).
    compile_command: CompileCommand | None = None

    def load_options(self) -> DatasetLoadOptions:
        return DatasetLoadOptions(
            shuffle=self.shuffle,
            seed=self.seed,
            train_sample_ratio=self.train_sample_ratio,
            test_sample_ratio=self.test_sample_ratio,
            cache=self.cache,
        )
