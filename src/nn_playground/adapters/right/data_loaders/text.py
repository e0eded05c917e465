from __future__ import annotations

import abc
from collections.abc import Sequence

import numpy as np

from nn_playground.adapters.right.data_loaders.base import Dataset
from nn_playground.core.domain.entities.dataset import DatasetArrays, DatasetMetadata
from nn_playground.core.domain.utils.arrays import one_hot_encode
from nn_playground.core.domain.utils.tokenizer import Tokenizer


def sample_words(
    rng: np.random.Generator,
    *,
    length: int,
    topical: Sequence[str],
    filler: Sequence[str],
    topical_rate: float = 0.3,
) -> str:
    """`length` words, each topical with probability `topical_rate`, filler otherwise."""

    use_topical = rng.random(length) < topical_rate
    topical_pick = rng.integers(len(topical), size=length)
    filler_pick = rng.integers(len(filler), size=length)
    return " ".join(
        topical[t] if flag else filler[f] for flag, t, f in zip(use_topical, topical_pick, filler_pick)
    )


class TextDataset(Dataset):
    """Synthetic text classification: texts -> Tokenizer -> padded id sequences.

    The tokenizer is fitted on the training texts only. Tensors are rank 2,
    `[batch, max_length]`.
    """

    def __init__(
        self,
        metadata: DatasetMetadata,
        *,
        vocab_size: int = 10_000,
        seed: int | None = None,
    ) -> None:
        super().__init__(metadata)
        self.max_length = metadata.input_shape[0]
        self.tokenizer = Tokenizer(vocab_size)
        self._seed = seed

    @abc.abstractmethod
    def _generate_texts(self, count: int, rng: np.random.Generator) -> tuple[list[str], list[int]]:
        """`count` texts with their integer class labels."""

    def example_shape(self) -> tuple[int, ...]:
        return (self.max_length,)

    def _encode(self, texts: Sequence[str]) -> np.ndarray:
        padded = self.tokenizer.pad_sequences(self.tokenizer.texts_to_sequences(texts), self.max_length)
        return np.asarray(padded, dtype=np.float32).reshape(-1)

    def _read_arrays(self) -> DatasetArrays:
        rng = np.random.default_rng(self._seed)
        num_classes = self.metadata.num_classes
        train_texts, train_labels = self._generate_texts(self.metadata.train_size, rng)
        test_texts, test_labels = self._generate_texts(self.metadata.test_size, rng)

        self.tokenizer.fit_on_texts(train_texts)
        return DatasetArrays(
            train_images=self._encode(train_texts),
            train_labels=one_hot_encode(train_labels, num_classes),
            test_images=self._encode(test_texts),
            test_labels=one_hot_encode(test_labels, num_classes),
        )
