from __future__ import annotations

import numpy as np

from nn_playground.adapters.right.data_loaders.text import TextDataset, sample_words
from nn_playground.core.domain.entities.dataset import DatasetMetadata

POSITIVE_WORDS = (
    "amazing", "excellent", "fantastic", "wonderful", "great", "love", "perfect",
    "brilliant", "outstanding", "superb", "masterpiece", "enjoyable", "recommend",
)
NEGATIVE_WORDS = (
    "terrible", "awful", "horrible", "bad", "worst", "hate", "boring",
    "disappointing", "waste", "poor", "ridiculous", "avoid", "dull",
)
NEUTRAL_WORDS = (
    "movie", "film", "acting", "story", "plot", "characters", "scenes",
    "director", "production", "performance", "cinematography", "script",
)


class ImdbDataset(TextDataset):
    """Synthetic binary sentiment reviews; even indices are positive."""

    def __init__(
        self,
        *,
        train_size: int = 20_000,
        test_size: int = 5_000,
        max_length: int = 200,
        vocab_size: int = 10_000,
        seed: int | None = None,
    ) -> None:
        super().__init__(
            DatasetMetadata(
                name="IMDB Movie Reviews",
                description="Binary sentiment classification of movie reviews",
                input_shape=(max_length,),
                channels=1,
                num_classes=2,
                train_size=train_size,
                test_size=test_size,
                class_names=("Negative", "Positive"),
            ),
            vocab_size=vocab_size,
            seed=seed,
        )

    def _generate_texts(self, count: int, rng: np.random.Generator) -> tuple[list[str], list[int]]:
        texts = []
        labels = []
        for i in range(count):
            positive = i % 2 == 0
            texts.append(
                sample_words(
                    rng,
                    length=int(rng.integers(20, 50)),
                    topical=POSITIVE_WORDS if positive else NEGATIVE_WORDS,
                    filler=NEUTRAL_WORDS,
                )
            )
            labels.append(1 if positive else 0)
        return texts, labels
