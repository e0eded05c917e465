from __future__ import annotations

import numpy as np

from nn_playground.adapters.right.data_loaders.text import TextDataset, sample_words
from nn_playground.core.domain.entities.dataset import DatasetMetadata

AG_NEWS_CLASS_NAMES = ("World", "Sports", "Business", "Science/Tech")

CATEGORY_WORDS = (
    (
        "country", "government", "president", "minister", "election", "policy",
        "international", "summit", "treaty", "diplomacy", "conflict", "peace",
    ),
    (
        "game", "player", "team", "score", "championship", "tournament",
        "match", "victory", "defeat", "season", "league", "coach",
    ),
    (
        "company", "market", "stock", "investment", "profit", "revenue",
        "CEO", "merger", "acquisition", "economy", "finance", "growth",
    ),
    (
        "technology", "research", "scientist", "study", "discovery", "innovation",
        "software", "AI", "data", "experiment", "breakthrough", "development",
    ),
)
COMMON_WORDS = (
    "the", "and", "of", "to", "in", "a", "is", "that", "for", "with",
    "on", "as", "by", "at", "from", "has", "was", "are", "been", "will",
)


class AgNewsDataset(TextDataset):
    """Synthetic 4-class news topics; example i belongs to category i % 4."""

    def __init__(
        self,
        *,
        train_size: int = 20_000,
        test_size: int = 5_000,
        max_length: int = 150,
        vocab_size: int = 10_000,
        seed: int | None = None,
    ) -> None:
        super().__init__(
            DatasetMetadata(
                name="AG News",
                description="4-class news categorization dataset",
                input_shape=(max_length,),
                channels=1,
                num_classes=len(AG_NEWS_CLASS_NAMES),
                train_size=train_size,
                test_size=test_size,
                class_names=AG_NEWS_CLASS_NAMES,
            ),
            vocab_size=vocab_size,
            seed=seed,
        )

    def _generate_texts(self, count: int, rng: np.random.Generator) -> tuple[list[str], list[int]]:
        texts = []
        labels = []
        for i in range(count):
            category = i % len(CATEGORY_WORDS)
            texts.append(
                sample_words(
                    rng,
                    length=int(rng.integers(30, 60)),
                    topical=CATEGORY_WORDS[category],
                    filler=COMMON_WORDS,
                )
            )
            labels.append(category)
        return texts, labels
