from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Sequence

PAD_ID = 0
OOV_ID = 1
PAD_TOKEN = "<PAD>"
OOV_TOKEN = "<OOV>"

_PUNCTUATION = re.compile(r"[^\w\s]")


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, split on whitespace."""

    return _PUNCTUATION.sub("", text.lower()).split()


class Tokenizer:
    """Word -> id vocabulary for the text datasets.

    Id 0 is padding, id 1 is out-of-vocabulary, known words start at 2 in
    descending corpus frequency (ties keep first-seen order).
    """

    def __init__(self, vocab_size: int = 10_000) -> None:
        if vocab_size < 2:
            raise ValueError(f"vocab_size must be >= 2, got {vocab_size}")
        self.vocab_size = vocab_size
        self._word_index: dict[str, int] = {}

    @property
    def word_index(self) -> dict[str, int]:
        return {PAD_TOKEN: PAD_ID, OOV_TOKEN: OOV_ID, **self._word_index}

    @property
    def index_word(self) -> dict[int, str]:
        return {i: w for w, i in self.word_index.items()}

    def fit_on_texts(self, texts: Iterable[str]) -> None:
        # Counter keeps insertion order and sorted() is stable, so equal counts stay first-seen first.
        counts = Counter(word for text in texts for word in tokenize(text))
        ranked = sorted(counts.items(), key=lambda item: -item[1])[: self.vocab_size - 2]
        self._word_index = {word: i for i, (word, _) in enumerate(ranked, start=2)}

    def texts_to_sequences(self, texts: Iterable[str]) -> list[list[int]]:
        return [[self._word_index.get(word, OOV_ID) for word in tokenize(text)] for text in texts]

    def sequences_to_texts(self, sequences: Iterable[Sequence[int]]) -> list[str]:
        index_word = self.index_word
        return [
            " ".join(index_word.get(int(i), OOV_TOKEN) for i in sequence if int(i) != PAD_ID)
            for sequence in sequences
        ]

    @staticmethod
    def pad_sequences(sequences: Iterable[Sequence[int]], max_length: int) -> list[list[int]]:
        """Right-truncate to `max_length`, right-pad with 0."""

        return [list(seq[:max_length]) + [PAD_ID] * max(0, max_length - len(seq)) for seq in sequences]
