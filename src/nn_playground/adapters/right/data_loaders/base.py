from __future__ import annotations

import abc
import logging
import math

from nn_playground.core.domain.entities.dataset import (
    DatasetArrays,
    DatasetLoadOptions,
    DatasetMetadata,
    DatasetTensors,
)
from nn_playground.core.domain.errors.dataset import ConcurrentLoadError, DataUnavailableError
from nn_playground.core.domain.utils.arrays import random_source, shuffle_examples, take_prefix
from nn_playground.core.ports.dataset_provider import DatasetPort

logger = logging.getLogger(__name__)


class Dataset(DatasetPort, abc.ABC):
    """Shared implementation of the dataset contract.

    Subclasses only produce the full, ordered arrays (`_read_arrays`). This
    class keeps that source around, samples a prefix, shuffles, caches and
    reshapes. One instance is meant to be driven by a single caller; the
    loading flag only rejects re-entrant use, it is not a lock.
    """

    def __init__(self, metadata: DatasetMetadata) -> None:
        self._metadata = metadata
        self._source: DatasetArrays | None = None
        self._cached: DatasetArrays | None = None
        self._loading = False

    @property
    def metadata(self) -> DatasetMetadata:
        return self._metadata

    @property
    def is_loading(self) -> bool:
        return self._loading

    def get_metadata(self) -> DatasetMetadata:
        return self._metadata

    @abc.abstractmethod
    def _read_arrays(self) -> DatasetArrays:
        """Return `train_size` + `test_size` examples in source order."""

    def load_data(self, options: DatasetLoadOptions | None = None) -> DatasetArrays:
        options = options or DatasetLoadOptions()
        if options.cache and self._cached is not None:
            return self._cached
        if self._loading:
            raise ConcurrentLoadError(f"{self._metadata.name}: a load is already in progress")

        self._loading = True
        try:
            if self._source is None:
                logger.info("Loading %s", self._metadata.name)
                self._source = self._checked(self._read_arrays())
            arrays = self._sample(self._source, options)
            if options.shuffle:
                arrays = self._shuffle(arrays, options.seed)
        finally:
            self._loading = False

        if options.cache:
            self._cached = arrays
        logger.debug(
            "%s: %d train / %d test examples (shuffle=%s, seed=%s)",
            self._metadata.name,
            arrays.num_train(self._metadata.num_classes),
            arrays.num_test(self._metadata.num_classes),
            options.shuffle,
            options.seed,
        )
        return arrays

    def example_shape(self) -> tuple[int, ...]:
        """Per-example tensor shape; images are (height, width, channels)."""

        return (*self._metadata.input_shape, self._metadata.channels)

    def load_tensors(self, options: DatasetLoadOptions | None = None) -> DatasetTensors:
        arrays = self.load_data(options)
        return DatasetTensors.from_arrays(
            arrays,
            example_shape=self.example_shape(),
            num_classes=self._metadata.num_classes,
        )

    def clear_cache(self) -> None:
        if self._loading:
            raise ConcurrentLoadError(f"{self._metadata.name}: cannot clear the cache while loading")
        self._cached = None
        self._source = None

    def _checked(self, arrays: DatasetArrays) -> DatasetArrays:
        meta = self._metadata
        expected = {
            "train_images": meta.train_size * meta.example_size,
            "train_labels": meta.train_size * meta.num_classes,
            "test_images": meta.test_size * meta.example_size,
            "test_labels": meta.test_size * meta.num_classes,
        }
        for name, size in expected.items():
            actual = len(getattr(arrays, name))
            if actual != size:
                raise DataUnavailableError(f"{meta.name}: {name} has {actual} values, expected {size}")
        return arrays

    def _sample(self, arrays: DatasetArrays, options: DatasetLoadOptions) -> DatasetArrays:
        meta = self._metadata
        n_train = int(math.floor(meta.train_size * options.train_sample_ratio))
        n_test = int(math.floor(meta.test_size * options.test_sample_ratio))
        return DatasetArrays(
            train_images=take_prefix(arrays.train_images, rows=n_train, row_size=meta.example_size),
            train_labels=take_prefix(arrays.train_labels, rows=n_train, row_size=meta.num_classes),
            test_images=take_prefix(arrays.test_images, rows=n_test, row_size=meta.example_size),
            test_labels=take_prefix(arrays.test_labels, rows=n_test, row_size=meta.num_classes),
        )

    def _shuffle(self, arrays: DatasetArrays, seed: int | None) -> DatasetArrays:
        meta = self._metadata
        # Each split starts from a fresh source so a seed gives the same order per split.
        train_images, train_labels = shuffle_examples(
            arrays.train_images,
            arrays.train_labels,
            example_size=meta.example_size,
            num_classes=meta.num_classes,
            random=random_source(seed),
        )
        test_images, test_labels = shuffle_examples(
            arrays.test_images,
            arrays.test_labels,
            example_size=meta.example_size,
            num_classes=meta.num_classes,
            random=random_source(seed),
        )
        return DatasetArrays(
            train_images=train_images,
            train_labels=train_labels,
            test_images=test_images,
            test_labels=test_labels,
        )
