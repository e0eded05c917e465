from __future__ import annotations

from typing import Protocol

from nn_playground.core.domain.entities.dataset import (
    DatasetArrays,
    DatasetLoadOptions,
    DatasetMetadata,
    DatasetTensors,
)


class DatasetPort(Protocol):
    """Port for a named dataset: metadata, flat arrays, structured tensors.

    `load_data` results may be cached per instance until `clear_cache()`.
    """

    @property
    def metadata(self) -> DatasetMetadata: ...

    def get_metadata(self) -> DatasetMetadata: ...

    def load_data(self, options: DatasetLoadOptions | None = None) -> DatasetArrays: ...

    def load_tensors(self, options: DatasetLoadOptions | None = None) -> DatasetTensors: ...

    def clear_cache(self) -> None: ...
