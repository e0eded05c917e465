from nn_playground.core.domain.registry import DatasetRegistry

from .ag_news import AgNewsDataset
from .base import Dataset
from .cifar10 import Cifar10Dataset
from .fashion_mnist import FashionMnistDataset
from .imdb import ImdbDataset
from .mnist import MnistDataset, MnistSpriteSource
from .npz_classification import NpzClassificationDataset
from .text import TextDataset

BUILTIN_DATASETS = {
    "mnist": MnistDataset,
    "cifar10": Cifar10Dataset,
    "fashion-mnist": FashionMnistDataset,
    "imdb": ImdbDataset,
    "ag-news": AgNewsDataset,
}


def register_builtin_datasets(registry: DatasetRegistry) -> DatasetRegistry:
    """Register every bundled dataset under its public name. Call once at startup."""

    for name, factory in BUILTIN_DATASETS.items():
        registry.register(name, factory)
    return registry


__all__ = [
    "AgNewsDataset",
    "BUILTIN_DATASETS",
    "Cifar10Dataset",
    "Dataset",
    "FashionMnistDataset",
    "ImdbDataset",
    "MnistDataset",
    "MnistSpriteSource",
    "NpzClassificationDataset",
    "TextDataset",
    "register_builtin_datasets",
]
