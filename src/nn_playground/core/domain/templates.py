"""Starting-point architectures for common problems.

Each template is a list of designer layer payloads, so it loads the same way a
saved architecture file does.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from nn_playground.core.domain.entities.architecture import Architecture
from nn_playground.core.domain.errors.architecture import UnknownTemplateError

TemplateCategory = Literal["classification", "computer-vision"]


@dataclass(frozen=True)
class ModelTemplate:
    id: str
    name: str
    description: str
    category: TemplateCategory
    recommended_dataset: str
    layers: tuple[Mapping[str, Any], ...]

    def build(self, *, num_classes: int | None = None) -> Architecture:
        """A fresh, editable architecture with this template's layers."""

        return Architecture.from_dicts(self.layers, num_classes=num_classes)


def _dense(layer_id: str, units: int, activation: str = "relu", *, kind: str = "dense") -> dict[str, Any]:
    return {
        "id": layer_id,
        "type": kind,
        "params": {"units": units, "activation": activation, "useBias": True, "kernelInitializer": "glorotUniform"},
    }


def _conv(layer_id: str, filters: int) -> dict[str, Any]:
    return {
        "id": layer_id,
        "type": "conv2d",
        "params": {"filters": filters, "kernelSize": 3, "strides": 1, "padding": "same", "activation": "relu"},
    }


def _pool(layer_id: str) -> dict[str, Any]:
    return {"id": layer_id, "type": "maxpooling2d", "params": {"poolSize": 2, "strides": 2, "padding": "valid"}}


def _dropout(layer_id: str, rate: float) -> dict[str, Any]:
    return {"id": layer_id, "type": "dropout", "params": {"rate": rate}}


def _input(*shape: int) -> dict[str, Any]:
    return {"id": "input-1", "type": "input", "params": {"shape": list(shape)}}


_FLATTEN = {"id": "flatten-1", "type": "flatten", "params": {}}
_OUTPUT = _dense("output-1", 10, "softmax", kind="output")

MODEL_TEMPLATES: tuple[ModelTemplate, ...] = (
    ModelTemplate(
        id="simple-dense",
        name="Simple Dense Network",
        description="Basic fully-connected network for simple classification tasks",
        category="classification",
        recommended_dataset="mnist",
        layers=(_input(28, 28, 1), _FLATTEN, _dense("dense-1", 128), _dense("dense-2", 64), _OUTPUT),
    ),
    ModelTemplate(
        id="deep-dense",
        name="Deep Dense Network",
        description="Multi-layer fully-connected network with dropout regularization",
        category="classification",
        recommended_dataset="fashion-mnist",
        layers=(
            _input(28, 28, 1),
            _FLATTEN,
            _dense("dense-1", 256),
            _dropout("dropout-1", 0.3),
            _dense("dense-2", 128),
            _dropout("dropout-2", 0.2),
            _dense("dense-3", 64),
            _OUTPUT,
        ),
    ),
    ModelTemplate(
        id="simple-cnn",
        name="Simple CNN",
        description="Basic convolutional network for image classification",
        category="computer-vision",
        recommended_dataset="mnist",
        layers=(
            _input(28, 28, 1),
            _conv("conv2d-1", 32),
            _pool("maxpooling2d-1"),
            _conv("conv2d-2", 64),
            _pool("maxpooling2d-2"),
            _FLATTEN,
            _dense("dense-1", 128),
            _OUTPUT,
        ),
    ),
    ModelTemplate(
        id="advanced-cnn",
        name="Advanced CNN",
        description="Deep convolutional network with multiple conv blocks and regularization",
        category="computer-vision",
        recommended_dataset="cifar10",
        layers=(
            _input(32, 32, 3),
            _conv("conv2d-1", 32),
            _conv("conv2d-2", 32),
            _pool("maxpooling2d-1"),
            _dropout("dropout-1", 0.25),
            _conv("conv2d-3", 64),
            _conv("conv2d-4", 64),
            _pool("maxpooling2d-2"),
            _dropout("dropout-2", 0.25),
            _FLATTEN,
            _dense("dense-1", 512),
            _dropout("dropout-3", 0.5),
            _dense("dense-2", 256),
            _OUTPUT,
        ),
    ),
)


def get_template(template_id: str) -> ModelTemplate:
    for template in MODEL_TEMPLATES:
        if template.id == template_id:
            return template
    raise UnknownTemplateError(template_id, [template.id for template in MODEL_TEMPLATES])


def templates_by_category(category: TemplateCategory) -> list[ModelTemplate]:
    return [template for template in MODEL_TEMPLATES if template.category == category]


__all__ = [
    "MODEL_TEMPLATES",
    "ModelTemplate",
    "TemplateCategory",
    "get_template",
    "templates_by_category",
]
