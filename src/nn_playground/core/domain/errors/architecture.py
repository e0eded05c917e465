from __future__ import annotations

from collections.abc import Sequence

from .base import PlaygroundError

__all__ = ["ArchitectureValidationError", "UnknownTemplateError", "UnsupportedLayerTypeError"]


class ArchitectureValidationError(PlaygroundError):
    """The architecture cannot be compiled (no dense layer, misplaced input, ...)."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = tuple(errors)
        super().__init__("Invalid architecture: " + "; ".join(self.errors))


class UnknownTemplateError(PlaygroundError, LookupError):
    def __init__(self, template_id: str, available: Sequence[str]) -> None:
        self.template_id = template_id
        self.available = tuple(available)
        super().__init__(f"Unknown template: {template_id}. Available: {', '.join(self.available)}")


class UnsupportedLayerTypeError(UserWarning):
    """Soft failure: a layer type the compiler cannot translate.

    Emitted as a warning and collected on the compiled model; never raised.
    """

    def __init__(self, layer_type: str, layer_id: str | None = None) -> None:
        self.layer_type = layer_type
        self.layer_id = layer_id
        where = f" (layer {layer_id})" if layer_id else ""
        super().__init__(f"Unknown layer type: {layer_type}{where}, skipping")
