from __future__ import annotations

import logging
import warnings

import optax

from nn_playground.core.domain.commands.compile import CompileCommand
from nn_playground.core.domain.entities.architecture import Architecture
from nn_playground.core.domain.entities.layers import (
    Conv2DLayer,
    DenseLayer,
    DropoutLayer,
    FlattenLayer,
    Layer,
    MaxPooling2DLayer,
    resolve_input_shape,
)
from nn_playground.core.domain.entities.model import (
    CompiledModel,
    DenseFns,
    DropoutFns,
    FlattenFns,
    LayerFns,
    SequentialModel,
    conv2d_fns,
    max_pooling2d_fns,
)
from nn_playground.core.domain.errors.architecture import ArchitectureValidationError, UnsupportedLayerTypeError
from nn_playground.core.domain.utils.estimator import trace_shapes
from nn_playground.core.domain.utils.jax_rng import model_keys
from nn_playground.core.domain.utils.validation import parameter_errors, structural_errors

logger = logging.getLogger(__name__)


def select_loss(last: Layer | None) -> str:
    """Loss implied by the final layer: sigmoid/1 unit, linear, otherwise categorical."""

    activation = getattr(last, "activation", None)
    units = getattr(last, "units", None)
    if activation == "sigmoid" and units == 1:
        return "binary_crossentropy"
    if activation == "linear":
        return "mean_squared_error"
    return "categorical_crossentropy"


def build_optimizer(command: CompileCommand) -> optax.GradientTransformation:
    name = command.optimizer.lower()
    if name == "adam":
        return optax.adam(learning_rate=command.learning_rate)
    if name == "adamw":
        return optax.adamw(learning_rate=command.learning_rate, weight_decay=command.weight_decay)
    if name == "sgd":
        return optax.sgd(learning_rate=command.learning_rate)
    if name == "rmsprop":
        return optax.rmsprop(learning_rate=command.learning_rate)
    raise ValueError(f"optimizer must be one of: adam, adamw, sgd, rmsprop (got {command.optimizer!r})")


def translate_layer(layer: Layer) -> LayerFns | None:
    """JAX functions for one configured layer, or None when the type is unsupported."""

    if isinstance(layer, DenseLayer):
        return DenseFns(
            units=layer.units,
            activation=layer.activation,
            use_bias=layer.use_bias,
            kernel_initializer=layer.kernel_initializer,
        )
    if isinstance(layer, DropoutLayer):
        return DropoutFns(rate=layer.rate)
    if isinstance(layer, Conv2DLayer):
        return conv2d_fns(
            filters=layer.filters,
            kernel_size=layer.kernel_size,
            strides=layer.strides,
            padding=layer.padding,
            activation=layer.activation,
            use_bias=layer.use_bias,
            kernel_initializer=layer.kernel_initializer,
        )
    if isinstance(layer, MaxPooling2DLayer):
        return max_pooling2d_fns(pool_size=layer.pool_size, strides=layer.strides, padding=layer.padding)
    if isinstance(layer, FlattenLayer):
        return FlattenFns()
    return None


class DynamicModelCompiler:
    """Turns an `Architecture` into a trainable `CompiledModel`.

    Structural problems (no input first, misplaced input, no dense layer,
    shapes that cannot flow) fail fast. Other validation findings are only
    logged. Unsupported layer types are skipped with a warning.
    """

    def __init__(self, *, default_command: CompileCommand | None = None) -> None:
        self._default_command = default_command or CompileCommand()

    def compile(self, architecture: Architecture, *, command: CompileCommand | None = None) -> CompiledModel:
        layers = architecture.layers
        errors = structural_errors(layers) + parameter_errors(layers)
        if not errors:
            trace_error = trace_shapes(layers).error
            if trace_error:
                errors.append(trace_error)
        if errors:
            raise ArchitectureValidationError(errors)
        for violation in architecture.validation.violations:
            logger.warning("Architecture: %s", violation)

        command = command or architecture.compile_command or self._default_command
        input_layer = layers[0]
        body = layers[1:]

        fns: list[LayerFns] = []
        names: list[str] = []
        skipped: list[str] = []
        for layer in body:
            translated = translate_layer(layer)
            if translated is None:
                warning = UnsupportedLayerTypeError(layer.type, layer.id)
                logger.warning("%s", warning)
                warnings.warn(warning, stacklevel=2)
                skipped.append(layer.id)
                continue
            fns.append(translated)
            names.append(f"{layer.type}:{layer.id}")

        # The input shape attaches to the first layer that is actually built.
        supported = [layer for layer in body if layer.id not in skipped]
        input_shape = resolve_input_shape(input_layer, supported[0] if supported else None)
        model = SequentialModel(layers=tuple(fns), input_shape=input_shape, names=tuple(names))

        loss = command.loss or select_loss(supported[-1] if supported else None)
        params_key, _ = model_keys(command.seed)
        params = model.init(params_key)
        compiled = CompiledModel(
            model=model,
            params=params,
            optimizer=build_optimizer(command),
            loss=loss,
            optimizer_name=command.optimizer,
            learning_rate=command.learning_rate,
            seed=command.seed,
            skipped_layers=tuple(skipped),
        )
        logger.info(
            "Compiled %d layers (%d skipped), input %s, loss=%s, optimizer=%s(lr=%g), %d params",
            len(fns),
            len(skipped),
            input_shape,
            loss,
            command.optimizer,
            command.learning_rate,
            compiled.count_params(),
        )
        return compiled
