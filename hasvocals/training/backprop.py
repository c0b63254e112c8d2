"""Per-example error back-propagation through a :class:`MultiLayerPerceptron`."""

from __future__ import annotations

import numpy as np

from ..core.errors import NumericAnomaly
from ..core.mlp import Layer, MultiLayerPerceptron
from ..core.types import Array, FeatureFrame


def _activation_slope(layer: Layer) -> Array:
    outputs = layer.last_outputs
    if layer.activation is None:
        return np.ones_like(outputs)
    return np.array(
        [layer.activation.dydk_at(i, outputs, i) for i in range(outputs.size)],
        dtype=np.float64,
    )


def _check_finite(values: Array, what: str, layer_idx: int) -> None:
    if not np.all(np.isfinite(values)):
        raise NumericAnomaly(f"Non-finite {what} in layer {layer_idx}")


def compute_blames(net: MultiLayerPerceptron, targets: Array, outputs: Array) -> None:
    """Fill every layer's ``blames`` after a training-mode forward pass.

    Every output node receives the plain sum of ``targets - outputs``; each
    hidden layer collects the next layer's blames weighted by its weights.
    """

    next_blames = np.asarray(targets, dtype=np.float64) - outputs
    next_layer: Layer | None = None
    for idx in range(net.size - 1, -1, -1):
        layer = net[idx]
        if layer.blames is None or layer.last_outputs is None:
            raise RuntimeError("compute_blames requires a training-mode forward pass")
        if next_layer is None:
            contribution = np.full(layer.num_nodes, next_blames.sum())
        else:
            contribution = next_layer.weights.T @ next_layer.blames
        layer.blames += _activation_slope(layer) * contribution
        _check_finite(layer.blames, "blames", idx)
        next_layer = layer


def update_delta_weights(net: MultiLayerPerceptron) -> None:
    for idx, layer in enumerate(net):
        layer.delta_weights += np.outer(layer.blames, layer.last_inputs)
        _check_finite(layer.delta_weights, "delta weights", idx)


def train_example(net: MultiLayerPerceptron, frame: FeatureFrame) -> Array:
    """Forward ``frame`` in training mode and accumulate its weight deltas."""

    outputs = net.evaluate(frame.features, is_training=True)
    if outputs.size != frame.labels.size:
        raise ValueError(
            f"Network produces {outputs.size} outputs for {frame.labels.size} targets"
        )
    compute_blames(net, frame.labels, outputs)
    update_delta_weights(net)
    return outputs


def average_delta_weights(net: MultiLayerPerceptron, examples: int) -> None:
    if examples <= 0:
        return
    for layer in net:
        if layer.delta_weights is not None:
            layer.delta_weights /= float(examples)


__all__ = ["compute_blames", "update_delta_weights", "train_example", "average_delta_weights"]
