"""Multi-layer perceptron built from an owned chain of fully connected layers."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Iterator, List, Mapping, MutableSequence, Sequence, Tuple

import numpy as np

from .activations import ActivationFunction, SoftMax, StandardLogistic, get_activation
from .types import Array, ModelDescription, as_vector

DEFAULT_WEIGHT_RANGE: Tuple[float, float] = (0.2, 0.8)


class Layer:
    """A single fully connected layer.

    Row ``i`` of ``weights`` is node ``i``'s weight vector.  Weights are
    allocated lazily on the first forward pass, sized to the observed input.
    ``last_inputs``, ``last_outputs`` and ``blames`` are only valid after a
    training-mode forward pass and are reset by the next one.
    """

    def __init__(self, num_nodes: int, activation: ActivationFunction | None) -> None:
        if num_nodes <= 0:
            raise ValueError("num_nodes must be greater than zero.")
        self.num_nodes = int(num_nodes)
        self.activation = activation
        self.weights: Array | None = None
        self.delta_weights: Array | None = None
        self.last_inputs: Array | None = None
        self.last_outputs: Array | None = None
        self.blames: Array | None = None

    @property
    def input_dim(self) -> int | None:
        return None if self.weights is None else int(self.weights.shape[1])

    def __len__(self) -> int:
        return self.num_nodes

    def initialize(self, input_dim: int, rng: np.random.Generator, weight_range: Tuple[float, float]) -> None:
        low, high = weight_range
        self.weights = rng.uniform(low, high, size=(self.num_nodes, input_dim))
        self.delta_weights = np.zeros_like(self.weights)

    def weights_at(self, idx: int) -> Array:
        return self.weights[idx]

    def delta_weights_at(self, idx: int) -> Array:
        return self.delta_weights[idx]

    def set_weights_at(self, idx: int, weights: Array) -> None:
        self.weights[idx] = weights

    def set_delta_weights_at(self, idx: int, delta_weights: Array) -> None:
        self.delta_weights[idx] = delta_weights

    def evaluate(self, inputs: Array, is_training: bool = False) -> Array:
        if inputs.size != self.weights.shape[1]:
            raise ValueError(
                f"Layer expects {self.weights.shape[1]} inputs, got {inputs.size}"
            )
        if is_training:
            self.last_inputs = inputs.copy()
            self.blames = np.zeros(self.num_nodes, dtype=np.float64)
        outputs = self.weights @ inputs
        if self.activation is not None:
            outputs = self.activation.y(outputs)
        if is_training:
            self.last_outputs = outputs.copy()
        return outputs

    def copy(self) -> "Layer":
        clone = Layer(self.num_nodes, self.activation)
        if self.weights is not None:
            clone.weights = self.weights.copy()
            clone.delta_weights = self.delta_weights.copy()
        return clone

    def __repr__(self) -> str:
        return f"Layer(nodes={self.num_nodes}, inputs={self.input_dim}, activation={self.activation!r})"


class MultiLayerPerceptron:
    """Feed-forward chain of :class:`Layer` objects.

    The first layer is the head (first hidden layer) and the last one the
    tail (output layer).  The topology is fixed once training starts;
    ``append``/``prepend``/``insert_at`` are construction-time helpers.
    """

    def __init__(
        self,
        layers: Sequence[Layer] = (),
        *,
        weight_range: Tuple[float, float] = DEFAULT_WEIGHT_RANGE,
        seed: int | None = None,
    ) -> None:
        self._layers: MutableSequence[Layer] = []
        self.weight_range = (float(weight_range[0]), float(weight_range[1]))
        self._rng = np.random.default_rng(seed)
        for layer in layers:
            self.append(layer)

    # ------------------------------------------------------------------
    # Structure

    def insert_at(self, idx: int, layer: Layer) -> "MultiLayerPerceptron":
        if idx < 0 or idx > len(self._layers):
            raise IndexError(f"Layer index {idx} out of range for size {len(self._layers)}")
        self._layers.insert(idx, layer)
        return self

    def append(self, layer: Layer) -> "MultiLayerPerceptron":
        return self.insert_at(len(self._layers), layer)

    def prepend(self, layer: Layer) -> "MultiLayerPerceptron":
        return self.insert_at(0, layer)

    @property
    def size(self) -> int:
        return len(self._layers)

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._layers)

    def __getitem__(self, idx: int) -> Layer:
        return self._layers[idx]

    @property
    def layers(self) -> List[Layer]:
        return list(self._layers)

    @property
    def head(self) -> Layer:
        return self._layers[0]

    @property
    def tail(self) -> Layer:
        return self._layers[-1]

    @property
    def input_dim(self) -> int | None:
        return self.head.input_dim if self._layers else None

    @property
    def is_initialized(self) -> bool:
        return all(layer.weights is not None for layer in self._layers)

    def describe(self) -> ModelDescription:
        return ModelDescription(
            layer_sizes=[layer.num_nodes for layer in self._layers],
            activations=[getattr(layer.activation, "name", "linear") for layer in self._layers],
            input_dim=self.input_dim,
        )

    # ------------------------------------------------------------------
    # Evaluation

    def evaluate(self, inputs: Sequence[float] | Array, is_training: bool = False) -> Array:
        if not self._layers:
            raise ValueError("Cannot evaluate an empty network")
        x = as_vector(inputs)
        for layer in self._layers:
            if layer.weights is None:
                layer.initialize(x.size, self._rng, self.weight_range)
            x = layer.evaluate(x, is_training)
        return x

    __call__ = evaluate

    # ------------------------------------------------------------------
    # Weight management

    def copy(self) -> "MultiLayerPerceptron":
        clone = MultiLayerPerceptron(weight_range=self.weight_range)
        clone._rng = copy.deepcopy(self._rng)
        for layer in self._layers:
            clone.append(layer.copy())
        return clone

    def load_weights_from(self, other: "MultiLayerPerceptron") -> None:
        """Copy ``other``'s weights into this network's arrays in place."""

        if other.size != self.size:
            raise ValueError("Networks differ in depth")
        for mine, theirs in zip(self._layers, other):
            if theirs.weights is None:
                continue
            if mine.weights is None or mine.weights.shape != theirs.weights.shape:
                mine.weights = theirs.weights.copy()
                mine.delta_weights = np.zeros_like(mine.weights)
            else:
                np.copyto(mine.weights, theirs.weights)

    def zero_delta_weights(self) -> None:
        for layer in self._layers:
            if layer.delta_weights is not None:
                layer.delta_weights.fill(0.0)

    def state_dict(self) -> Mapping[str, Array]:
        state: dict[str, Array] = {
            "layer_sizes": np.array([layer.num_nodes for layer in self._layers], dtype=np.int64),
            "activations": np.array(
                [getattr(layer.activation, "name", "linear") for layer in self._layers]
            ),
            "alphas": np.array(
                [getattr(layer.activation, "alpha", 1.0) for layer in self._layers],
                dtype=np.float64,
            ),
            "weight_range": np.array(self.weight_range, dtype=np.float64),
        }
        for idx, layer in enumerate(self._layers):
            if layer.weights is not None:
                state[f"W{idx}"] = layer.weights.copy()
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        for idx, layer in enumerate(self._layers):
            key = f"W{idx}"
            if key not in state:
                raise KeyError(f"Missing weight {key} in state dict")
            weights = np.asarray(state[key], dtype=np.float64)
            if weights.shape[0] != layer.num_nodes:
                raise ValueError(f"{key} has {weights.shape[0]} rows, layer has {layer.num_nodes} nodes")
            layer.weights = weights.copy()
            layer.delta_weights = np.zeros_like(layer.weights)

    @classmethod
    def from_state_dict(cls, state: Mapping[str, Array]) -> "MultiLayerPerceptron":
        low, high = (float(v) for v in state["weight_range"])
        net = cls(weight_range=(low, high))
        for size, name, alpha in zip(state["layer_sizes"], state["activations"], state["alphas"]):
            activation = None if str(name) == "linear" else get_activation(str(name), float(alpha))
            net.append(Layer(int(size), activation))
        net.load_state_dict(state)
        return net

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as handle:
            np.savez_compressed(handle, **self.state_dict())
        return path

    @classmethod
    def load(cls, path: str | Path) -> "MultiLayerPerceptron":
        with np.load(Path(path), allow_pickle=False) as payload:
            state = {name: payload[name] for name in payload.files}
        return cls.from_state_dict(state)

    def parameter_count(self) -> int:
        return int(sum(layer.weights.size for layer in self._layers if layer.weights is not None))

    def __repr__(self) -> str:
        lines = []
        for idx, layer in enumerate(self._layers):
            lines.append(f"== Layer {idx} ==")
            lines.append(f"  {layer!r}")
        return "\n".join(lines)


def build_vocal_network(
    hidden_layers: Sequence[int] = (30, 10),
    *,
    alpha: float = 1.0,
    weight_range: Tuple[float, float] = DEFAULT_WEIGHT_RANGE,
    seed: int | None = None,
) -> MultiLayerPerceptron:
    """Build the logistic hidden stack with a single softmax output node."""

    net = MultiLayerPerceptron(weight_range=weight_range, seed=seed)
    for nodes in hidden_layers:
        net.append(Layer(nodes, StandardLogistic(alpha)))
    net.append(Layer(1, SoftMax(alpha)))
    return net


__all__ = ["Layer", "MultiLayerPerceptron", "build_vocal_network", "DEFAULT_WEIGHT_RANGE"]
