import numpy as np
import pytest

from hasvocals.core.activations import StandardLogistic
from hasvocals.core.mlp import Layer, MultiLayerPerceptron, build_vocal_network


def test_zero_weights_give_half():
    net = build_vocal_network(weight_range=(0.0, 0.0), seed=0)
    out = net.evaluate(np.arange(28, dtype=np.float64))
    np.testing.assert_allclose(out, [0.5])
    assert net.input_dim == 28
    assert [layer.num_nodes for layer in net] == [30, 10, 1]


def test_weights_are_lazily_sized_and_in_range():
    net = build_vocal_network(seed=3)
    assert not net.is_initialized
    net.evaluate(np.ones(5))
    assert net.is_initialized
    assert net.head.weights.shape == (30, 5)
    assert net[1].weights.shape == (10, 30)
    assert net.tail.weights.shape == (1, 10)
    for layer in net:
        assert layer.weights.min() >= 0.2
        assert layer.weights.max() <= 0.8
    assert net.parameter_count() == 30 * 5 + 10 * 30 + 10


def test_layer_rejects_empty_and_wrong_inputs():
    with pytest.raises(ValueError):
        Layer(0, StandardLogistic())
    net = build_vocal_network(seed=0)
    net.evaluate(np.ones(4))
    with pytest.raises(ValueError):
        net.evaluate(np.ones(3))


def test_training_mode_caches_inputs_and_blames():
    net = build_vocal_network(hidden_layers=(3,), seed=1)
    net.evaluate(np.ones(2), is_training=True)
    for layer in net:
        assert layer.last_inputs is not None
        np.testing.assert_array_equal(layer.blames, np.zeros(layer.num_nodes))
    np.testing.assert_array_equal(net.head.last_inputs, np.ones(2))


def test_insert_at_bounds():
    net = MultiLayerPerceptron()
    net.append(Layer(2, StandardLogistic()))
    net.prepend(Layer(3, StandardLogistic()))
    net.insert_at(2, Layer(1, StandardLogistic()))
    assert [layer.num_nodes for layer in net] == [3, 2, 1]
    assert net.head.num_nodes == 3 and net.tail.num_nodes == 1
    with pytest.raises(IndexError):
        net.insert_at(5, Layer(1, StandardLogistic()))
    with pytest.raises(IndexError):
        net.insert_at(-1, Layer(1, StandardLogistic()))


def test_copy_is_independent_and_shares_activation():
    net = build_vocal_network(hidden_layers=(4,), seed=2)
    x = np.array([0.3, -0.2, 0.1])
    before = net.evaluate(x)
    clone = net.copy()
    np.testing.assert_allclose(clone.evaluate(x), before)
    clone.head.weights += 1.0
    np.testing.assert_allclose(net.evaluate(x), before)
    assert clone.head.activation is net.head.activation

    net.load_weights_from(clone)
    np.testing.assert_allclose(net.evaluate(x), clone.evaluate(x))


def test_save_and_load_round_trip(tmp_path):
    net = build_vocal_network(hidden_layers=(5, 2), seed=4)
    x = np.linspace(-1.0, 1.0, 6)
    expected = net.evaluate(x)
    path = net.save(tmp_path / "net.npz")
    loaded = MultiLayerPerceptron.load(path)
    np.testing.assert_allclose(loaded.evaluate(x), expected)
    assert loaded.describe() == net.describe()
    assert loaded.describe().activations == ["logistic", "logistic", "softmax"]


def test_load_state_dict_requires_all_weights():
    net = build_vocal_network(hidden_layers=(2,), seed=0)
    net.evaluate(np.ones(2))
    state = dict(net.state_dict())
    del state["W1"]
    with pytest.raises(KeyError):
        build_vocal_network(hidden_layers=(2,)).load_state_dict(state)
