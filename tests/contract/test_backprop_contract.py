import numpy as np
import pytest

from hasvocals.core.activations import SoftMax, StandardLogistic
from hasvocals.core.errors import NumericAnomaly
from hasvocals.core.mlp import Layer, MultiLayerPerceptron
from hasvocals.core.types import FeatureFrame
from hasvocals.training.backprop import average_delta_weights, compute_blames, train_example


def _logistic(x):
    return 1.0 / (1.0 + np.exp(-x))


def _two_layer_net():
    net = MultiLayerPerceptron([Layer(2, StandardLogistic()), Layer(1, SoftMax())])
    net.evaluate(np.zeros(3))
    net[0].weights = np.array([[0.1, 0.2, 0.3], [-0.4, 0.5, 0.6]])
    net[1].weights = np.array([[0.7, -0.8]])
    net.zero_delta_weights()
    return net


def test_output_layer_blame_and_delta_weights():
    net = MultiLayerPerceptron([Layer(1, SoftMax())])
    net.evaluate(np.zeros(2))
    net.tail.weights = np.array([[0.5, -0.25]])
    x = np.array([1.0, 2.0])
    target = 1.0
    train_example(net, FeatureFrame(x, [target]))

    y = _logistic(0.5 - 0.5)
    blame = (1 - y) * y * (target - y)
    np.testing.assert_allclose(net.tail.blames, [blame])
    np.testing.assert_allclose(net.tail.delta_weights, [blame * x])


def test_hidden_layer_blames_follow_next_layer_weights():
    net = _two_layer_net()
    x = np.array([1.0, -1.0, 0.5])
    target = np.array([0.0])
    out = net.evaluate(x, is_training=True)
    compute_blames(net, target, out)

    hidden = _logistic(net[0].weights @ x)
    y = _logistic(net[1].weights @ hidden)
    np.testing.assert_allclose(out, y)
    out_blame = (1 - y) * y * (target - y)
    hidden_blame = (1 - hidden) * hidden * (net[1].weights.T @ out_blame)
    np.testing.assert_allclose(net[1].blames, out_blame)
    np.testing.assert_allclose(net[0].blames, hidden_blame)


def test_delta_weights_average_over_examples():
    net = _two_layer_net()
    frame = FeatureFrame([1.0, 0.0, 1.0], [1.0])
    train_example(net, frame)
    single = [layer.delta_weights.copy() for layer in net]
    train_example(net, frame)
    average_delta_weights(net, 2)
    for layer, expected in zip(net, single):
        np.testing.assert_allclose(layer.delta_weights, expected)


def test_non_finite_blames_raise():
    net = _two_layer_net()
    net[0].weights[0, 0] = np.nan
    with pytest.raises(NumericAnomaly):
        train_example(net, FeatureFrame([1.0, 1.0, 1.0], [1.0]))


def test_label_width_must_match_outputs():
    net = _two_layer_net()
    with pytest.raises(ValueError):
        train_example(net, FeatureFrame([1.0, 1.0, 1.0], [1.0, 0.0]))


def test_output_nodes_share_the_summed_error():
    net = MultiLayerPerceptron([Layer(2, StandardLogistic())])
    net.evaluate(np.zeros(2))
    net.tail.weights = np.array([[0.3, -0.1], [0.2, 0.4]])
    x = np.array([1.0, 2.0])
    targets = np.array([1.0, 0.0])
    train_example(net, FeatureFrame(x, targets))

    y = _logistic(net.tail.weights @ x)
    total = np.sum(targets - y)
    blames = (1 - y) * y * total
    np.testing.assert_allclose(net.tail.blames, blames)
    np.testing.assert_allclose(net.tail.delta_weights, np.outer(blames, x))
    # both nodes move in the same direction under the summed error
    assert np.sign(net.tail.blames[0]) == np.sign(net.tail.blames[1])
