import numpy as np
import pytest

from flatprop.core.errors import ConfigurationError
from flatprop.core.network import FlatNetwork, Layer
from flatprop.core.patterns import ElmanPattern, FeedForwardPattern, JordanPattern
from flatprop.training.gradient import GradientComputation


def _numeric_gradient(computation, eps=1e-6):
    weights = computation.network.weights
    numeric = np.zeros_like(weights)
    for index in range(weights.size):
        original = weights[index]
        weights[index] = original + eps
        _, plus = computation.compute()
        weights[index] = original - eps
        _, minus = computation.compute()
        weights[index] = original
        numeric[index] = (plus - minus) / (2 * eps)
    return numeric


def test_weight_layout_and_views():
    network = FlatNetwork([Layer(2), Layer(3), Layer(1, bias=False)], seed=0)
    assert network.weight_count == (2 + 1) * 3 + (3 + 1) * 1
    assert network.weight_index == (0, 9, 13)
    block = network.matrix(1)
    assert block.shape == (4, 1)
    block[0, 0] = 42.0
    assert network.weights[9] == 42.0


def test_reset_is_seeded_and_in_place():
    network = FlatNetwork([Layer(2), Layer(2)], seed=3)
    weights = network.weights
    first = weights.copy()
    network.reset(3)
    assert network.weights is weights
    assert np.array_equal(first, network.weights)
    assert np.all(np.abs(first) <= 1.0)


@pytest.mark.parametrize(
    "hidden_activation, output_activation, loss",
    [("sigmoid", "sigmoid", "mse"), ("tanh", "linear", "huber"), ("tanh", "linear", "ce")],
)
def test_gradients_match_finite_differences(hidden_activation, output_activation, loss):
    rng = np.random.default_rng(0)
    network = FlatNetwork(
        [Layer(3), Layer(4, hidden_activation), Layer(2, output_activation, bias=False)],
        seed=1,
    )
    inputs = rng.normal(size=(5, 3))
    targets = np.eye(2)[rng.integers(0, 2, size=5)]
    computation = GradientComputation(network, inputs, targets, loss=loss)

    before = network.weights.copy()
    gradients, error = computation.compute()
    assert np.array_equal(before, network.weights)
    assert error >= 0
    assert gradients.shape == network.weights.shape
    assert np.allclose(gradients, _numeric_gradient(computation), rtol=1e-4, atol=1e-7)


def test_shape_mismatch_is_rejected_before_training():
    network = FlatNetwork([Layer(2), Layer(1)], seed=0)
    with pytest.raises(ConfigurationError):
        GradientComputation(network, [[1.0, 2.0, 3.0]], [[1.0]])
    with pytest.raises(ConfigurationError):
        GradientComputation(network, [[1.0, 2.0]], [[1.0, 0.0]])
    with pytest.raises(ConfigurationError):
        GradientComputation(network, [[1.0, 2.0], [0.0, 1.0]], [[1.0]])
    with pytest.raises(ConfigurationError):
        GradientComputation(network, [[1.0, 2.0]], [[1.0]], loss="hinge")


@pytest.mark.parametrize(
    "layers",
    [
        [Layer(2)],
        [Layer(0), Layer(1)],
        [Layer(2), Layer(1, context_fed_by=0)],
        [Layer(2, context_fed_by=5), Layer(1)],
        [Layer(2, dropout_rate=1.0), Layer(1)],
        [Layer(2, activation="softsign"), Layer(1)],
    ],
)
def test_invalid_structures(layers):
    with pytest.raises(ConfigurationError):
        FlatNetwork(layers)


def test_dropout_rates_follow_source_layer():
    network = FlatNetwork([Layer(2, dropout_rate=0.25), Layer(2), Layer(1)], seed=0)
    rates = network.weight_dropout_rates()
    assert np.all(rates[: network.weight_index[1]] == 0.25)
    assert np.all(rates[network.weight_index[1] :] == 0.0)


def test_feedforward_pattern():
    network = (
        FeedForwardPattern(seed=0)
        .set_input_layer(4)
        .add_hidden_layer(5, "tanh")
        .add_hidden_layer(3)
        .set_output_layer(2)
        .generate()
    )
    assert [layer.neurons for layer in network.layers] == [4, 5, 3, 2]
    assert not network.has_context
    with pytest.raises(ConfigurationError):
        FeedForwardPattern().set_input_layer(2).generate()


def test_elman_context_carries_hidden_output():
    network = ElmanPattern(seed=1).set_input_layer(1).add_hidden_layer(2).set_output_layer(1).generate()
    assert network.layers[0].context_fed_by == 1
    assert network.weight_count == (1 + 2 + 1) * 2 + (2 + 1) * 1

    inputs = np.array([[0.2], [0.7], [-0.4]])
    outputs, state = network.forward(inputs)
    assert outputs.shape == (3, 1)
    assert np.allclose(network.context[0], state.outputs[0][-1])
    # the second sample saw the first sample's hidden output as context
    assert np.allclose(state.sources[0][1, 1:3], state.outputs[0][0])
    assert np.allclose(state.sources[0][0, 1:3], 0.0)

    again = network.compute(inputs)
    assert not np.allclose(outputs, again)
    network.clear_context()
    assert np.allclose(network.compute(inputs), outputs)


def test_jordan_context_fed_by_output():
    network = JordanPattern(seed=2).set_input_layer(2).add_hidden_layer(3).set_output_layer(1).generate()
    assert network.layers[0].context_fed_by == 2
    outputs, _ = network.forward(np.array([[0.0, 1.0], [1.0, 0.0]]))
    assert np.allclose(network.context[0], outputs[-1])


def test_elman_allows_one_hidden_layer():
    pattern = ElmanPattern().set_input_layer(1).add_hidden_layer(2)
    with pytest.raises(ConfigurationError):
        pattern.add_hidden_layer(2)
    with pytest.raises(ConfigurationError):
        ElmanPattern().set_input_layer(1).set_output_layer(1).generate()
