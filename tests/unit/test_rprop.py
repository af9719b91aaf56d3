import math

import numpy as np
import pytest

from flatprop.core.errors import ConfigurationError
from flatprop.core.network import FlatNetwork, Layer
from flatprop.core.strategies import (
    ARPROP,
    DELTA_MIN,
    IRPROPMinus,
    IRPROPPlus,
    RPROPMinus,
    RPROPPlus,
    RPROPType,
    make_rprop,
)
from flatprop.training.propagation import ResilientPropagation

ALL_TYPES = [t.value for t in RPROPType]


def _strategy(tag, weights=1, **kwargs):
    strategy = make_rprop(tag, **kwargs)
    strategy.init(weights)
    return strategy


def _single_weight_trainer(rprop_type="RPROPp"):
    network = FlatNetwork([Layer(1, "linear", bias=False), Layer(1, "linear", bias=False)])
    network.weights[:] = 0.5
    return ResilientPropagation(network, [[1.0]], [[1.0]], rprop_type=rprop_type)


def _feed(trainer, gradient, error=0.1):
    trainer.gradient.compute = lambda batch=None: (np.array([gradient]), error)
    trainer.iteration()


def test_make_rprop_builds_each_variant():
    expected = {
        "RPROPp": RPROPPlus,
        "RPROPm": RPROPMinus,
        "iRPROPp": IRPROPPlus,
        "iRPROPm": IRPROPMinus,
        "ARPROP": ARPROP,
    }
    for tag, cls in expected.items():
        strategy = make_rprop(tag)
        assert isinstance(strategy, cls)
        assert strategy.rprop_type == RPROPType(tag)


def test_unknown_variant_is_rejected():
    with pytest.raises(ConfigurationError):
        make_rprop("RPROPx")
    network = FlatNetwork([Layer(2), Layer(1)], seed=0)
    with pytest.raises(ConfigurationError):
        ResilientPropagation(network, [[0.0, 1.0]], [[1.0]], rprop_type="bogus")
    trainer = ResilientPropagation(network, [[0.0, 1.0]], [[1.0]])
    with pytest.raises(ConfigurationError):
        trainer.rprop_type = "nope"
    assert trainer.rprop_type is RPROPType.RPROPp


def test_invalid_step_configuration_is_rejected():
    with pytest.raises(ConfigurationError):
        make_rprop("RPROPp", initial_update=0.0)
    with pytest.raises(ConfigurationError):
        make_rprop("RPROPp", initial_update=2.0, max_step=1.0)


def test_rpropp_single_weight_scenario():
    trainer = _single_weight_trainer()
    strategy = trainer.strategy

    _feed(trainer, 1.0)
    assert trainer.last_delta[0] == pytest.approx(-0.1)
    assert trainer.network.weights[0] == pytest.approx(0.4)
    assert strategy.update_values[0] == pytest.approx(0.1)

    _feed(trainer, 1.0)
    assert strategy.update_values[0] == pytest.approx(0.12)
    assert trainer.last_delta[0] == pytest.approx(-0.12)
    assert trainer.network.weights[0] == pytest.approx(0.28)

    _feed(trainer, -1.0)
    assert trainer.last_delta[0] == pytest.approx(0.12)
    assert strategy.update_values[0] == pytest.approx(0.06)
    assert trainer.last_gradient[0] == 0.0
    assert trainer.network.weights[0] == pytest.approx(0.4)

    # neutral comparison after the reset: step kept, follows the new gradient
    _feed(trainer, -1.0)
    assert strategy.update_values[0] == pytest.approx(0.06)
    assert trainer.last_delta[0] == pytest.approx(0.06)


def test_rpropm_shrinks_without_backtracking():
    strategy = _strategy("RPROPm")
    last = np.zeros(1)
    assert strategy.update_weight(np.array([2.0]), last, 0) == pytest.approx(-0.1)
    assert strategy.update_weight(np.array([2.0]), last, 0) == pytest.approx(-0.12)
    change = strategy.update_weight(np.array([-2.0]), last, 0)
    assert change == pytest.approx(0.06)
    assert strategy.update_values[0] == pytest.approx(0.06)
    assert last[0] == -2.0


def test_irpropm_moves_with_shrunk_step_and_forgets_gradient():
    strategy = _strategy("iRPROPm")
    last = np.zeros(1)
    strategy.update_weight(np.array([1.0]), last, 0)
    strategy.update_weight(np.array([1.0]), last, 0)
    assert strategy.update_weight(np.array([-1.0]), last, 0) == pytest.approx(0.06)
    assert last[0] == 0.0
    assert strategy.update_values[0] == pytest.approx(0.06)
    # no comparison after the reset: the step keeps its size
    assert strategy.update_weight(np.array([-1.0]), last, 0) == pytest.approx(0.06)
    assert last[0] == -1.0


def test_irpropm_differs_from_rpropm_only_in_memory():
    minus, improved = _strategy("RPROPm"), _strategy("iRPROPm")
    last_minus, last_improved = np.zeros(1), np.zeros(1)
    for gradient in [1.0, 1.0, -1.0, 1.0]:
        a = minus.update_weight(np.array([gradient]), last_minus, 0)
        b = improved.update_weight(np.array([gradient]), last_improved, 0)
        if gradient == -1.0:
            assert a == pytest.approx(b)
    # RPROP- saw a second reversal and shrank again; iRPROP- had forgotten
    assert minus.update_values[0] == pytest.approx(0.03)
    assert improved.update_values[0] == pytest.approx(0.06)


@pytest.mark.parametrize("error, expected", [(0.5, 0.12), (0.1, 0.0)])
def test_irpropp_backtracks_only_when_error_grew(error, expected):
    strategy = _strategy("iRPROPp")
    last = np.zeros(1)
    strategy.begin_iteration(0.4, math.inf)
    strategy.update_weight(np.array([1.0]), last, 0)
    strategy.begin_iteration(0.3, 0.4)
    strategy.update_weight(np.array([1.0]), last, 0)
    strategy.begin_iteration(error, 0.3)
    change = strategy.update_weight(np.array([-1.0]), last, 0)
    assert change == pytest.approx(expected)
    assert strategy.update_values[0] == pytest.approx(0.06)
    assert last[0] == 0.0


def test_arprop_counter_is_strategy_state():
    strategy = _strategy("ARPROP", weights=2)
    last = np.zeros(2)
    gradients = np.array([1.0, -1.0])

    strategy.begin_iteration(0.5, math.inf)
    assert strategy.q == 1
    first = [strategy.update_weight(gradients, last, i) for i in range(2)]
    assert first == pytest.approx([-0.1, 0.1])

    strategy.begin_iteration(0.6, 0.5)
    assert strategy.q == 2
    damped = [strategy.update_weight(gradients, last, i) for i in range(2)]
    # steps grew to 0.12; the damped move goes back against the last change
    assert damped == pytest.approx([0.12 / 2, -0.12 / 2])

    strategy.begin_iteration(0.7, 0.6)
    assert strategy.q == 3
    again = strategy.update_weight(gradients, last, 0)
    assert again == pytest.approx(-0.144 / 4)

    strategy.begin_iteration(0.2, 0.7)
    assert strategy.q == 1


@pytest.mark.parametrize("tag", ALL_TYPES)
def test_step_sizes_stay_clamped(tag):
    rng = np.random.default_rng(3)
    strategy = _strategy(tag, weights=8, initial_update=0.5, max_step=1.0)
    last = np.zeros(8)
    error = 1.0
    for step in range(300):
        gradients = rng.normal(size=8) * rng.choice([0.0, 1e-3, 1.0, 1e3], size=8)
        if step < 100:
            gradients = np.abs(gradients) + 0.1
        new_error = error * (1.1 if step % 3 == 0 else 0.9)
        strategy.begin_iteration(new_error, error)
        error = new_error
        for index in range(8):
            strategy.update_weight(gradients, last, index)
            assert DELTA_MIN <= strategy.update_values[index] <= 1.0


@pytest.mark.parametrize("tag", ["RPROPp", "RPROPm", "iRPROPp", "iRPROPm"])
def test_sign_rule(tag):
    rng = np.random.default_rng(11)
    strategy = _strategy(tag, weights=4)
    backtracks = RPROPType(tag) in (RPROPType.RPROPp, RPROPType.iRPROPp)
    last = np.zeros(4)
    error = 1.0
    for step in range(200):
        gradients = rng.normal(size=4)
        new_error = error * (1.2 if step % 2 else 0.8)
        strategy.begin_iteration(new_error, error)
        error = new_error
        for index in range(4):
            previous = strategy.last_weight_change[index]
            change = np.sign(gradients[index] * last[index])
            weight_change = strategy.update_weight(gradients, last, index)
            if change >= 0 or not backtracks:
                assert np.sign(weight_change) == -np.sign(gradients[index])
            else:
                assert weight_change == 0.0 or weight_change == pytest.approx(-previous)


@pytest.mark.parametrize("tag", ALL_TYPES)
def test_dropout_skips_weight(tag):
    strategy = _strategy(tag, weights=2)
    last = np.array([0.5, 0.5])
    before = strategy.update_values.copy()
    assert strategy.update_weight(np.array([1.0, 1.0]), last, 1, dropout_rate=0.3) == 0.0
    assert np.array_equal(strategy.update_values, before)
    assert np.array_equal(last, [0.5, 0.5])


@pytest.mark.parametrize("tag", ALL_TYPES)
def test_update_weight_is_deterministic(tag):
    rng = np.random.default_rng(5)
    sequence = [rng.normal(size=3) for _ in range(20)]
    errors = rng.uniform(0.1, 1.0, size=20)

    def replay():
        strategy = _strategy(tag, weights=3)
        last = np.zeros(3)
        out = []
        last_error = math.inf
        for gradients, error in zip(sequence, errors):
            strategy.begin_iteration(float(error), last_error)
            last_error = float(error)
            out.append([strategy.update_weight(gradients, last, i) for i in range(3)])
        return np.array(out)

    assert np.array_equal(replay(), replay())


def test_switching_variant_keeps_step_sizes():
    trainer = _single_weight_trainer()
    _feed(trainer, 1.0)
    _feed(trainer, 1.0)
    trainer.rprop_type = RPROPType.iRPROPm
    assert isinstance(trainer.strategy, IRPROPMinus)
    assert trainer.update_values[0] == pytest.approx(0.12)
    _feed(trainer, 1.0)
    assert trainer.last_delta[0] == pytest.approx(-0.144)


def test_arprop_follows_sign_rule_while_error_falls():
    rng = np.random.default_rng(2)
    plus, arprop = _strategy("RPROPp", weights=3), _strategy("ARPROP", weights=3)
    last_plus, last_arprop = np.zeros(3), np.zeros(3)
    error = 1.0
    for _ in range(50):
        gradients = rng.normal(size=3)
        plus.begin_iteration(error * 0.9, error)
        arprop.begin_iteration(error * 0.9, error)
        error *= 0.9
        for index in range(3):
            assert arprop.update_weight(gradients, last_arprop, index) == plus.update_weight(
                gradients, last_plus, index
            )
