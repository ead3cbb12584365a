"""
Tests for activations, neurons and synapses.

Run with: python -m pytest tests/test_neuron.py -v
"""

import numpy as np
import pytest

from nerd.core.activations import (
    ACTIVATIONS,
    DEFAULT_ACTIVATION,
    bipolar_sigmoid,
    bipolar_sigmoid_derivative,
    get_activation,
    list_activations,
)
from nerd.core.errors import ValidationError
from nerd.core.neuron import Neuron


class TestActivations:
    """Tests for the activation registry."""

    def test_bipolar_sigmoid_is_centered(self):
        """F(0) is 0 and the output stays inside (-1, 1)."""
        assert bipolar_sigmoid(0.0) == pytest.approx(0.0)
        assert bipolar_sigmoid(1000.0) == pytest.approx(1.0)
        assert bipolar_sigmoid(-1000.0) == pytest.approx(-1.0)

    def test_derivatives_take_outputs(self):
        """Every registered derivative matches a numeric slope at the output."""
        for name in list_activations():
            activation = get_activation(name)
            x, h = 0.3, 1e-6
            slope = (activation(x + h) - activation(x - h)) / (2 * h)
            assert activation.grad(activation(x)) == pytest.approx(slope, rel=1e-5), name

    def test_bipolar_sigmoid_derivative_at_zero(self):
        assert bipolar_sigmoid_derivative(0.0) == pytest.approx(0.5)

    def test_default_is_registered(self):
        assert DEFAULT_ACTIVATION in ACTIVATIONS

    def test_unknown_activation(self):
        with pytest.raises(ValidationError):
            get_activation('relu6')


class TestNeuron:
    """Tests for value and delta refreshes."""

    def _pair(self):
        weights = [np.array([0.5, -0.25])]
        activation = get_activation(DEFAULT_ACTIVATION)
        bias = Neuron(weights, activation)
        source = Neuron(weights, activation)
        target = Neuron(weights, activation)
        target.connect(bias, 0, 0)
        target.connect(source, 0, 1)
        return weights, bias, source, target

    def test_initial_state(self):
        neuron = Neuron([], get_activation(DEFAULT_ACTIVATION))
        assert neuron.value == 1.0
        assert neuron.delta == 0.0

    def test_refresh_value_without_inputs_is_noop(self):
        _, bias, source, _ = self._pair()
        source.value = 0.7
        assert source.refresh_value() == 0.7
        assert bias.refresh_value() == 1.0

    def test_refresh_value(self):
        """value = F(sum of input value * weight)."""
        _, _, source, target = self._pair()
        source.value = 2.0
        expected = bipolar_sigmoid(1.0 * 0.5 + 2.0 * -0.25)
        assert target.refresh_value() == pytest.approx(expected)

    def test_refresh_delta_without_outputs_is_noop(self):
        _, _, _, target = self._pair()
        target.delta = 0.42
        assert target.refresh_delta() == 0.42

    def test_refresh_delta(self):
        """delta = sum of downstream delta * weight, times F'(value)."""
        _, _, source, target = self._pair()
        source.value = 0.5
        target.delta = 0.2
        expected = 0.2 * -0.25 * bipolar_sigmoid_derivative(0.5)
        assert source.refresh_delta() == pytest.approx(expected)

    def test_refresh_only_touches_own_state(self):
        _, bias, source, target = self._pair()
        source.value = 0.3
        target.refresh_value()
        assert source.value == 0.3
        assert bias.value == 1.0

    def test_adjust_weights_writes_shared_arena(self):
        """The synapse address points at the arena slot the forward pass reads."""
        weights, _, source, target = self._pair()
        source.value = 2.0
        target.delta = 0.1
        target.adjust_weights(0.5)
        assert weights[0][0] == pytest.approx(0.5 + 0.5 * 0.1 * 1.0)
        assert weights[0][1] == pytest.approx(-0.25 + 0.5 * 0.1 * 2.0)
        syn = source.outputs[0]
        assert (syn.boundary, syn.offset) == (0, 1)
