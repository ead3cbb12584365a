"""
Activation functions available to the hyperparameter search.

Derivatives are written in terms of the activation's *output*: during
backpropagation a neuron only keeps its post-activation value, so F'(y)
is what the delta computation can actually use.
"""

import numpy as np
from typing import Callable, Dict, List

from .errors import ValidationError


def bipolar_sigmoid(x):
    """Sigmoid rescaled to (-1, 1)."""
    # Clip to avoid overflow
    x = np.clip(x, -500, 500)
    return 2.0 / (1.0 + np.exp(-x)) - 1.0


def bipolar_sigmoid_derivative(y):
    return 0.5 * (1.0 + y) * (1.0 - y)


def tanh(x):
    return np.tanh(x)


def tanh_derivative(y):
    return 1.0 - y * y


def softsign(x):
    """x / (1 + |x|) - bounded like tanh but with polynomial tails."""
    return x / (1.0 + np.abs(x))


def softsign_derivative(y):
    return (1.0 - np.abs(y)) ** 2


class Activation:
    """Activation function paired with its output-space derivative."""

    def __init__(self, name: str, func: Callable, derivative: Callable):
        self.name = name
        self.func = func
        self.derivative = derivative

    def __call__(self, x):
        return self.func(x)

    def grad(self, y):
        """Derivative evaluated at an activation output y."""
        return self.derivative(y)

    def __repr__(self):
        return f"Activation({self.name})"


DEFAULT_ACTIVATION = 'bipolar-sigmoid'

ACTIVATIONS: Dict[str, Activation] = {
    'bipolar-sigmoid': Activation(
        name='bipolar-sigmoid',
        func=bipolar_sigmoid,
        derivative=bipolar_sigmoid_derivative,
    ),
    'tanh': Activation(
        name='tanh',
        func=tanh,
        derivative=tanh_derivative,
    ),
    'softsign': Activation(
        name='softsign',
        func=softsign,
        derivative=softsign_derivative,
    ),
}


def get_activation(name: str) -> Activation:
    """Look up an activation by name, raising ValidationError if unknown."""
    if name not in ACTIVATIONS:
        raise ValidationError(
            f"unknown activation {name!r}, available: {list(ACTIVATIONS.keys())}"
        )
    return ACTIVATIONS[name]


def list_activations() -> List[str]:
    return list(ACTIVATIONS.keys())
