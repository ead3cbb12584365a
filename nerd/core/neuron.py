"""
Neurons and the synapses between them.

Weights are not owned by synapses. Each layer boundary of a network has one
flat weight array (the arena); a synapse only records which boundary and
which offset in it carries its weight, so the forward pass and the weight
updates of backpropagation address the very same slot.
"""

from typing import List

import numpy as np

from .activations import Activation


class Synapse:
    """Directed link to another neuron plus the address of its weight."""

    __slots__ = ('neuron', 'boundary', 'offset')

    def __init__(self, neuron: 'Neuron', boundary: int, offset: int):
        self.neuron = neuron
        self.boundary = boundary
        self.offset = offset

    def __repr__(self):
        return f"Synapse(boundary={self.boundary}, offset={self.offset})"


class Neuron:
    """
    A single unit of a network.

    Both value and delta start at 1 and 0. Bias units and first-layer units
    have no inputs, so refresh_value never touches them.
    """

    def __init__(self, weights: List[np.ndarray], activation: Activation):
        self.weights = weights
        self.activation = activation
        self.value = 1.0
        self.delta = 0.0
        self.inputs: List[Synapse] = []
        self.outputs: List[Synapse] = []

    def connect(self, source: 'Neuron', boundary: int, offset: int):
        """Wire source -> self through the weight at (boundary, offset)."""
        self.inputs.append(Synapse(source, boundary, offset))
        source.outputs.append(Synapse(self, boundary, offset))

    def refresh_value(self) -> float:
        if not self.inputs:
            return self.value
        total = 0.0
        for syn in self.inputs:
            total += syn.neuron.value * self.weights[syn.boundary][syn.offset]
        self.value = float(self.activation(total))
        return self.value

    def refresh_delta(self) -> float:
        if not self.outputs:
            return self.delta
        total = 0.0
        for syn in self.outputs:
            total += syn.neuron.delta * self.weights[syn.boundary][syn.offset]
        self.delta = float(total * self.activation.grad(self.value))
        return self.delta

    def adjust_weights(self, learning_rate: float):
        """Apply lr * delta * upstream value to every incoming weight."""
        for syn in self.inputs:
            self.weights[syn.boundary][syn.offset] += learning_rate * self.delta * syn.neuron.value

    def __repr__(self):
        return f"Neuron(value={self.value:.4f}, delta={self.delta:.4f})"
