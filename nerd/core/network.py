"""
Multilayer perceptron built from individual neurons.

Layers are fully connected. Every layer but the last starts with a bias
unit whose value stays at 1, so a layer of width n is stored as n + 1
neurons. The network keeps per-label mean and deviation from its last
training run: inputs are normalized with them before propagation and
outputs are denormalized on the way out.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..logs import TRACE
from .activations import DEFAULT_ACTIVATION, get_activation
from .errors import DataError, DegenerateLabel, InputCountMismatch, ValidationError
from .neuron import Neuron
from .params import NetworkKind, NetworkParams, mlp_topology

logger = logging.getLogger(__name__)


def generate_weights(topology: List[int], rng: np.random.Generator) -> List[np.ndarray]:
    """Uniform weights in [-0.5, 0.5), one flat array per layer boundary."""
    return [
        rng.random((topology[i] + 1) * topology[i + 1]) - 0.5
        for i in range(len(topology) - 1)
    ]


def relative_change(new: float, old: float) -> float:
    """|1 - new/old|, with a zero old value treated as converged only if new is zero too."""
    if old == 0:
        return 0.0 if new == 0 else math.inf
    return abs(1.0 - new / old)


class MLP:
    """
    Feed-forward network trained with per-pattern backpropagation.

    Not safe for concurrent use: evaluate and train write neuron state.

    Args:
        net_id: Identifier the parameters are stored under
        params: Topology, weights and normalization statistics
        rng: Generator used to place the held-out test slice
    """

    kind = NetworkKind.MLP

    def __init__(self, net_id: str, params: NetworkParams, rng: Optional[np.random.Generator] = None):
        if len(params.weights) != len(params.topology) - 1:
            raise ValidationError(
                f"{len(params.weights)} weight arrays for {len(params.topology)} layers"
            )
        self.id = net_id
        self.params = params
        self.rng = rng if rng is not None else np.random.default_rng()
        self.activation = get_activation(params.activation_func)
        self.layers: List[List[Neuron]] = []
        self._build()

    @classmethod
    def new(cls, net_id: str, inputs: List[str], outputs: List[str], hidden_layers: int,
            activation_func: str = DEFAULT_ACTIVATION, learning_rate: float = 0.1,
            rng: Optional[np.random.Generator] = None) -> 'MLP':
        """Create an untrained network with random weights."""
        if not inputs or not outputs:
            raise ValidationError("a network needs at least one input and one output")
        if hidden_layers < 0:
            raise ValidationError(f"hidden layer count must not be negative, got {hidden_layers}")
        get_activation(activation_func)
        rng = rng if rng is not None else np.random.default_rng()
        topology = mlp_topology(len(inputs), len(outputs), hidden_layers)
        params = NetworkParams(
            topology=topology,
            inputs=list(inputs),
            outputs=list(outputs),
            weights=generate_weights(topology, rng),
            activation_func=activation_func,
            learning_rate=learning_rate,
        )
        return cls(net_id, params, rng)

    def _build(self):
        topology = self.params.topology
        last = len(topology) - 1
        for i, width in enumerate(topology):
            size = width if i == last else width + 1
            self.layers.append([Neuron(self.params.weights, self.activation) for _ in range(size)])

        for i in range(1, len(self.layers)):
            prev = self.layers[i - 1]
            expected = len(prev) * (len(self.layers[i]) - (0 if i == last else 1))
            if len(self.params.weights[i - 1]) != expected:
                raise ValidationError(
                    f"boundary {i - 1} has {len(self.params.weights[i - 1])} weights, expected {expected}"
                )
            for j, neuron in enumerate(self.layers[i]):
                if i != last and j == 0:
                    continue  # bias
                section = len(prev) * (j if i == last else j - 1)
                for n, source in enumerate(prev):
                    neuron.connect(source, i - 1, section + n)
                logger.log(TRACE, "layer %d neuron %d reads boundary %d from offset %d", i, j, i - 1, section)

    @property
    def neuron_count(self) -> int:
        """All neurons, bias units included."""
        return sum(len(layer) for layer in self.layers)

    # =========================================================================
    # Normalization
    # =========================================================================

    def _normalize(self, label: str, value: float) -> float:
        if label in self.params.averages and label in self.params.deviations:
            return (value - self.params.averages[label]) / self.params.deviations[label]
        return value

    def _denormalize(self, label: str, value: float) -> float:
        if label in self.params.averages and label in self.params.deviations:
            return value * self.params.deviations[label] + self.params.averages[label]
        return value

    def _update_norm_stats(self, points: Sequence):
        """Mean and sample deviation of every value label of the first point."""
        if len(points) <= 1:
            logger.warning("not enough training points to compute statistics for %s", self.id)
            return
        averages, deviations = {}, {}
        for label in sorted(points[0].values):
            column = np.array([_value(p, label) for p in points], dtype=np.float64)
            dev = float(np.std(column, ddof=1))
            if dev == 0:
                raise DegenerateLabel(label)
            averages[label] = float(np.mean(column))
            deviations[label] = dev
        self.params.averages = averages
        self.params.deviations = deviations

    # =========================================================================
    # Forward and backward passes
    # =========================================================================

    def evaluate(self, inputs: Dict[str, float]) -> Dict[str, float]:
        """
        Propagate the given input values and return the denormalized outputs.

        Args:
            inputs: Label -> value; must cover every input label of the network

        Raises:
            InputCountMismatch: if fewer values than input neurons were given
        """
        expected = self.params.topology[0]
        if len(inputs) < expected:
            raise InputCountMismatch(expected, len(inputs))

        first = self.layers[0]
        for n, label in enumerate(self.params.inputs):
            if label not in inputs:
                raise InputCountMismatch(expected, sum(1 for name in self.params.inputs if name in inputs))
            first[n + 1].value = self._normalize(label, float(inputs[label]))

        for layer in self.layers[1:]:
            for neuron in layer:
                neuron.refresh_value()

        return {
            label: self._denormalize(label, neuron.value)
            for label, neuron in zip(self.params.outputs, self.layers[-1])
        }

    def _backpropagate(self, targets: Dict[str, float]):
        """Compute every delta against the targets, then adjust all weights."""
        for label, neuron in zip(self.params.outputs, self.layers[-1]):
            expected = self._normalize(label, _value_of(targets, label))
            neuron.delta = (expected - neuron.value) * self.activation.grad(neuron.value)

        for layer in reversed(self.layers[1:-1]):
            for neuron in layer:
                neuron.refresh_delta()

        lr = self.params.learning_rate
        for layer in self.layers[1:]:
            for neuron in layer:
                neuron.adjust_weights(lr)

    # =========================================================================
    # Training
    # =========================================================================

    def train(self, points: Sequence, max_epoch: int, err_margin: float,
              test_fraction: float, tolerance: float) -> float:
        """
        Train on points, holding out a contiguous slice for testing.

        Training stops after max_epoch epochs or once the relative change of
        the epoch error drops below tolerance.

        Returns:
            Accuracy over the held-out slice, or -1 when nothing was held out.
        """
        if not points:
            raise DataError(f"no points to train {self.id} with")

        n_points = len(points)
        n_test = int(math.floor(n_points * test_fraction))
        start = end = 0
        if test_fraction > 0:
            start = int(self.rng.integers(0, n_points - n_test + 1))
            end = start + n_test

        training = [p for i, p in enumerate(points) if not start <= i < end]
        if not training:
            raise DataError(f"no training points left for {self.id} after holding out {n_test}")
        self._update_norm_stats(training)

        rmse_old, rmse_new = 1.0, -1.0
        epoch = 0
        while epoch < max_epoch and relative_change(rmse_new, rmse_old) >= tolerance:
            squared = 0.0
            for point in training:
                outputs = self.evaluate(point.values)
                self._backpropagate(point.values)
                for label, out in outputs.items():
                    squared += (out - _value(point, label)) ** 2
            rmse_old = rmse_new
            rmse_new = squared / (len(training) * self.neuron_count)
            epoch += 1
        self.params.epoch = epoch
        logger.debug("%s trained for %d epochs, error %.6f", self.id, epoch, rmse_new)

        if test_fraction <= 0 or n_test == 0:
            return -1.0

        errors = 0
        for point in points[start:end]:
            outputs = self.evaluate(point.values)
            if any(abs(out - _value(point, label)) > err_margin for label, out in outputs.items()):
                errors += 1
        accuracy = 1.0 - errors / n_test
        self.params.accuracy = accuracy
        self.params.err_margin = err_margin
        return accuracy

    def __repr__(self):
        return f"MLP({self.id}, topology={self.params.topology})"


def _value_of(values: Dict[str, float], label: str) -> float:
    try:
        return float(values[label])
    except KeyError:
        raise DataError(f"point has no value for label {label!r}") from None


def _value(point, label: str) -> float:
    return _value_of(point.values, label)
