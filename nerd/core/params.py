"""
Stored network parameters and network identifiers.

A network id has the shape

    <series>-<sha1 of inputs>-<sha1 of outputs>-<kind>

where only the series part may itself contain dashes. The kind suffix is
what lets a loader pick the right network implementation for a stored
parameter set.
"""

import hashlib
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

import numpy as np

from .errors import ValidationError


# Largest error a network may make per weight before more data is needed
MAX_ERROR_PER_WEIGHT = 0.1


class NetworkKind(str, Enum):
    MLP = 'mlp'


def parse_kind(value: str) -> NetworkKind:
    """Convert a kind tag to NetworkKind, raising ValidationError if unknown."""
    try:
        return NetworkKind(value)
    except ValueError:
        raise ValidationError(
            f"unknown network kind {value!r}, available: {[k.value for k in NetworkKind]}"
        ) from None


def label_hash(labels: List[str]) -> str:
    return hashlib.sha1(''.join(labels).encode('utf-8')).hexdigest()


def network_id(series_id: str, inputs: List[str], outputs: List[str], kind) -> str:
    """Build the id under which a network's parameters are stored."""
    kind = parse_kind(kind.value if isinstance(kind, NetworkKind) else kind)
    return f"{series_id}-{label_hash(inputs)}-{label_hash(outputs)}-{kind.value}"


def id_to_kind(net_id: str) -> NetworkKind:
    """Extract the network kind from a network id."""
    parts = net_id.split('-')
    if len(parts) < 4:
        raise ValidationError(f"network id {net_id!r} has an incorrect format")
    return parse_kind(parts[-1])


def mlp_topology(n_inputs: int, n_outputs: int, hidden_layers: int) -> List[int]:
    """Input layer, hidden_layers layers as wide as the input, then the output layer."""
    return [n_inputs] * (hidden_layers + 1) + [n_outputs]


def total_weights(topology: List[int]) -> int:
    """Weights across all boundaries, counting one bias unit per non-output layer."""
    return sum((topology[i] + 1) * topology[i + 1] for i in range(len(topology) - 1))


def required_points(n_inputs: int, n_outputs: int, hidden_layers: int) -> int:
    """Number of points needed before a network of that shape is worth training."""
    weights = total_weights(mlp_topology(n_inputs, n_outputs, hidden_layers))
    return int(math.ceil(weights / MAX_ERROR_PER_WEIGHT))


@dataclass
class NetworkParams:
    """
    Everything needed to rebuild a trained network.

    Attributes:
        topology: Neurons per layer, bias units excluded
        inputs: Input labels in first-layer order
        outputs: Output labels in last-layer order
        weights: One flat float64 array per layer boundary
        averages: Per-label mean over the last training partition
        deviations: Per-label sample deviation over the same partition
        accuracy: Fraction of held-out points within err_margin, -1 if untested
    """
    topology: List[int]
    inputs: List[str]
    outputs: List[str]
    weights: List[np.ndarray]
    activation_func: str
    learning_rate: float
    averages: Dict[str, float] = field(default_factory=dict)
    deviations: Dict[str, float] = field(default_factory=dict)
    epoch: int = 0
    err_margin: float = 0.0
    accuracy: float = -1.0

    @property
    def hidden_layers(self) -> int:
        return len(self.topology) - 2

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'accuracy': self.accuracy,
            'activation_func': self.activation_func,
            'averages': dict(self.averages),
            'deviations': dict(self.deviations),
            'epoch': self.epoch,
            'err_margin': self.err_margin,
            'inputs': list(self.inputs),
            'learning_rate': self.learning_rate,
            'outputs': list(self.outputs),
            'topology': list(self.topology),
            'weights': [w.tolist() for w in self.weights],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'NetworkParams':
        """Create from dictionary."""
        try:
            return cls(
                topology=[int(n) for n in data['topology']],
                inputs=list(data['inputs']),
                outputs=list(data['outputs']),
                weights=[np.asarray(w, dtype=np.float64) for w in data['weights']],
                activation_func=data['activation_func'],
                learning_rate=float(data['learning_rate']),
                averages={k: float(v) for k, v in data.get('averages', {}).items()},
                deviations={k: float(v) for k, v in data.get('deviations', {}).items()},
                epoch=int(data.get('epoch', 0)),
                err_margin=float(data.get('err_margin', 0.0)),
                accuracy=float(data.get('accuracy', -1.0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"malformed network parameters: {e}") from e

    def brief(self, net_id: str) -> Dict[str, Any]:
        """Summary returned by the nets listing endpoints."""
        return {
            'id': net_id,
            'type': id_to_kind(net_id).value,
            'accuracy': self.accuracy,
            'activation_func': self.activation_func,
            'averages': dict(self.averages),
            'deviations': dict(self.deviations),
            'err_margin': self.err_margin,
            'hidden_layers': self.hidden_layers,
            'inputs': list(self.inputs),
            'learning_rate': self.learning_rate,
            'outputs': list(self.outputs),
        }
