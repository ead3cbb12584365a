"""
Chromosome: one candidate set of network hyperparameters.

Genes:
    0 - activation function
    1 - hidden layer count
    2 - learning rate
The network kind rides along but is never crossed over or mutated.

A chromosome is either Unevaluated or Evaluated(network, fitness); the
trained network and its fitness can only exist together.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

import numpy as np

from ..core.activations import get_activation
from ..core.errors import ValidationError
from ..core.nets import new_network
from ..core.network import MLP
from ..core.params import NetworkKind, network_id, parse_kind

logger = logging.getLogger(__name__)


ACTIVATION_GENE = 0
HIDDEN_LAYERS_GENE = 1
LEARNING_RATE_GENE = 2
GENES = (ACTIVATION_GENE, HIDDEN_LAYERS_GENE, LEARNING_RATE_GENE)


@dataclass(frozen=True)
class Unevaluated:
    pass


@dataclass(frozen=True)
class Evaluated:
    network: MLP
    fitness: float


@dataclass
class Chromosome:
    """
    Attributes:
        activation_func: Name of a registered activation
        hidden_layers: Number of hidden layers
        learning_rate: Backpropagation learning rate
        kind: Network family to build
        state: Unevaluated, or the trained network with its fitness
    """
    activation_func: str
    hidden_layers: int
    learning_rate: float
    kind: NetworkKind = NetworkKind.MLP
    state: Union[Unevaluated, Evaluated] = field(default_factory=Unevaluated)

    def __post_init__(self):
        get_activation(self.activation_func)
        self.kind = parse_kind(self.kind.value if isinstance(self.kind, NetworkKind) else self.kind)
        if self.hidden_layers < 0:
            raise ValidationError(f"hidden layer count must not be negative, got {self.hidden_layers}")
        if self.learning_rate <= 0:
            raise ValidationError(f"learning rate must be positive, got {self.learning_rate}")

    @property
    def evaluated(self) -> bool:
        return isinstance(self.state, Evaluated)

    @property
    def fitness(self) -> float:
        """Accuracy of the trained network, -1 while unevaluated."""
        if isinstance(self.state, Evaluated):
            return self.state.fitness
        return -1.0

    @property
    def network(self) -> Optional[MLP]:
        if isinstance(self.state, Evaluated):
            return self.state.network
        return None

    def cleared(self, **genes) -> 'Chromosome':
        """Copy with some genes replaced and the evaluation dropped."""
        values = {
            'activation_func': self.activation_func,
            'hidden_layers': self.hidden_layers,
            'learning_rate': self.learning_rate,
            'kind': self.kind,
        }
        values.update(genes)
        return Chromosome(**values)

    def check(self, request, outputs: List[str], points: Sequence, ml_params,
              rng: Optional[np.random.Generator] = None):
        """
        Train a network from the genes and record its fitness.

        Does nothing when the chromosome is already evaluated.

        Args:
            request: TrainRequest the search runs for
            outputs: Output labels the network predicts
            points: Training points, most recent first
            ml_params: MLParams with max_epoch, test_set and tolerance
            rng: Generator for weight init and test slice placement
        """
        if self.evaluated:
            return
        net_id = network_id(request.series_id, request.inputs, outputs, self.kind)
        network = new_network(
            net_id, self.kind, request.inputs, outputs, self.hidden_layers,
            self.activation_func, self.learning_rate, rng,
        )
        fitness = network.train(
            points, ml_params.max_epoch, request.err_margin,
            ml_params.test_set, ml_params.tolerance,
        )
        logger.debug("%s (%s, %d hidden, lr %s) fitness %.4f", net_id, self.activation_func,
                     self.hidden_layers, self.learning_rate, fitness)
        self.state = Evaluated(network, fitness)
