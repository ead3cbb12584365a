"""
Genetic search over network hyperparameters.

Each generation crosses the two fittest chromosomes, occasionally mutates
the offspring, and lets the better offspring replace the least fit
individual. Fitness is the held-out accuracy of a freshly trained network.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from ..core.activations import list_activations
from ..core.errors import ValidationError
from ..core.network import MLP
from ..core.params import NetworkKind
from .chromosome import GENES, Chromosome
from .operators import crossover, mutate

logger = logging.getLogger(__name__)


# One in MUTATION_ODDS offspring pairs gets mutated
MUTATION_ODDS = 5


def random_chromosome(rng: np.random.Generator, min_hidden: int, max_hidden: int) -> Chromosome:
    """
    Draw a chromosome with uniformly random genes.

    The hidden layer count is drawn from [min_hidden, min_hidden + max_hidden],
    so it can exceed max_hidden.
    """
    activations = list_activations()
    kinds = list(NetworkKind)
    return Chromosome(
        activation_func=activations[int(rng.integers(len(activations)))],
        hidden_layers=int(rng.integers(max_hidden + 1)) + min_hidden,
        learning_rate=(int(rng.integers(1000)) + 1) / 1000,
        kind=kinds[int(rng.integers(len(kinds)))],
    )


class Population:
    """
    Fixed-size set of chromosomes evolved over a number of generations.

    Args:
        ml_params: MLParams with generations, variations, hidden layer bounds
            and the training parameters shared by every candidate
        rng: Generator used for every random draw of the search
    """

    def __init__(self, ml_params, rng: Optional[np.random.Generator] = None):
        if ml_params.variations < 2:
            raise ValidationError(f"a population needs at least 2 variations, got {ml_params.variations}")
        self.params = ml_params
        self.rng = rng if rng is not None else np.random.default_rng()
        self.individuals: List[Chromosome] = [
            random_chromosome(self.rng, ml_params.min_hidden_layers, ml_params.max_hidden_layers)
            for _ in range(ml_params.variations)
        ]
        self.first = -1
        self.second = -1
        self.last = -1

    def rank(self, request, outputs: List[str], points: Sequence):
        """
        Evaluate every individual and locate the fittest, second fittest and
        least fit ones in a single pass.

        Ties keep the earliest index for the two fittest and the latest for
        the least fit, so the three differ whenever there are 3+ individuals.
        """
        for individual in self.individuals:
            individual.check(request, outputs, points, self.params, self.rng)

        first = second = last = -1
        for idx, individual in enumerate(self.individuals):
            fitness = individual.fitness
            if first == -1 or fitness > self.individuals[first].fitness:
                first, second = idx, first
            elif second == -1 or fitness > self.individuals[second].fitness:
                second = idx
            if last == -1 or fitness <= self.individuals[last].fitness:
                last = idx
        self.first, self.second, self.last = first, second, last

    def step(self, request, outputs: List[str], points: Sequence):
        """Run one generation."""
        self.rank(request, outputs, points)
        best = self.individuals[self.first]
        logger.debug("fittest %.4f, second %.4f, least fit %.4f", best.fitness,
                     self.individuals[self.second].fitness, self.individuals[self.last].fitness)

        depth = int(self.rng.integers(3))
        offspring = list(crossover(best, self.individuals[self.second], depth))
        if self.rng.integers(MUTATION_ODDS) == 0:
            offspring = [mutate(child, GENES[int(self.rng.integers(len(GENES)))], self.rng)
                         for child in offspring]
        for child in offspring:
            child.check(request, outputs, points, self.params, self.rng)

        if offspring[0].fitness > offspring[1].fitness:
            self.individuals[self.last] = offspring[0]
        else:
            self.individuals[self.last] = offspring[1]

    def optimal(self, request, outputs: List[str], points: Sequence) -> MLP:
        """
        Search for the best network predicting outputs from request.inputs.

        Returns:
            Trained network of the fitter of the last ranked fittest
            individual and the (possibly replaced) least fit slot.
        """
        for generation in range(self.params.generations):
            self.step(request, outputs, points)
            logger.debug("generation %d of %d done for %s", generation + 1,
                         self.params.generations, request.series_id)
        if self.first == -1:
            self.rank(request, outputs, points)

        best, candidate = self.individuals[self.first], self.individuals[self.last]
        if candidate.fitness > best.fitness:
            return candidate.network
        return best.network
