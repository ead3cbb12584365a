"""
Evolutionary operators: crossover and mutation.

Both operators return fresh, unevaluated chromosomes and leave their
arguments untouched.
"""

import math
from decimal import Decimal
from typing import Tuple

import numpy as np

from ..core.activations import list_activations
from .chromosome import (
    ACTIVATION_GENE,
    HIDDEN_LAYERS_GENE,
    LEARNING_RATE_GENE,
    Chromosome,
)


# =============================================================================
# Crossover
# =============================================================================

def crossover(a: Chromosome, b: Chromosome, depth: int) -> Tuple[Chromosome, Chromosome]:
    """
    Swap genes between two parents.

    The learning rate is always swapped, depth >= 1 also swaps the hidden
    layer count and depth >= 2 the activation function.
    """
    genes_a = {'learning_rate': b.learning_rate}
    genes_b = {'learning_rate': a.learning_rate}
    if depth >= 1:
        genes_a['hidden_layers'], genes_b['hidden_layers'] = b.hidden_layers, a.hidden_layers
    if depth >= 2:
        genes_a['activation_func'], genes_b['activation_func'] = b.activation_func, a.activation_func
    return a.cleared(**genes_a), b.cleared(**genes_b)


# =============================================================================
# Mutation
# =============================================================================

def rate_unit(learning_rate: float) -> float:
    """Power of ten of the leading digit, e.g. 0.01 for 0.035."""
    return 10.0 ** Decimal(repr(learning_rate)).adjusted()


def mutate_hidden_layers(hidden_layers: int, rng: np.random.Generator) -> int:
    if hidden_layers <= 1:
        return hidden_layers + 1
    return hidden_layers + (1 if rng.integers(2) == 0 else -1)


def mutate_learning_rate(learning_rate: float, rng: np.random.Generator) -> float:
    """Step the rate by one unit of its leading digit; a rate equal to the unit only grows."""
    unit = rate_unit(learning_rate)
    if math.isclose(learning_rate, unit):
        return round(2 * unit, 12)
    step = unit if rng.integers(2) == 0 else -unit
    return round(learning_rate + step, 12)


def mutate(chromosome: Chromosome, gene: int, rng: np.random.Generator) -> Chromosome:
    """
    Mutate a single gene.

    Args:
        chromosome: Parent, left unchanged
        gene: 0 activation, 1 hidden layers, 2 learning rate; anything else
            returns an unevaluated copy with the same genes
        rng: Random generator

    Returns:
        New unevaluated chromosome
    """
    if gene == ACTIVATION_GENE:
        names = list_activations()
        return chromosome.cleared(activation_func=names[int(rng.integers(len(names)))])
    if gene == HIDDEN_LAYERS_GENE:
        return chromosome.cleared(hidden_layers=mutate_hidden_layers(chromosome.hidden_layers, rng))
    if gene == LEARNING_RATE_GENE:
        return chromosome.cleared(learning_rate=mutate_learning_rate(chromosome.learning_rate, rng))
    return chromosome.cleared()
