"""
Genetic hyperparameter search.

Usage:
    from nerd.evolution import Population

    population = Population(ml_params, rng=np.random.default_rng(7))
    network = population.optimal(request, ['size'], points)
"""

from .chromosome import Chromosome, Evaluated, Unevaluated
from .operators import crossover, mutate
from .population import Population, random_chromosome

__all__ = [
    'Chromosome',
    'Evaluated',
    'Unevaluated',
    'crossover',
    'mutate',
    'Population',
    'random_chromosome',
]
