"""
Tests for the genetic hyperparameter search.

Run with: python -m pytest tests/test_evolution.py -v
"""

import numpy as np
import pytest

from nerd.core.activations import list_activations
from nerd.core.errors import DataError, ValidationError
from nerd.core.network import MLP
from nerd.core.params import NetworkKind, network_id
from nerd.evolution import (
    Chromosome,
    Evaluated,
    Population,
    Unevaluated,
    crossover,
    mutate,
    random_chromosome,
)
from nerd.evolution.operators import mutate_learning_rate, rate_unit

from conftest import make_points


def evaluated(fitness, **genes):
    values = {'activation_func': 'tanh', 'hidden_layers': 2, 'learning_rate': 0.1}
    values.update(genes)
    return Chromosome(state=Evaluated(None, fitness), **values)


class TestChromosome:
    """Tests for chromosome state and evaluation."""

    def test_starts_unevaluated(self):
        chromosome = Chromosome('tanh', 1, 0.1)
        assert isinstance(chromosome.state, Unevaluated)
        assert chromosome.fitness == -1
        assert chromosome.network is None
        assert chromosome.kind is NetworkKind.MLP

    def test_kind_from_string(self):
        assert Chromosome('tanh', 1, 0.1, kind='mlp').kind is NetworkKind.MLP

    @pytest.mark.parametrize('genes', [
        {'activation_func': 'relu6', 'hidden_layers': 1, 'learning_rate': 0.1},
        {'activation_func': 'tanh', 'hidden_layers': -1, 'learning_rate': 0.1},
        {'activation_func': 'tanh', 'hidden_layers': 1, 'learning_rate': 0.0},
        {'activation_func': 'tanh', 'hidden_layers': 1, 'learning_rate': 0.1, 'kind': 'rnn'},
    ])
    def test_invalid_genes(self, genes):
        with pytest.raises(ValidationError):
            Chromosome(**genes)

    def test_check_trains_network(self, request_ab, points, ml_params):
        chromosome = Chromosome('bipolar-sigmoid', 1, 0.1)
        chromosome.check(request_ab, ['sum'], points, ml_params, np.random.default_rng(0))

        assert chromosome.evaluated
        network = chromosome.network
        assert isinstance(network, MLP)
        assert network.id == network_id('shop', ['a', 'b'], ['sum'], 'mlp')
        assert network.params.topology == [2, 2, 1]
        assert 0 <= chromosome.fitness <= 1
        assert network.params.accuracy == chromosome.fitness

    def test_check_is_idempotent(self, request_ab, points, ml_params):
        chromosome = Chromosome('tanh', 1, 0.1)
        chromosome.check(request_ab, ['sum'], points, ml_params, np.random.default_rng(1))
        network = chromosome.network
        chromosome.check(request_ab, ['sum'], points, ml_params, np.random.default_rng(2))
        assert chromosome.network is network

    def test_check_propagates_data_errors(self, request_ab, ml_params):
        chromosome = Chromosome('tanh', 1, 0.1)
        with pytest.raises(DataError):
            chromosome.check(request_ab, ['flat'], make_points(20, flat=True), ml_params)
        assert not chromosome.evaluated


class TestCrossover:
    """Tests for gene swapping."""

    def _parents(self):
        a = evaluated(0.9, activation_func='tanh', hidden_layers=1, learning_rate=0.1)
        b = evaluated(0.5, activation_func='softsign', hidden_layers=4, learning_rate=0.3)
        return a, b

    def test_depth_zero_swaps_learning_rate(self):
        a, b = self._parents()
        x, y = crossover(a, b, 0)
        assert (x.learning_rate, y.learning_rate) == (0.3, 0.1)
        assert (x.hidden_layers, y.hidden_layers) == (1, 4)
        assert (x.activation_func, y.activation_func) == ('tanh', 'softsign')

    def test_depth_one_swaps_hidden_layers(self):
        a, b = self._parents()
        x, y = crossover(a, b, 1)
        assert (x.learning_rate, y.learning_rate) == (0.3, 0.1)
        assert (x.hidden_layers, y.hidden_layers) == (4, 1)
        assert (x.activation_func, y.activation_func) == ('tanh', 'softsign')

    def test_depth_two_swaps_activation(self):
        a, b = self._parents()
        x, y = crossover(a, b, 2)
        assert (x.learning_rate, y.learning_rate) == (0.3, 0.1)
        assert (x.hidden_layers, y.hidden_layers) == (4, 1)
        assert (x.activation_func, y.activation_func) == ('softsign', 'tanh')

    @pytest.mark.parametrize('depth', [0, 1, 2])
    def test_offspring_are_unevaluated(self, depth):
        a, b = self._parents()
        for child in crossover(a, b, depth):
            assert isinstance(child.state, Unevaluated)
            assert child.network is None
            assert child.kind is NetworkKind.MLP

    def test_parents_untouched(self):
        a, b = self._parents()
        crossover(a, b, 2)
        assert a.fitness == 0.9
        assert a.learning_rate == 0.1


class TestMutate:
    """Tests for single gene mutation."""

    def test_one_hidden_layer_becomes_two(self):
        for seed in range(20):
            child = mutate(Chromosome('tanh', 1, 0.1), 1, np.random.default_rng(seed))
            assert child.hidden_layers == 2

    def test_hidden_layers_step_by_one(self):
        results = {mutate(Chromosome('tanh', 3, 0.1), 1, np.random.default_rng(s)).hidden_layers
                   for s in range(30)}
        assert results == {2, 4}

    def test_unit_learning_rate_grows(self):
        for seed in range(20):
            child = mutate(Chromosome('tanh', 1, 0.01), 2, np.random.default_rng(seed))
            assert child.learning_rate == 0.02

    def test_learning_rate_steps_by_unit(self):
        results = {mutate(Chromosome('tanh', 1, 0.02), 2, np.random.default_rng(s)).learning_rate
                   for s in range(30)}
        assert results == {0.01, 0.03}

    def test_learning_rate_stays_positive(self):
        rng = np.random.default_rng(3)
        rate = 0.35
        for _ in range(200):
            rate = mutate_learning_rate(rate, rng)
            assert rate > 0

    def test_rate_unit(self):
        assert rate_unit(0.01) == pytest.approx(0.01)
        assert rate_unit(0.35) == pytest.approx(0.1)
        assert rate_unit(0.007) == pytest.approx(0.001)
        assert rate_unit(1.0) == pytest.approx(1.0)

    def test_activation_resampled_from_registry(self):
        for seed in range(10):
            child = mutate(Chromosome('tanh', 1, 0.1), 0, np.random.default_rng(seed))
            assert child.activation_func in list_activations()

    @pytest.mark.parametrize('gene', [0, 1, 2, 7])
    def test_mutation_clears_evaluation(self, gene):
        parent = evaluated(0.8)
        child = mutate(parent, gene, np.random.default_rng(0))
        assert isinstance(child.state, Unevaluated)
        assert parent.fitness == 0.8

    def test_unknown_gene_keeps_genes(self):
        parent = evaluated(0.8)
        child = mutate(parent, 7, np.random.default_rng(0))
        assert (child.activation_func, child.hidden_layers, child.learning_rate) == ('tanh', 2, 0.1)


class TestPopulation:
    """Tests for population init, ranking and the search."""

    def test_random_chromosome_ranges(self):
        rng = np.random.default_rng(0)
        for _ in range(200):
            chromosome = random_chromosome(rng, 2, 3)
            # The count is drawn from [min, min + max]
            assert 2 <= chromosome.hidden_layers <= 5
            assert 0 < chromosome.learning_rate <= 1
            assert chromosome.activation_func in list_activations()
            assert chromosome.kind is NetworkKind.MLP

    def test_hidden_layers_can_exceed_max(self):
        rng = np.random.default_rng(1)
        counts = {random_chromosome(rng, 2, 3).hidden_layers for _ in range(300)}
        assert max(counts) == 5

    def test_size(self, ml_params):
        population = Population(ml_params, np.random.default_rng(0))
        assert len(population.individuals) == ml_params.variations
        assert all(not c.evaluated for c in population.individuals)

    def test_too_few_variations(self, ml_params):
        ml_params.variations = 1
        with pytest.raises(ValidationError):
            Population(ml_params)

    def test_rank(self, ml_params, request_ab):
        population = Population(ml_params, np.random.default_rng(0))
        population.individuals = [evaluated(f) for f in (0.5, 0.9, 0.1, 0.7)]
        population.rank(request_ab, ['sum'], [])
        assert (population.first, population.second, population.last) == (1, 3, 2)

    def test_rank_ties_stay_distinct(self, ml_params, request_ab):
        population = Population(ml_params, np.random.default_rng(0))
        population.individuals = [evaluated(0.5) for _ in range(4)]
        population.rank(request_ab, ['sum'], [])
        assert (population.first, population.second, population.last) == (0, 1, 3)

    def test_rank_evaluates_everyone(self, ml_params, request_ab, points):
        population = Population(ml_params, np.random.default_rng(2))
        population.rank(request_ab, ['sum'], points)
        fitness = [c.fitness for c in population.individuals]
        assert all(c.evaluated for c in population.individuals)
        assert fitness[population.first] == max(fitness)
        assert fitness[population.last] == min(fitness)
        assert len({population.first, population.second, population.last}) == 3

    def test_step_replaces_least_fit(self, ml_params, request_ab, points):
        population = Population(ml_params, np.random.default_rng(3))
        population.individuals = [
            Chromosome('tanh', 1, 0.1), Chromosome('tanh', 1, 0.2), evaluated(-5.0),
        ]
        population.step(request_ab, ['sum'], points)
        assert population.last == 2
        replaced = population.individuals[2]
        assert replaced.evaluated
        assert replaced.fitness > -5.0

    def test_optimal(self, ml_params, request_ab, points):
        population = Population(ml_params, np.random.default_rng(4))
        network = population.optimal(request_ab, ['sum'], points)
        assert isinstance(network, MLP)
        assert network.params.outputs == ['sum']
        assert network.params.accuracy >= max(c.fitness for c in population.individuals)

    def test_optimal_without_generations(self, ml_params, request_ab, points):
        ml_params.generations = 0
        population = Population(ml_params, np.random.default_rng(5))
        network = population.optimal(request_ab, ['sum'], points)
        assert network is population.individuals[population.first].network

    def test_optimal_is_reproducible(self, ml_params, request_ab, points):
        first = Population(ml_params, np.random.default_rng(6)).optimal(request_ab, ['diff'], points)
        second = Population(ml_params, np.random.default_rng(6)).optimal(request_ab, ['diff'], points)
        assert first.params.to_dict() == second.params.to_dict()

    def test_optimal_aborts_on_errors(self, ml_params, request_ab):
        population = Population(ml_params, np.random.default_rng(7))
        with pytest.raises(DataError):
            population.optimal(request_ab, ['flat'], make_points(20, flat=True))
