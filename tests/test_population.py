import math
import random

import numpy as np
import pytest

from symbolic_gp.ast_nodes import BinaryOp, Constant, UnaryOp, Variable
from symbolic_gp.config import GPConfig
from symbolic_gp.exceptions import NotInitializedError
from symbolic_gp.population import (EMPTY_SAMPLE_FITNESS, INVALID_POINT_PENALTY,
                                    GenerationResult, Population)


def identity(x):
    return x


@pytest.fixture
def make_population():
    def factory(seed=0, **overrides):
        settings = dict(target_function=identity, population_size=20, max_depth=4,
                        mutation_rate=0.2, crossover_rate=0.9)
        settings.update(overrides)
        return Population(GPConfig(**settings), seed=seed)
    return factory


def node_ids(tree):
    return {id(node) for node in tree.get_all_nodes()}


def test_sample_set(make_population):
    pop = make_population()
    assert len(pop.sample_points) == 200
    assert pop.sample_points[0] == -3.0
    assert pop.sample_points[-1] == 3.0
    assert np.allclose(pop.target_values, pop.sample_points)


@pytest.mark.parametrize('max_depth', [1, 2, 3, 5, 7])
@pytest.mark.parametrize('method', ['grow', 'full'])
def test_generated_trees_respect_max_depth(make_population, max_depth, method):
    pop = make_population(seed=max_depth, max_depth=max_depth)
    for _ in range(100):
        tree = pop.generate_tree(0, method)
        assert tree.size() >= 1
        assert tree.depth() <= max_depth


def test_full_method_builds_balanced_operator_levels(make_population):
    pop = make_population(max_depth=4)
    for _ in range(20):
        tree = pop.generate_tree(0, 'full')
        assert tree.depth() == 3


def test_generate_tree_rejects_unknown_method(make_population):
    with pytest.raises(ValueError):
        make_population().generate_tree(0, 'ramped')


def test_generated_constants_are_rounded(make_population):
    pop = make_population()
    constants = [node for node in (pop.generate_terminal() for _ in range(300))
                 if isinstance(node, Constant)]
    assert constants
    for node in constants:
        assert -5 <= node.value <= 5
        assert node.value == round(node.value, 2)


def test_initialize_uses_ramped_half_and_half(make_population, monkeypatch):
    pop = make_population(population_size=11)
    methods = []
    original = pop.generate_tree

    def spy(depth=0, method='grow'):
        if depth == 0:
            methods.append(method)
        return original(depth, method)

    monkeypatch.setattr(pop, 'generate_tree', spy)
    pop.initialize()

    assert len(pop.individuals) == 11
    assert methods == ['grow'] * 5 + ['full'] * 6


def test_exact_fit_has_zero_fitness(make_population):
    assert make_population().calculate_fitness(Variable()) == 0.0

    pop = make_population(target_function=math.sin)
    assert pop.calculate_fitness(UnaryOp('sin', Variable())) == pytest.approx(0.0, abs=1e-12)


def test_fitness_is_mean_squared_error(make_population):
    pop = make_population(target_function=lambda x: 0.0)
    assert pop.calculate_fitness(Constant(2)) == pytest.approx(4.0)
    assert pop.calculate_fitness(Variable()) == pytest.approx(np.mean(pop.sample_points ** 2))


def test_non_finite_targets_are_penalised(make_population):
    pop = make_population(target_function=lambda x: math.nan)
    assert pop.calculate_fitness(Variable()) == pytest.approx(INVALID_POINT_PENALTY)


def test_failing_target_points_become_penalties(make_population):
    pop = make_population(target_function=math.log)
    failed = int(np.sum(pop.sample_points <= 0))
    assert int(np.sum(np.isnan(pop.target_values))) == failed

    fitness = pop.calculate_fitness(Constant(0))
    assert math.isfinite(fitness)
    assert fitness >= INVALID_POINT_PENALTY * failed / 200


def test_empty_sample_set_returns_sentinel(make_population):
    pop = make_population(num_samples=0)
    assert pop.calculate_fitness(Variable()) == EMPTY_SAMPLE_FITNESS


def test_tournament_returns_clone_of_fittest(make_population):
    pop = make_population(population_size=2)
    good = Variable()
    pop.individuals = [good, Constant(100)]

    winner = pop.tournament_selection(tournament_size=60)
    assert str(winner) == "x"
    assert winner is not good


def test_tournament_with_single_draw_copies_population_member(make_population):
    pop = make_population()
    pop.initialize()
    strings = {str(ind) for ind in pop.individuals}
    for _ in range(10):
        assert str(pop.tournament_selection(tournament_size=1)) in strings


def test_crossover_of_leaves_swaps_values(make_population):
    pop = make_population()
    parent1 = Variable()
    parent2 = Constant(2)
    child = pop.crossover(parent1, parent2)

    assert str(child) == "2"
    assert child is not parent2
    assert str(parent1) == "x"


def test_crossover_pair_conserves_nodes(make_population):
    pop = make_population(seed=3)
    parent1 = BinaryOp('+', UnaryOp('sin', Variable()), Constant(1))
    parent2 = BinaryOp('*', Variable(), BinaryOp('-', Variable(), Constant(2)))

    for _ in range(20):
        child1, child2 = pop.crossover_pair(parent1, parent2)
        assert child1.size() + child2.size() == parent1.size() + parent2.size()
        assert node_ids(child1).isdisjoint(node_ids(child2))
        assert node_ids(child1).isdisjoint(node_ids(parent1) | node_ids(parent2))

    assert str(parent1) == "(sin(x) + 1)"
    assert str(parent2) == "(x * (x - 2))"


def test_mutate_leaves_original_untouched(make_population):
    pop = make_population(seed=5)
    original = BinaryOp('+', UnaryOp('sin', Variable()), Constant(1))
    for _ in range(20):
        mutant = pop.mutate(original)
        assert node_ids(mutant).isdisjoint(node_ids(original))
    assert str(original) == "(sin(x) + 1)"


def test_mutating_a_leaf_yields_a_grow_tree(make_population):
    pop = make_population(max_depth=3)
    for _ in range(20):
        assert pop.mutate(Variable()).depth() <= 3


def test_evolve_requires_initialize(make_population):
    with pytest.raises(NotInitializedError):
        make_population().evolve_generation()


def test_selection_only_scenario_keeps_population_size():
    config = GPConfig(target_function=lambda x: x, population_size=4, max_depth=2,
                      mutation_rate=0, crossover_rate=0)
    pop = Population(config, seed=11)
    pop.initialize()
    previous = {str(ind) for ind in pop.individuals}

    result = pop.evolve_generation()

    assert len(pop.individuals) == 4
    assert {str(ind) for ind in pop.individuals} <= previous
    assert isinstance(result, GenerationResult)


def test_elite_is_carried_into_slot_zero(make_population):
    pop = make_population(seed=2)
    pop.initialize()
    best_before = min(pop.calculate_fitness(ind) for ind in pop.individuals)

    pop.evolve_generation()
    assert pop.calculate_fitness(pop.individuals[0]) == best_before


def test_best_fitness_never_increases(make_population):
    pop = make_population(seed=4, target_function=lambda x: x * x + x)
    pop.initialize()
    history = [pop.evolve_generation().best_fitness for _ in range(15)]
    assert all(later <= earlier for earlier, later in zip(history, history[1:]))
    assert all(math.isfinite(fitness) for fitness in history)


def test_result_reports_generation_average(make_population):
    pop = make_population(seed=8)
    pop.initialize()
    expected = np.mean([pop.calculate_fitness(ind) for ind in pop.individuals])

    result = pop.evolve_generation()
    assert result.avg_fitness == pytest.approx(expected)
    assert result.generation == 1
    assert result.best_fitness == pop.best_fitness


def test_best_individual_is_never_aliased(make_population):
    pop = make_population(seed=9)
    pop.initialize()
    result = pop.evolve_generation()

    live = set()
    for ind in pop.individuals:
        live |= node_ids(ind)
    assert node_ids(result.best_individual).isdisjoint(live)
    assert node_ids(pop.best_individual).isdisjoint(live)
    assert node_ids(result.best_individual).isdisjoint(node_ids(pop.best_individual))
    assert pop.calculate_fitness(result.best_individual) == result.best_fitness


def test_result_as_dict(make_population):
    pop = make_population()
    pop.initialize()
    record = pop.evolve_generation().to_dict()
    assert set(record) == {'generation', 'bestFitness', 'avgFitness', 'bestIndividual'}
    assert isinstance(record['bestIndividual'], str)


def test_same_seed_same_run(make_population):
    runs = []
    for _ in range(2):
        pop = make_population(seed=21)
        pop.initialize()
        runs.append([str(pop.evolve_generation().best_individual) for _ in range(5)])
    assert runs[0] == runs[1]


def test_accepts_explicit_rng():
    rng = random.Random(3)
    pop = Population(GPConfig(target_function=identity, population_size=6), rng=rng)
    assert pop.rng is rng
    pop.initialize()
    assert len(pop.individuals) == 6


def test_single_member_population(make_population):
    pop = make_population(population_size=1)
    pop.initialize()
    pop.evolve_generation()
    assert len(pop.individuals) == 1


def test_predict_uses_best_individual(make_population):
    pop = make_population()
    with pytest.raises(NotInitializedError):
        pop.predict(1.0)

    pop.initialize()
    pop.evolve_generation()
    assert pop.predict(1.0) == pop.best_individual.evaluate(1.0)


def test_stats(make_population):
    pop = make_population()
    assert pop.get_stats() == {}

    pop.initialize()
    stats = pop.get_stats()
    assert stats['population_size'] == 20
    assert stats['generation'] == 0
    for key in ('fitness', 'size', 'depth'):
        assert set(stats[key]) == {'min', 'max', 'mean', 'std'}
    assert stats['depth']['max'] <= 4

    diversity = pop.diversity_stats()
    assert 0 < diversity['structural_diversity'] <= 1
    assert 1 <= diversity['unique_structures'] <= 20


def test_overflowing_target_still_records_a_best(make_population):
    pop = make_population(seed=1, population_size=4, max_depth=2,
                          target_function=lambda x: 1e200)
    pop.initialize()
    assert all(pop.calculate_fitness(ind) == math.inf for ind in pop.individuals)

    result = pop.evolve_generation()
    assert pop.best_individual is not None
    assert result.best_fitness == math.inf
    assert result.best_individual.size() >= 1
    assert len(pop.individuals) == 4
