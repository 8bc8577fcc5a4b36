"""
symbolic_gp/population.py - Population management and genetic operators
"""
import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .ast_nodes import (ASTNode, Variable, Constant, UnaryOp, BinaryOp,
                        UNARY_OPS, BINARY_OPS, replace_subtree)
from .config import GPConfig
from .exceptions import NotInitializedError

logger = logging.getLogger(__name__)

INVALID_POINT_PENALTY = 1e6
EMPTY_SAMPLE_FITNESS = 1e10

GENERATION_METHODS = ('grow', 'full')


@dataclass
class GenerationResult:
    """Outcome of one evolve_generation call"""

    generation: int
    best_fitness: float
    avg_fitness: float
    best_individual: ASTNode

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generation': self.generation,
            'bestFitness': self.best_fitness,
            'avgFitness': self.avg_fitness,
            'bestIndividual': str(self.best_individual),
        }


class Population:
    """Evolves expression trees towards a target function"""

    def __init__(self, config: GPConfig, rng: Optional[random.Random] = None,
                 seed: Optional[int] = None):
        self.config = config
        self.rng = rng if rng is not None else random.Random(seed)

        self.individuals: List[ASTNode] = []
        self.best_individual: Optional[ASTNode] = None
        self.best_fitness = math.inf
        self.generation = 0

        # Fixed benchmark sampled once
        low, high = config.sample_range
        self.sample_points = np.linspace(low, high, config.num_samples)
        self.target_values = np.array([self._sample_target(x) for x in self.sample_points],
                                      dtype=float)

    @property
    def size(self) -> int:
        return self.config.population_size

    def _sample_target(self, x: float) -> float:
        try:
            return float(self.config.target_function(float(x)))
        except (ArithmeticError, ValueError) as e:
            logger.warning("Target function failed at x=%g: %s", x, e)
            return math.nan

    # Tree generation

    def generate_terminal(self) -> ASTNode:
        """Variable leaf or a constant in [-5, 5] with two decimals"""
        if self.rng.random() < 0.6:
            return Variable()
        return Constant(round(self.rng.uniform(-5, 5), 2))

    def generate_operator(self, depth: int, method: str) -> ASTNode:
        if self.rng.random() < 0.3:
            op = self.rng.choice(UNARY_OPS)
            child = self.generate_tree(depth + 1, method)
            return UnaryOp(op, child)

        op = self.rng.choice(BINARY_OPS)
        left = self.generate_tree(depth + 1, method)
        right = self.generate_tree(depth + 1, method)
        return BinaryOp(op, left, right)

    def generate_tree(self, depth: int = 0, method: str = 'grow') -> ASTNode:
        """Grow a random tree starting at the given depth.

        ``full`` forces operators until the last permissible level, ``grow``
        picks an operator with probability 0.7 above that level. Nothing is
        generated at or beyond ``max_depth``.
        """
        if method not in GENERATION_METHODS:
            raise ValueError(f"Unknown generation method: {method}")

        max_depth = self.config.max_depth
        if depth >= max_depth:
            return self.generate_terminal()

        if method == 'full':
            use_operator = depth < max_depth - 1
        else:
            use_operator = self.rng.random() < 0.7 and depth < max_depth - 1

        if use_operator:
            return self.generate_operator(depth, method)
        return self.generate_terminal()

    def initialize(self) -> None:
        """Ramped half-and-half initialization"""
        half = self.size // 2
        self.individuals = [self.generate_tree(0, 'grow') for _ in range(half)]
        self.individuals.extend(self.generate_tree(0, 'full')
                                for _ in range(half, self.size))
        self.best_individual = None
        self.best_fitness = math.inf
        self.generation = 0
        logger.info("Initialized population of %d (max depth %d, %d samples)",
                    self.size, self.config.max_depth, len(self.sample_points))

    # Fitness

    def calculate_fitness(self, individual: ASTNode) -> float:
        """Mean squared error over the sample set, lower is better"""
        if len(self.sample_points) == 0:
            return EMPTY_SAMPLE_FITNESS

        predicted = np.broadcast_to(individual.evaluate(self.sample_points),
                                    self.sample_points.shape)
        valid = np.isfinite(predicted) & np.isfinite(self.target_values)
        with np.errstate(all='ignore'):
            errors = np.where(valid, (predicted - self.target_values) ** 2,
                              INVALID_POINT_PENALTY)
        return float(np.sum(errors) / len(errors))

    # Genetic operators

    def get_random_node(self, tree: ASTNode) -> ASTNode:
        return self.rng.choice(tree.get_all_nodes())

    def tournament_selection(self, tournament_size: Optional[int] = None) -> ASTNode:
        """Clone of the fittest of tournament_size draws (with replacement)"""
        if tournament_size is None:
            tournament_size = self.config.tournament_size

        best = None
        best_fitness = math.inf
        for _ in range(tournament_size):
            individual = self.individuals[self.rng.randrange(len(self.individuals))]
            fitness = self.calculate_fitness(individual)
            if best is None or fitness < best_fitness:
                best = individual
                best_fitness = fitness

        return best.clone()

    def crossover_pair(self, parent1: ASTNode, parent2: ASTNode) -> Tuple[ASTNode, ASTNode]:
        """Crossover: exchange one random subtree between clones of the parents"""
        child1 = parent1.clone()
        child2 = parent2.clone()

        node1 = self.get_random_node(child1)
        node2 = self.get_random_node(child2)

        child1 = replace_subtree(child1, node1, node2)
        child2 = replace_subtree(child2, node2, node1)
        return child1, child2

    def crossover(self, parent1: ASTNode, parent2: ASTNode) -> ASTNode:
        """Single-child crossover; the second recombined child is discarded"""
        child, _ = self.crossover_pair(parent1, parent2)
        return child

    def mutate(self, individual: ASTNode) -> ASTNode:
        """Subtree mutation on a clone.

        The replacement is grown from depth 0 regardless of where the
        selected node sits, so the result may be deeper than max_depth.
        """
        mutant = individual.clone()
        node = self.get_random_node(mutant)
        return replace_subtree(mutant, node, self.generate_tree(0, 'grow'))

    # Generational loop

    def evolve_generation(self) -> GenerationResult:
        """Evolve to the next generation"""
        if not self.individuals:
            raise NotInitializedError("initialize() must be called before evolve_generation()")

        scored = [(self.calculate_fitness(ind), ind) for ind in self.individuals]
        scored.sort(key=lambda item: item[0])
        generation_best_fitness, generation_best = scored[0]

        if self.best_individual is None or generation_best_fitness < self.best_fitness:
            self.best_fitness = generation_best_fitness
            self.best_individual = generation_best.clone()
            logger.info("Generation %d: new best %.6g %s",
                        self.generation, self.best_fitness, self.best_individual)

        # Elitism
        new_individuals = [generation_best.clone()]

        while len(new_individuals) < self.size:
            if self.rng.random() < self.config.crossover_rate:
                parent1 = self.tournament_selection()
                parent2 = self.tournament_selection()
                child = self.crossover(parent1, parent2)
            else:
                child = self.tournament_selection()

            if self.rng.random() < self.config.mutation_rate:
                child = self.mutate(child)
            new_individuals.append(child)

        self.individuals = new_individuals
        self.generation += 1

        avg_fitness = sum(fitness for fitness, _ in scored) / len(scored)
        logger.debug("Generation %d: best=%.6g avg=%.6g",
                     self.generation, self.best_fitness, avg_fitness)

        return GenerationResult(
            generation=self.generation,
            best_fitness=self.best_fitness,
            avg_fitness=avg_fitness,
            best_individual=self.best_individual.clone(),
        )

    # Introspection

    def predict(self, x):
        """Evaluate the best individual found so far"""
        if self.best_individual is None:
            raise NotInitializedError("No generation has been evolved yet")
        return self.best_individual.evaluate(x)

    def get_stats(self) -> Dict[str, Any]:
        """Get population statistics"""
        if not self.individuals:
            return {}

        fitnesses = [self.calculate_fitness(ind) for ind in self.individuals]
        sizes = [ind.size() for ind in self.individuals]
        depths = [ind.depth() for ind in self.individuals]

        def summary(values):
            return {
                'min': float(np.min(values)),
                'max': float(np.max(values)),
                'mean': float(np.mean(values)),
                'std': float(np.std(values)),
            }

        return {
            'generation': self.generation,
            'population_size': len(self.individuals),
            'fitness': summary(fitnesses),
            'size': summary(sizes),
            'depth': summary(depths),
        }

    def diversity_stats(self) -> Dict[str, float]:
        """Calculate population diversity metrics"""
        if len(self.individuals) < 2:
            return {'structural_diversity': 0.0, 'fitness_diversity': 0.0,
                    'unique_structures': len(self.individuals)}

        structures = [str(ind) for ind in self.individuals]
        unique_structures = len(set(structures))
        structural_diversity = unique_structures / len(structures)

        fitnesses = [self.calculate_fitness(ind) for ind in self.individuals]
        with np.errstate(all='ignore'):
            fitness_std = np.std(fitnesses)
            fitness_mean = np.mean(fitnesses)
            fitness_diversity = float(fitness_std / (abs(fitness_mean) + 1e-10))

        return {
            'structural_diversity': structural_diversity,
            'fitness_diversity': fitness_diversity,
            'unique_structures': unique_structures
        }
