"""
symbolic_gp/cli.py - Command-line interface
"""
import logging
import time
from typing import Optional

import click

from .config import GPConfig
from .exceptions import GPError
from .population import Population
from .targets import TARGET_DESCRIPTIONS, TARGET_FUNCTIONS, get_target


@click.group()
def cli():
    """Symbolic GP - evolve expressions that fit a target function"""
    pass


@cli.command()
@click.option('--target', '-t', type=click.Choice(sorted(TARGET_FUNCTIONS)), default='sin',
              help='Target function to approximate')
@click.option('--generations', '-g', default=100, help='Number of generations to evolve')
@click.option('--population', '-p', default=50, help='Population size')
@click.option('--max-depth', '-d', default=5, help='Maximum depth of generated trees')
@click.option('--mutation-rate', default=0.1, help='Mutation rate (0.0-1.0)')
@click.option('--crossover-rate', default=0.9, help='Crossover rate (0.0-1.0)')
@click.option('--tournament-size', default=3, help='Individuals drawn per tournament')
@click.option('--seed', type=int, default=None, help='Random seed for reproducible runs')
@click.option('--stop-fitness', type=float, default=None,
              help='Stop once the best fitness drops to this value')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def evolve(target, generations, population, max_depth, mutation_rate, crossover_rate,
           tournament_size, seed, stop_fitness: Optional[float], verbose):
    """Evolve an expression approximating the target function"""

    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    try:
        config = GPConfig(
            target_function=get_target(target),
            population_size=population,
            max_depth=max_depth,
            mutation_rate=mutation_rate,
            crossover_rate=crossover_rate,
            tournament_size=tournament_size,
        )
    except GPError as e:
        raise click.ClickException(str(e))

    click.echo(f"Starting evolution: {generations} generations, population {population}")
    click.echo(f"Target: {TARGET_DESCRIPTIONS[target]}, max depth {max_depth}")

    pop = Population(config, seed=seed)
    pop.initialize()

    start_time = time.time()
    result = None

    for gen in range(generations):
        gen_start_time = time.time()
        result = pop.evolve_generation()
        gen_time = time.time() - gen_start_time

        if verbose or gen % 10 == 0 or gen == generations - 1:
            click.echo(f"Gen {result.generation:3d}/{generations}: "
                       f"Best={result.best_fitness:.4f} "
                       f"Avg={result.avg_fitness:.4g} "
                       f"Size={result.best_individual.size()} "
                       f"Time={gen_time:.2f}s")

        if stop_fitness is not None and result.best_fitness <= stop_fitness:
            click.echo(f"Reached fitness {result.best_fitness:.4g} at generation {result.generation}")
            break

    total_time = time.time() - start_time
    click.echo(f"\nEvolution completed in {total_time:.1f}s")

    if result is not None:
        best = result.best_individual
        click.echo(f"Best fitness: {result.best_fitness:.6g}")
        click.echo(f"Best expression: {best}")
        click.echo(f"Size: {best.size()}, Depth: {best.depth()}")

        if verbose:
            stats = pop.get_stats()
            diversity = pop.diversity_stats()
            click.echo(f"Final population: size {stats['size']['mean']:.1f}"
                       f"±{stats['size']['std']:.1f}, "
                       f"depth {stats['depth']['mean']:.1f}, "
                       f"unique {diversity['unique_structures']}/{stats['population_size']}")


@cli.command()
def targets():
    """List the built-in target functions"""
    for name in sorted(TARGET_FUNCTIONS):
        click.echo(f"{name:10s} {TARGET_DESCRIPTIONS[name]}")


if __name__ == '__main__':
    cli()
