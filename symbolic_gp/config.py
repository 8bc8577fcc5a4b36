"""
symbolic_gp/config.py - Engine configuration
"""
import numbers
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .exceptions import ConfigurationError


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_real(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class GPConfig:
    """Immutable settings for a Population run"""

    target_function: Optional[Callable[[float], float]] = None
    population_size: int = 50
    max_depth: int = 5
    mutation_rate: float = 0.1
    crossover_rate: float = 0.9
    tournament_size: int = 3
    num_samples: int = 200
    sample_range: Tuple[float, float] = (-3.0, 3.0)

    def __post_init__(self):
        if not callable(self.target_function):
            raise ConfigurationError("target_function must be callable")
        if not _is_int(self.population_size) or self.population_size < 1:
            raise ConfigurationError(
                f"population_size must be a positive integer, got {self.population_size!r}")
        if not _is_int(self.max_depth) or self.max_depth < 1:
            raise ConfigurationError(
                f"max_depth must be an integer >= 1, got {self.max_depth!r}")
        for name in ('mutation_rate', 'crossover_rate'):
            rate = getattr(self, name)
            if not _is_real(rate) or not 0.0 <= rate <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {rate!r}")
        if not _is_int(self.tournament_size) or self.tournament_size < 1:
            raise ConfigurationError(
                f"tournament_size must be a positive integer, got {self.tournament_size!r}")
        if not _is_int(self.num_samples) or self.num_samples < 0:
            raise ConfigurationError(
                f"num_samples must be a non-negative integer, got {self.num_samples!r}")
        low, high = self.sample_range
        if low > high:
            raise ConfigurationError(f"sample_range is inverted: {self.sample_range!r}")
