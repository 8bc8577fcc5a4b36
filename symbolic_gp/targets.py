"""
symbolic_gp/targets.py - Built-in target functions
"""
import math
from typing import Callable, Dict

from .exceptions import ConfigurationError

TARGET_FUNCTIONS: Dict[str, Callable[[float], float]] = {
    'sin': math.sin,
    'x2': lambda x: x * x,
    'x2_plus_x': lambda x: x * x + x,
    'abs': abs,
    'x3': lambda x: x * x * x - x,
}

TARGET_DESCRIPTIONS: Dict[str, str] = {
    'sin': 'sin(x)',
    'x2': 'x^2',
    'x2_plus_x': 'x^2 + x',
    'abs': '|x|',
    'x3': 'x^3 - x',
}


def get_target(name: str) -> Callable[[float], float]:
    """Look up a built-in target function by name"""
    try:
        return TARGET_FUNCTIONS[name]
    except KeyError:
        choices = ', '.join(sorted(TARGET_FUNCTIONS))
        raise ConfigurationError(f"Unknown target function: {name} (choose from {choices})")
