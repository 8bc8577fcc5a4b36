"""
symbolic_gp - Symbolic regression with genetic programming

Evolves expression trees over a single input x so that they approximate a
target one-dimensional function.
"""

__version__ = "0.1.0"

from .ast_nodes import (
    ASTNode, Variable, Constant, UnaryOp, BinaryOp,
    replace_subtree, UNARY_OPS, BINARY_OPS
)
from .config import GPConfig
from .exceptions import GPError, ConfigurationError, NotInitializedError
from .population import Population, GenerationResult
from .targets import TARGET_FUNCTIONS, get_target

__all__ = [
    'ASTNode', 'Variable', 'Constant', 'UnaryOp', 'BinaryOp',
    'replace_subtree', 'UNARY_OPS', 'BINARY_OPS',
    'GPConfig',
    'GPError', 'ConfigurationError', 'NotInitializedError',
    'Population', 'GenerationResult',
    'TARGET_FUNCTIONS', 'get_target'
]
