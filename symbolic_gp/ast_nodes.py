"""
symbolic_gp/ast_nodes.py - Expression tree nodes and protected primitives
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Union

import numpy as np

logger = logging.getLogger(__name__)

Number = Union[float, np.ndarray]

# Primitive sets
VARIABLE = 'x'
UNARY_OPS = ['sin', 'cos', 'abs']  # Reduced set used for generation
EVAL_UNARY_OPS = UNARY_OPS + ['exp', 'log']
BINARY_OPS = ['+', '-', '*', '/']

# Numeric guards
SATURATION = 1e10
DIVISION_EPSILON = 1e-4
EXP_CLAMP = 50.0


class ASTNode(ABC):
    """Base class for all expression tree nodes"""

    kind = None
    arity = 0

    @property
    def children(self) -> List['ASTNode']:
        return []

    @property
    @abstractmethod
    def value(self):
        """Operator symbol, variable name or literal"""
        pass

    @abstractmethod
    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def clone(self) -> 'ASTNode':
        """Create a deep copy of this subtree"""
        pass

    def evaluate(self, x: Number) -> Number:
        """Evaluate the subtree at x.

        ``x`` may be a scalar or an array of sample points. A scalar input
        yields a float, an array yields an array of the same shape. Any
        failure inside this node is absorbed and reported as 0, as is any
        non-finite value the node produces.
        """
        values = np.asarray(x, dtype=float)
        try:
            with np.errstate(all='ignore'):
                result = self._evaluate(values)
        except Exception as e:
            logger.debug("Evaluation of %s failed: %s", self, e)
            result = np.zeros_like(values)
        result = np.where(np.isfinite(result), result, 0.0)
        if np.ndim(x) == 0:
            return float(result)
        return result

    def get_all_nodes(self) -> List['ASTNode']:
        """Get all nodes in this subtree, in pre-order"""
        nodes = [self]
        for child in self.children:
            nodes.extend(child.get_all_nodes())
        return nodes

    def size(self) -> int:
        """Number of nodes in this subtree"""
        return 1 + sum(child.size() for child in self.children)

    def depth(self) -> int:
        """Edges on the longest root-to-leaf path (0 for a leaf)"""
        if not self.children:
            return 0
        return 1 + max(child.depth() for child in self.children)


class Variable(ASTNode):
    """The input variable x"""

    kind = 'terminal'

    @property
    def value(self) -> str:
        return VARIABLE

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        return x

    def clone(self) -> 'Variable':
        return Variable()

    def __str__(self):
        return VARIABLE


class Constant(ASTNode):
    """Numeric constant"""

    kind = 'constant'

    def __init__(self, value: float):
        self._value = float(value)

    @property
    def value(self) -> float:
        return self._value

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        return np.full_like(x, self._value)

    def clone(self) -> 'Constant':
        return Constant(self._value)

    def __str__(self):
        text = repr(self._value + 0.0)
        return text[:-2] if text.endswith('.0') else text


class UnaryOp(ASTNode):
    """Unary operations: sin, cos, abs, exp, log"""

    kind = 'operator'
    arity = 1

    def __init__(self, op: str, child: ASTNode):
        if op not in EVAL_UNARY_OPS:
            raise ValueError(f"Unknown unary operator: {op}")
        self.op = op
        self.child = child

    @property
    def value(self) -> str:
        return self.op

    @property
    def children(self) -> List[ASTNode]:
        return [self.child]

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        child_val = np.asarray(self.child.evaluate(x), dtype=float)

        if self.op == 'sin':
            return np.sin(child_val)
        elif self.op == 'cos':
            return np.cos(child_val)
        elif self.op == 'exp':
            return np.exp(np.clip(child_val, -EXP_CLAMP, EXP_CLAMP))
        elif self.op == 'log':
            # Non-positive arguments map to 0
            return np.where(child_val <= 0, 0.0, np.log(np.abs(child_val)))
        else:
            return np.abs(child_val)

    def clone(self) -> 'UnaryOp':
        return UnaryOp(self.op, self.child.clone())

    def __str__(self):
        return f"{self.op}({self.child})"


class BinaryOp(ASTNode):
    """Binary operations: + - * / with guards"""

    kind = 'operator'
    arity = 2

    def __init__(self, op: str, left: ASTNode, right: ASTNode):
        if op not in BINARY_OPS:
            raise ValueError(f"Unknown binary operator: {op}")
        self.op = op
        self.left = left
        self.right = right

    @property
    def value(self) -> str:
        return self.op

    @property
    def children(self) -> List[ASTNode]:
        return [self.left, self.right]

    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        left_val = np.asarray(self.left.evaluate(x), dtype=float)
        right_val = np.asarray(self.right.evaluate(x), dtype=float)

        if self.op == '+':
            return left_val + right_val
        elif self.op == '-':
            return left_val - right_val
        elif self.op == '*':
            return np.clip(left_val * right_val, -SATURATION, SATURATION)
        else:
            # Protected division
            quotient = left_val / right_val
            quotient = np.where(np.isfinite(quotient),
                                np.clip(quotient, -SATURATION, SATURATION), 1.0)
            return np.where(np.abs(right_val) < DIVISION_EPSILON, 1.0, quotient)

    def clone(self) -> 'BinaryOp':
        return BinaryOp(self.op, self.left.clone(), self.right.clone())

    def __str__(self):
        return f"({self.left} {self.op} {self.right})"


def replace_subtree(root: ASTNode, old_node: ASTNode, new_node: ASTNode) -> ASTNode:
    """Relink the parent of old_node to new_node and return the resulting root"""
    if root is old_node:
        return new_node

    def replace_in_node(current_node: ASTNode) -> ASTNode:
        if current_node is old_node:
            return new_node

        if isinstance(current_node, UnaryOp):
            current_node.child = replace_in_node(current_node.child)
        elif isinstance(current_node, BinaryOp):
            current_node.left = replace_in_node(current_node.left)
            current_node.right = replace_in_node(current_node.right)

        return current_node

    return replace_in_node(root)
