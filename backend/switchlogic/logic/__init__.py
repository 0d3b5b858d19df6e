"""
Logic engine for switchlogic.

Provides expression compilation and evaluation for rule inputs.
"""

from .operators import (
    BinaryOperator,
    Operand,
    OperatorTable,
    UnaryOperator,
    boolean_operators,
    boolean_value_operators,
)
from .parser import ExpressionError, ExpressionParser
from .evaluator import ExpressionEvaluator

__all__ = [
    "BinaryOperator",
    "Operand",
    "OperatorTable",
    "UnaryOperator",
    "boolean_operators",
    "boolean_value_operators",
    "ExpressionError",
    "ExpressionParser",
    "ExpressionEvaluator",
]
