"""
Operator tables for the expression engine.

An operator table maps tokens to unary or binary operators, each with a
binding precedence, and carries a single operand resolver for every token
that is not an operator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Iterator, Optional, Union

logger = logging.getLogger(__name__)

RESERVED_TOKENS = ("(", ")")


@dataclass(frozen=True)
class Operand:
    """Resolver turning a leaf token into a value (None if it cannot)."""
    resolve: Callable[[str], Any]
    precedence: ClassVar[int] = 0
    arity: ClassVar[int] = 1


@dataclass(frozen=True)
class UnaryOperator:
    precedence: int
    apply: Callable[[Any], Any]
    arity: ClassVar[int] = 1


@dataclass(frozen=True)
class BinaryOperator:
    precedence: int
    apply: Callable[[Any, Any], Any]
    arity: ClassVar[int] = 2


Operator = Union[UnaryOperator, BinaryOperator]


class OperatorTable:
    """
    Token-keyed operator table.

    Precedence orders binding tightness: a higher value binds tighter.
    The parenthesis tokens are reserved and can never be operators.
    """

    def __init__(self, operand: Operand, operators: Dict[str, Operator]):
        for token, operator in operators.items():
            if token in RESERVED_TOKENS:
                raise ValueError(f"Token '{token}' is reserved")
            if not token or token.split() != [token]:
                raise ValueError(f"Operator token must be a single word: {token!r}")
            if not isinstance(operator, (UnaryOperator, BinaryOperator)):
                raise ValueError(f"Unsupported operator for '{token}': {operator!r}")
            if operator.precedence <= 0:
                raise ValueError(
                    f"Operator '{token}' needs a positive precedence, "
                    f"got {operator.precedence}"
                )
        self.operand = operand
        self._operators = dict(operators)

    def __contains__(self, token: str) -> bool:
        return token in self._operators

    def __iter__(self) -> Iterator[str]:
        return iter(self._operators)

    def get(self, token: str) -> Optional[Operator]:
        return self._operators.get(token)

    def precedence(self, token: str) -> int:
        """Precedence of token; operands have precedence 0."""
        operator = self._operators.get(token)
        return operator.precedence if operator else Operand.precedence


def _to_bit(value: Any) -> int:
    return 1 if value else 0


def _and(first: Any, second: Any) -> int:
    logger.debug("and-ing %s and %s", first, second)
    return _to_bit(first and second)


def _or(first: Any, second: Any) -> int:
    logger.debug("or-ing %s and %s", first, second)
    return _to_bit(first or second)


def boolean_operators(resolve: Callable[[str], Any]) -> OperatorTable:
    """
    Build the not/and/or table over observable boolean streams.

    Args:
        resolve: Maps an operand token to an observable (or None).

    Returns:
        OperatorTable with not > and > or.
    """
    return OperatorTable(
        Operand(resolve),
        {
            "not": UnaryOperator(
                3, lambda stream: stream.map(lambda v: 1 - _to_bit(v)).skip_duplicates()
            ),
            "and": BinaryOperator(
                2, lambda s1, s2: s1.combine(s2, _and).skip_duplicates()
            ),
            "or": BinaryOperator(
                1, lambda s1, s2: s1.combine(s2, _or).skip_duplicates()
            ),
        },
    )


def boolean_value_operators(
    values: Dict[str, Any],
    default: Any = None
) -> OperatorTable:
    """
    Build the not/and/or table over plain values looked up by token.

    Useful for checking an expression against a snapshot of signal
    states without wiring any streams.
    """
    return OperatorTable(
        Operand(lambda token: values.get(token, default)),
        {
            "not": UnaryOperator(3, lambda v: 1 - _to_bit(v)),
            "and": BinaryOperator(2, lambda a, b: _to_bit(a and b)),
            "or": BinaryOperator(1, lambda a, b: _to_bit(a or b)),
        },
    )
