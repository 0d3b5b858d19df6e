"""
Expression Evaluator for prefix expressions.

Reduces the output of ExpressionParser.infix_to_prefix() to a single
value using the operator table the parser was built with.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from .operators import BinaryOperator, OperatorTable, UnaryOperator
from .parser import ExpressionError

logger = logging.getLogger(__name__)


class ExpressionEvaluator:
    """
    Evaluator for prefix expressions.

    Two equivalent strategies are provided:
    - evaluate(): stack machine reading tokens right to left; a malformed
      expression yields None
    - evaluate_recursive(): recursive descent reading tokens left to right;
      a malformed expression raises ExpressionError

    Binary operators are applied as apply(first, second), where first is
    the operand nearest the operator in the prefix text.
    """

    def __init__(self, operators: OperatorTable):
        self.operators = operators

    def evaluate(self, expression: Optional[str]) -> Optional[Any]:
        """
        Evaluate a prefix expression.

        Args:
            expression: Space separated prefix tokens.

        Returns:
            The single reduced value, or None if the expression is
            malformed (unresolvable operand, missing operands, or more
            than one value left over).
        """
        logger.debug("evaluate: %s", expression)

        tokens = expression.split() if expression else []
        if not tokens:
            return None

        stack: List[Any] = []
        for token in reversed(tokens):
            operator = self.operators.get(token)
            if operator is None:
                value = self.operators.operand.resolve(token)
                if value is None:
                    logger.debug("cannot resolve operand '%s'", token)
                    return None
                stack.append(value)
            elif isinstance(operator, UnaryOperator):
                if not stack:
                    logger.debug("operator '%s' is missing its operand", token)
                    return None
                stack.append(operator.apply(stack.pop()))
            elif isinstance(operator, BinaryOperator):
                if len(stack) < 2:
                    logger.debug("operator '%s' is missing an operand", token)
                    return None
                first = stack.pop()
                second = stack.pop()
                stack.append(operator.apply(first, second))

        if len(stack) != 1:
            logger.debug("expression left %d values on the stack", len(stack))
            return None
        return stack[0]

    def evaluate_recursive(self, expression: str) -> Any:
        """
        Evaluate a prefix expression by recursive descent.

        Raises:
            ExpressionError: If the expression is malformed.
        """
        tokens = expression.split() if expression else []
        if not tokens:
            raise ExpressionError("Empty expression", 0, expression or "")

        value, position = self._resolve(tokens, 0, expression)
        if position != len(tokens):
            raise ExpressionError(
                f"Unexpected token '{tokens[position]}'", position, expression
            )
        return value

    def _resolve(
        self,
        tokens: List[str],
        position: int,
        expression: str
    ) -> Tuple[Any, int]:
        """Resolve the sub-expression starting at position."""
        if position >= len(tokens):
            raise ExpressionError("Missing operand", position, expression)

        token = tokens[position]
        operator = self.operators.get(token)

        if operator is None:
            value = self.operators.operand.resolve(token)
            if value is None:
                raise ExpressionError(
                    f"Cannot resolve operand '{token}'", position, expression
                )
            return value, position + 1

        if isinstance(operator, UnaryOperator):
            operand, position = self._resolve(tokens, position + 1, expression)
            return operator.apply(operand), position

        first, position = self._resolve(tokens, position + 1, expression)
        second, position = self._resolve(tokens, position, expression)
        return operator.apply(first, second), position
