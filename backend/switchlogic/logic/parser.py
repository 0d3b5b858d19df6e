"""
Expression Parser for rule inputs.

Compiles infix logic expressions like:
    "[0,1] and not tanks.0.currentLevel:lt:0.1"

Into the prefix form consumed by ExpressionEvaluator:
    "and not tanks.0.currentLevel:lt:0.1 [0,1]"
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple, Union

from .operators import OperatorTable

logger = logging.getLogger(__name__)


class ExpressionError(ValueError):
    """Raised for an expression that cannot be compiled or evaluated."""

    def __init__(self, message: str, position: int, expression: str):
        super().__init__(message)
        self.message = message
        self.position = position
        self.expression = expression

    def __str__(self) -> str:
        return f"{self.message} at token {self.position} in '{self.expression}'"


class ExpressionParser:
    """
    Infix to prefix compiler for operator-table driven expressions.

    Tokens are whitespace separated; parentheses need no surrounding
    whitespace. Every token that is not an operator in the table is an
    operand.
    """

    def __init__(self, operators: OperatorTable):
        self.operators = operators

    def tokenize(self, expression: str) -> List[str]:
        """Split an expression into tokens, isolating parentheses."""
        return expression.replace("(", " ( ").replace(")", " ) ").split()

    def infix_to_prefix(self, expression: Union[str, Sequence[str]]) -> str:
        """
        Convert an infix expression to prefix order.

        Operators are emitted in shunting-yard order and the whole output
        is reversed, so the evaluator reads it right to left. An operator
        only displaces stacked operators that bind strictly tighter.

        Args:
            expression: Expression string or pre-split tokens.

        Returns:
            Prefix tokens joined by single spaces.

        Raises:
            ExpressionError: On empty input or unbalanced parentheses.
        """
        if isinstance(expression, str):
            text = expression
            tokens = self.tokenize(expression)
        else:
            tokens = list(expression)
            text = " ".join(tokens)

        logger.debug("infix_to_prefix: %s", text)

        if not tokens:
            raise ExpressionError("Empty expression", 0, text)

        emitted: List[str] = []
        stack: List[Tuple[str, int]] = []

        for position, token in enumerate(tokens):
            if token == "(":
                stack.append((token, position))
            elif token == ")":
                while True:
                    if not stack:
                        raise ExpressionError("Unmatched ')'", position, text)
                    top, _ = stack.pop()
                    if top == "(":
                        break
                    emitted.append(top)
            elif token in self.operators:
                precedence = self.operators.precedence(token)
                while (
                    stack
                    and stack[-1][0] != "("
                    and self.operators.precedence(stack[-1][0]) > precedence
                ):
                    emitted.append(stack.pop()[0])
                stack.append((token, position))
            else:
                emitted.append(token)

        while stack:
            token, position = stack.pop()
            if token == "(":
                raise ExpressionError("Unmatched '('", position, text)
            emitted.append(token)

        emitted.reverse()
        return " ".join(emitted)

    def parse_expression(self, expression: str) -> Optional[Any]:
        """
        Compile and evaluate an infix expression.

        Returns:
            The combined value, or None if the expression is malformed.
        """
        from .evaluator import ExpressionEvaluator

        try:
            prefix = self.infix_to_prefix(expression)
        except ExpressionError as e:
            logger.warning("Malformed expression: %s", e)
            return None

        return ExpressionEvaluator(self.operators).evaluate(prefix)

    def validate(self, expression: str) -> Tuple[bool, Optional[str]]:
        """
        Check that an expression compiles without evaluating it.

        Returns:
            Tuple of (is_valid, error_message).
        """
        try:
            self.infix_to_prefix(expression)
            return True, None
        except ExpressionError as e:
            return False, str(e)
