"""
Tests for the prefix expression evaluator.
"""

from itertools import product

import pytest

from backend.switchlogic.logic import (
    BinaryOperator,
    ExpressionError,
    ExpressionEvaluator,
    ExpressionParser,
    Operand,
    OperatorTable,
    UnaryOperator,
    boolean_value_operators,
)


def get_tree_table(unknown=None):
    """Return a table that builds a nested tuple for each application."""
    return OperatorTable(
        Operand(lambda token: None if token == unknown else token),
        {
            "not": UnaryOperator(3, lambda v: ("not", v)),
            "and": BinaryOperator(2, lambda a, b: ("and", a, b)),
            "or": BinaryOperator(1, lambda a, b: ("or", a, b)),
        },
    )


# Expressions paired with their meaning as Python booleans
EXPRESSIONS = [
    ("A", lambda a, b, c: a),
    ("not A", lambda a, b, c: not a),
    ("A and B", lambda a, b, c: a and b),
    ("A or B", lambda a, b, c: a or b),
    ("not A and B", lambda a, b, c: (not a) and b),
    ("A and not B", lambda a, b, c: a and (not b)),
    ("A or B and C", lambda a, b, c: a or (b and c)),
    ("A and B or C", lambda a, b, c: (a and b) or c),
    ("(A or B) and C", lambda a, b, c: (a or b) and c),
    ("not (A or B)", lambda a, b, c: not (a or b)),
    ("not not A", lambda a, b, c: a),
    ("A or not B and C", lambda a, b, c: a or ((not b) and c)),
    ("not A or not B or not C", lambda a, b, c: (not a) or (not b) or (not c)),
    ("A and (B or not (C and A))", lambda a, b, c: a and (b or not (c and a))),
]


class TestStackEvaluation:
    """Tests for ExpressionEvaluator.evaluate."""

    def test_operand(self):
        """Test a single operand."""
        evaluator = ExpressionEvaluator(get_tree_table())
        assert evaluator.evaluate("A") == "A"

    def test_binary_argument_order(self):
        """Test binary operators receive the nearest operand first."""
        evaluator = ExpressionEvaluator(get_tree_table())
        assert evaluator.evaluate("and B A") == ("and", "B", "A")

    def test_nested(self):
        """Test nested operators."""
        evaluator = ExpressionEvaluator(get_tree_table())
        assert evaluator.evaluate("or and C B A") == ("or", ("and", "C", "B"), "A")

    def test_missing_operand(self):
        """Test a binary operator with one operand is malformed."""
        evaluator = ExpressionEvaluator(get_tree_table())
        assert evaluator.evaluate("and A") is None

    def test_unary_without_operand(self):
        """Test a unary operator with no operand is malformed."""
        evaluator = ExpressionEvaluator(get_tree_table())
        assert evaluator.evaluate("not") is None

    def test_leftover_values(self):
        """Test more than one remaining value is malformed."""
        evaluator = ExpressionEvaluator(get_tree_table())
        assert evaluator.evaluate("A B") is None

    def test_empty(self):
        """Test empty and missing expressions."""
        evaluator = ExpressionEvaluator(get_tree_table())
        assert evaluator.evaluate("") is None
        assert evaluator.evaluate(None) is None

    def test_unresolved_operand(self):
        """Test an operand the resolver rejects is malformed."""
        evaluator = ExpressionEvaluator(get_tree_table(unknown="bad"))
        assert evaluator.evaluate("and bad A") is None


class TestRecursiveEvaluation:
    """Tests for ExpressionEvaluator.evaluate_recursive."""

    def test_matches_stack_form(self):
        """Test both strategies agree on well formed expressions."""
        table = get_tree_table()
        parser = ExpressionParser(table)
        evaluator = ExpressionEvaluator(table)
        for expression, _ in EXPRESSIONS:
            prefix = parser.infix_to_prefix(expression)
            assert evaluator.evaluate_recursive(prefix) == evaluator.evaluate(prefix)

    def test_missing_operand(self):
        """Test a missing operand raises."""
        evaluator = ExpressionEvaluator(get_tree_table())
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate_recursive("and A")
        assert "Missing operand" in str(exc_info.value)

    def test_trailing_tokens(self):
        """Test tokens beyond the expression raise."""
        evaluator = ExpressionEvaluator(get_tree_table())
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate_recursive("A B")
        assert exc_info.value.position == 1

    def test_unresolved_operand(self):
        """Test an operand the resolver rejects raises."""
        evaluator = ExpressionEvaluator(get_tree_table(unknown="bad"))
        with pytest.raises(ExpressionError):
            evaluator.evaluate_recursive("or A bad")

    def test_empty(self):
        """Test an empty expression raises."""
        evaluator = ExpressionEvaluator(get_tree_table())
        with pytest.raises(ExpressionError):
            evaluator.evaluate_recursive("")


class TestBooleanEquivalence:
    """Compiled expressions agree with direct boolean evaluation."""

    @pytest.mark.parametrize("expression,expected", EXPRESSIONS)
    def test_all_assignments(self, expression, expected):
        """Test every assignment of A, B and C."""
        for a, b, c in product((0, 1), repeat=3):
            table = boolean_value_operators({"A": a, "B": b, "C": c})
            parser = ExpressionParser(table)
            prefix = parser.infix_to_prefix(expression)
            want = 1 if expected(a, b, c) else 0

            assert ExpressionEvaluator(table).evaluate(prefix) == want
            assert ExpressionEvaluator(table).evaluate_recursive(prefix) == want
