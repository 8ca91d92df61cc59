"""Tests for the condition expression parser."""

import pytest

from market_explainer.exceptions import ParseError
from market_explainer.models.condition import ComparisonOperator, ConditionKind
from market_explainer.rules.catalog import DEFAULT_BRANCHES
from market_explainer.rules.parser import extract_field_refs, parse_condition


class TestComparisons:
    def test_column_vs_column(self):
        node = parse_condition("$G>$Q")
        assert node.kind == ConditionKind.COMPARISON
        assert node.operator == ComparisonOperator.GT
        assert node.left.field_ref == "$G"
        assert node.right.field_ref == "$Q"
        assert node.field_refs == ("$G", "$Q")

    def test_two_char_operators_win(self):
        assert parse_condition("$R>=30").operator == ComparisonOperator.GE
        assert parse_condition("$R<=30").operator == ComparisonOperator.LE

    def test_numeric_literal(self):
        node = parse_condition("$I>=1.5")
        assert node.right.literal == 1.5
        assert not node.right.is_field

    def test_signed_literal_is_not_arithmetic(self):
        node = parse_condition("$K>=-0.01")
        assert node.kind == ConditionKind.COMPARISON
        assert node.right.literal == -0.01

    def test_quoted_literal_is_unquoted(self):
        node = parse_condition("$D='OVERBOUGHT'")
        assert node.operator == ComparisonOperator.EQ
        assert node.right.literal == "OVERBOUGHT"

    def test_operator_inside_quotes_ignored(self):
        node = parse_condition("$E='A>=B'")
        assert node.operator == ComparisonOperator.EQ
        assert node.right.literal == "A>=B"

    def test_whitespace_trimmed(self):
        node = parse_condition("   $G  <  $AC  ")
        assert node.expression == "$G  <  $AC"
        assert node.left.field_ref == "$G"
        assert node.right.field_ref == "$AC"


class TestGroups:
    def test_and_children(self):
        node = parse_condition("AND($G>$Q, $R>40, $R<70)")
        assert node.kind == ConditionKind.AND
        assert len(node.children) == 3
        assert node.field_refs == ("$G", "$Q", "$R", "$R")
        assert node.ref_set() == {"$G", "$Q", "$R"}

    def test_or_children(self):
        node = parse_condition("OR($R>=70, $Z>=0.9)")
        assert node.kind == ConditionKind.OR
        assert [c.expression for c in node.children] == ["$R>=70", "$Z>=0.9"]

    def test_nested_group(self):
        node = parse_condition("AND($G>$Q, OR($R>=70, $Z>=0.9))")
        assert node.children[1].kind == ConditionKind.OR
        assert len(node.children[1].children) == 2

    def test_commas_inside_function_not_split(self):
        node = parse_condition("AND($U<15, MAX($R, $V)<50)")
        assert len(node.children) == 2
        assert node.children[1].kind == ConditionKind.COMPLEX

    def test_true_is_default(self):
        node = parse_condition("TRUE")
        assert node.kind == ConditionKind.DEFAULT
        assert node.field_refs == ()


class TestComplex:
    def test_function_is_complex(self):
        node = parse_condition("ABS($Z-0.5)<0.2")
        assert node.kind == ConditionKind.COMPLEX
        assert node.field_refs == ("$Z",)

    def test_arithmetic_is_complex(self):
        node = parse_condition("$G>=$AD*0.98")
        assert node.kind == ConditionKind.COMPLEX
        assert node.field_refs == ("$G", "$AD")

    def test_complex_inside_group(self):
        node = parse_condition("AND($G>$Q, $G>=$P*0.95)")
        assert [c.kind for c in node.children] == [ConditionKind.COMPARISON, ConditionKind.COMPLEX]


class TestMalformed:
    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty(self, text):
        with pytest.raises(ParseError, match="empty expression"):
            parse_condition(text)

    def test_missing_operator(self):
        with pytest.raises(ParseError, match="missing comparison operator"):
            parse_condition("$G")

    def test_missing_operand(self):
        with pytest.raises(ParseError, match="missing operand"):
            parse_condition("$G>")

    def test_doubled_operator(self):
        with pytest.raises(ParseError, match="malformed comparison operator"):
            parse_condition("$G>>$Q")

    def test_unbalanced_group(self):
        with pytest.raises(ParseError, match="unbalanced parentheses"):
            parse_condition("AND($G>$Q, $R>40")

    def test_text_after_group(self):
        with pytest.raises(ParseError, match="unexpected text"):
            parse_condition("AND($G>$Q) OR($R>40)")

    def test_empty_argument(self):
        with pytest.raises(ParseError, match="empty argument"):
            parse_condition("AND($G>$Q,,$R>40)")

    def test_unterminated_quote(self):
        with pytest.raises(ParseError, match="unterminated"):
            parse_condition("$D='BUY")

    def test_lowercase_reference_rejected(self):
        with pytest.raises(ParseError, match="invalid operand"):
            parse_condition("$g>5")

    def test_error_carries_expression(self):
        with pytest.raises(ParseError) as info:
            parse_condition("$G")
        assert info.value.expression == "$G"


class TestCatalogRoundTrip:
    @pytest.mark.parametrize("key", list(DEFAULT_BRANCHES))
    def test_every_branch_parses_with_matching_refs(self, key):
        for branch in DEFAULT_BRANCHES[key]:
            node = parse_condition(branch.condition)
            assert node.ref_set() == set(extract_field_refs(branch.condition)), branch.condition
