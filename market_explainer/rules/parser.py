"""Parse spreadsheet-style condition expressions into condition trees.

Grammar::

    condition  := "TRUE" | group | comparison
    group      := ("AND" | "OR") "(" condition ("," condition)* ")"
    comparison := operand op operand
    op         := ">=" | "<=" | ">" | "<" | "="
    operand    := column-ref ($G, $AC) | number | 'quoted' | bare word

Comparisons that contain arithmetic or a spreadsheet function (ABS, MAX, ...)
are kept as COMPLEX nodes: recognized and referenced, but not evaluated.
Pure functions, no state. Malformed input raises ParseError, never a guess.
"""

from __future__ import annotations

import re

from market_explainer.exceptions import ParseError
from market_explainer.models.condition import (
    ComparisonOperator,
    ConditionKind,
    ConditionNode,
    Operand,
)

FIELD_REF_RE = re.compile(r"\$[A-Z]+")

_GROUP_RE = re.compile(r"^(AND|OR)\s*\(", re.IGNORECASE)
_OPERATOR_RE = re.compile(r">=|<=|>|<|=")
_FUNCTION_RE = re.compile(r"\b(ABS|AVERAGE|MAX|MIN|SUM)\s*\(", re.IGNORECASE)
_ARITHMETIC_RE = re.compile(r"[+\-*/]")
_REF_OPERAND_RE = re.compile(r"^\$[A-Z]+$")
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
_QUOTED_RE = re.compile(r"^(['\"])(.*)\1$", re.DOTALL)
_WORD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_ ]*$")


def parse_condition(expression: str) -> ConditionNode:
    """Parse one condition expression into a ConditionNode tree.

    Raises:
        ParseError: If the expression is empty or malformed.
    """
    text = (expression or "").strip()
    if not text:
        raise ParseError(expression or "", "empty expression")

    if text.upper() == "TRUE":
        return ConditionNode(kind=ConditionKind.DEFAULT, expression=text)

    group = _GROUP_RE.match(text)
    if group:
        kind = ConditionKind.AND if group.group(1).upper() == "AND" else ConditionKind.OR
        return _parse_group(text, kind, group.end() - 1)

    return _parse_comparison(text)


def extract_field_refs(expression: str) -> list[str]:
    """All column references in an expression, in order, ignoring quoted text."""
    return FIELD_REF_RE.findall(_mask_quotes(expression))


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def _parse_group(text: str, kind: ConditionKind, open_idx: int) -> ConditionNode:
    masked = _mask_quotes(text)
    close_idx = _matching_paren(masked, open_idx)
    if close_idx is None:
        raise ParseError(text, "unbalanced parentheses")
    if close_idx != len(text) - 1:
        raise ParseError(text, "unexpected text after closing parenthesis")

    body = text[open_idx + 1:close_idx]
    parts = _split_top_level(text, body, masked[open_idx + 1:close_idx])
    if any(not p.strip() for p in parts):
        raise ParseError(text, f"empty argument in {kind.value.upper()}")

    children = tuple(parse_condition(p) for p in parts)
    refs = tuple(ref for child in children for ref in child.field_refs)
    return ConditionNode(kind=kind, expression=text, children=children, field_refs=refs)


def _matching_paren(masked: str, open_idx: int) -> int | None:
    depth = 0
    for i in range(open_idx, len(masked)):
        ch = masked[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
    return None


def _split_top_level(text: str, body: str, masked_body: str) -> list[str]:
    """Split on commas that are not nested inside parentheses or quotes."""
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(masked_body):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise ParseError(text, "unbalanced parentheses")
        elif ch == "," and depth == 0:
            parts.append(body[start:i])
            start = i + 1
    parts.append(body[start:])
    return parts


# ---------------------------------------------------------------------------
# Comparisons
# ---------------------------------------------------------------------------


def _parse_comparison(text: str) -> ConditionNode:
    masked = _mask_quotes(text)
    if masked.count("(") != masked.count(")"):
        raise ParseError(text, "unbalanced parentheses")

    refs = tuple(FIELD_REF_RE.findall(masked))
    match = _OPERATOR_RE.search(masked)
    if match is None:
        raise ParseError(text, "missing comparison operator")

    operator = ComparisonOperator(match.group())
    left_text = text[:match.start()].strip()
    right_text = text[match.end():].strip()
    if not left_text or not right_text:
        raise ParseError(text, f"missing operand around '{operator.value}'")
    if right_text[0] in "<>=":
        raise ParseError(text, "malformed comparison operator")

    if _FUNCTION_RE.search(masked):
        return _complex(text, operator, refs)

    if _is_operand(left_text) and _is_operand(right_text):
        return ConditionNode(
            kind=ConditionKind.COMPARISON,
            expression=text,
            operator=operator,
            left=_operand(left_text),
            right=_operand(right_text),
            field_refs=refs,
        )

    masked_left = masked[:match.start()]
    masked_right = masked[match.end():]
    if _ARITHMETIC_RE.search(masked_left) or _ARITHMETIC_RE.search(masked_right):
        return _complex(text, operator, refs)

    bad = left_text if not _is_operand(left_text) else right_text
    raise ParseError(text, f"invalid operand {bad!r}")


def _complex(text: str, operator: ComparisonOperator, refs: tuple[str, ...]) -> ConditionNode:
    return ConditionNode(
        kind=ConditionKind.COMPLEX,
        expression=text,
        operator=operator,
        field_refs=refs,
    )


def _is_operand(token: str) -> bool:
    return bool(
        _REF_OPERAND_RE.match(token)
        or _NUMBER_RE.match(token)
        or _QUOTED_RE.match(token)
        or _WORD_RE.match(token)
    )


def _operand(token: str) -> Operand:
    if _REF_OPERAND_RE.match(token):
        return Operand(text=token, field_ref=token)
    if _NUMBER_RE.match(token):
        return Operand(text=token, literal=float(token))
    quoted = _QUOTED_RE.match(token)
    if quoted:
        return Operand(text=token, literal=quoted.group(2))
    return Operand(text=token, literal=token)


def _mask_quotes(text: str) -> str:
    """Replace quoted content with underscores so operators inside literals are ignored."""
    out: list[str] = []
    quote: str | None = None
    for ch in text:
        if quote is None:
            if ch in ("'", '"'):
                quote = ch
            out.append(ch)
        elif ch == quote:
            quote = None
            out.append(ch)
        else:
            out.append("_")
    if quote is not None:
        raise ParseError(text, "unterminated quoted literal")
    return "".join(out)
