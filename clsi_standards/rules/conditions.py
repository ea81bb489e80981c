"""Expert rule condition language.

Rule conditions are small boolean expressions over the evaluation context,
for example::

    interpretedResult == "susceptible" && testValue < 14
    testMethod === "disk_diffusion"
    not (interpreted_result == "R") or test_value >= 32

They are parsed into a tree of nodes and evaluated by walking the tree;
nothing is ever executed as code.

Grammar::

    or_expr    := and_expr (("||" | "or") and_expr)*
    and_expr   := not_expr (("&&" | "and") not_expr)*
    not_expr   := ("!" | "not") not_expr | comparison
    comparison := operand (OP operand)?
    operand    := NUMBER | STRING | true | false | null | NAME | "(" or_expr ")"
    OP         := == | === | != | !== | < | <= | > | >=
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Mapping

from ..models import SensitivityResult


class ConditionError(Exception):
    """Base class for condition parse and evaluation failures."""


class ConditionSyntaxError(ConditionError):
    """The condition text is not a valid expression."""


class ConditionEvaluationError(ConditionError):
    """The condition is valid but cannot be evaluated against the context."""


# ============================================================================
# AST nodes
# ============================================================================

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class FieldRef:
    name: str


@dataclass(frozen=True)
class Compare:
    op: str  # ==, !=, <, <=, >, >=
    left: Any
    right: Any


@dataclass(frozen=True)
class BoolOp:
    op: str  # and, or
    operands: tuple


@dataclass(frozen=True)
class Not:
    operand: Any


# ============================================================================
# Tokenizer
# ============================================================================

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<number>-?(?:\d+(?:\.\d*)?|\.\d+))
    |(?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    |(?P<op>===|!==|==|!=|<=|>=|&&|\|\||<|>|!)
    |(?P<lparen>\()
    |(?P<rparen>\))
    |(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    """,
    re.VERBOSE,
)

_COMPARISON_OPS = {
    "==": "==",
    "===": "==",
    "!=": "!=",
    "!==": "!=",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
}

# Parentheses and negations deeper than this are rejected at parse time
MAX_NESTING_DEPTH = 64

_KEYWORD_LITERALS = {
    "true": True,
    "false": False,
    "null": None,
    "none": None,
}


@dataclass
class _Token:
    kind: str
    value: Any
    pos: int


def _tokenize(text: str) -> list[_Token]:
    tokens = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if not match:
            raise ConditionSyntaxError(f"Unexpected character {text[pos]!r} at position {pos}")
        kind = match.lastgroup
        raw = match.group()
        if kind == "number":
            tokens.append(_Token("number", float(raw), pos))
        elif kind == "string":
            body = raw[1:-1]
            tokens.append(_Token("string", re.sub(r"\\(.)", r"\1", body), pos))
        elif kind == "name":
            lowered = raw.lower()
            if lowered in ("and", "or", "not"):
                tokens.append(_Token("op", lowered, pos))
            elif lowered in _KEYWORD_LITERALS:
                tokens.append(_Token("literal", _KEYWORD_LITERALS[lowered], pos))
            else:
                tokens.append(_Token("name", raw, pos))
        elif kind != "ws":
            tokens.append(_Token(kind, raw, pos))
        pos = match.end()
    return tokens


# ============================================================================
# Parser
# ============================================================================

class _Parser:
    """Recursive-descent parser producing the node tree."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0
        self.depth = 0

    def _peek(self) -> _Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _take(self) -> _Token:
        token = self._peek()
        if token is None:
            raise ConditionSyntaxError(f"Unexpected end of condition: {self.text!r}")
        self.index += 1
        return token

    def _descend(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise ConditionSyntaxError(
                f"Condition is nested too deeply (more than {MAX_NESTING_DEPTH} levels)"
            )

    def _accept_op(self, *ops: str) -> bool:
        token = self._peek()
        if token is not None and token.kind == "op" and token.value in ops:
            self.index += 1
            return True
        return False

    def parse(self):
        if not self.tokens:
            raise ConditionSyntaxError("Condition is empty")
        node = self._or_expr()
        leftover = self._peek()
        if leftover is not None:
            raise ConditionSyntaxError(
                f"Unexpected {leftover.value!r} at position {leftover.pos}"
            )
        return node

    def _or_expr(self):
        operands = [self._and_expr()]
        while self._accept_op("||", "or"):
            operands.append(self._and_expr())
        return operands[0] if len(operands) == 1 else BoolOp("or", tuple(operands))

    def _and_expr(self):
        operands = [self._not_expr()]
        while self._accept_op("&&", "and"):
            operands.append(self._not_expr())
        return operands[0] if len(operands) == 1 else BoolOp("and", tuple(operands))

    def _not_expr(self):
        if self._accept_op("!", "not"):
            self._descend()
            node = Not(self._not_expr())
            self.depth -= 1
            return node
        return self._comparison()

    def _comparison(self):
        left = self._operand()
        token = self._peek()
        if token is not None and token.kind == "op" and token.value in _COMPARISON_OPS:
            self.index += 1
            right = self._operand()
            return Compare(_COMPARISON_OPS[token.value], left, right)
        return left

    def _operand(self):
        token = self._take()
        if token.kind in ("number", "string", "literal"):
            return Literal(token.value)
        if token.kind == "name":
            return FieldRef(token.value)
        if token.kind == "lparen":
            self._descend()
            node = self._or_expr()
            closing = self._take()
            if closing.kind != "rparen":
                raise ConditionSyntaxError(
                    f"Expected ')' at position {closing.pos}, got {closing.value!r}"
                )
            self.depth -= 1
            return node
        raise ConditionSyntaxError(f"Unexpected {token.value!r} at position {token.pos}")


@lru_cache(maxsize=512)
def parse_condition(text: str):
    """Parse condition text into a node tree.

    Raises:
        ConditionSyntaxError: If the text is not a valid expression
    """
    if not isinstance(text, str):
        raise ConditionSyntaxError(f"Condition must be text, got {type(text).__name__}")
    return _Parser(text).parse()


# ============================================================================
# Evaluation
# ============================================================================

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class ConditionEvaluation:
    """Outcome of evaluating one condition.

    ``margins`` holds the relative distance from its threshold of every
    numeric ordering comparison that decided the result. A false operand
    that an ``or`` moved past, or a true one before the false operand
    that ended an ``and``, records nothing. Categorical comparisons are
    exact and record nothing either.
    """
    result: bool
    margins: list[float] = field(default_factory=list)

    def is_clear(self, min_margin: float) -> bool:
        return all(m >= min_margin for m in self.margins)


class _Evaluator:
    def __init__(self, context: Mapping[str, Any]):
        self.context = context
        self.margins: list[float] = []

    def resolve(self, name: str) -> Any:
        if name in self.context:
            return self.context[name]
        snake = snake_case(name)
        if snake in self.context:
            return self.context[snake]
        raise ConditionEvaluationError(f"Unknown field '{name}'")

    def value(self, node) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, FieldRef):
            return self.resolve(node.name)
        if isinstance(node, (Compare, BoolOp, Not)):
            return self.truth(node)
        raise ConditionEvaluationError(f"Unsupported node {node!r}")

    def bool_op(self, node: BoolOp) -> bool:
        """Short-circuit and/or, keeping margins only from deciding operands.

        A false operand decides an ``and`` and a true operand decides an
        ``or`` on its own; otherwise every operand contributed.
        """
        deciding = node.op == "or"
        outer = self.margins
        contributed = []
        try:
            for operand in node.operands:
                self.margins = []
                if self.truth(operand) == deciding:
                    outer.extend(self.margins)
                    return deciding
                contributed.extend(self.margins)
            outer.extend(contributed)
            return not deciding
        finally:
            self.margins = outer

    def truth(self, node) -> bool:
        if isinstance(node, BoolOp):
            return self.bool_op(node)
        if isinstance(node, Not):
            return not self.truth(node.operand)
        if isinstance(node, Compare):
            return self.compare(node)

        value = self.value(node)
        if not isinstance(value, bool):
            raise ConditionEvaluationError(
                f"Expected a true/false value, got {value!r}"
            )
        return value

    def compare(self, node: Compare) -> bool:
        left = self.value(node.left)
        right = self.value(node.right)

        if node.op in ("==", "!="):
            equal = self._equal(left, right)
            return equal if node.op == "==" else not equal

        if not (_is_number(left) and _is_number(right)):
            raise ConditionEvaluationError(
                f"Cannot order {left!r} {node.op} {right!r}: both sides must be numbers"
            )
        threshold = right if isinstance(node.right, Literal) else left
        distance = abs(left - right)
        self.margins.append(distance / abs(threshold) if threshold else distance)

        if node.op == "<":
            return left < right
        if node.op == "<=":
            return left <= right
        if node.op == ">":
            return left > right
        return left >= right

    @staticmethod
    def _equal(left: Any, right: Any) -> bool:
        for result_side, other in ((left, right), (right, left)):
            if isinstance(result_side, SensitivityResult):
                try:
                    return result_side == SensitivityResult.parse(other)
                except ValueError:
                    return False
        if isinstance(left, Enum):
            left = left.value
        if isinstance(right, Enum):
            right = right.value
        if _is_number(left) and _is_number(right):
            return float(left) == float(right)
        return left == right


def evaluate_condition(condition, context: Mapping[str, Any]) -> ConditionEvaluation:
    """Evaluate condition text (or a parsed tree) against a context mapping.

    Field names may be written camelCase or snake_case; the context is
    looked up by the exact name first, then by its snake_case form.

    Raises:
        ConditionSyntaxError: If condition text cannot be parsed
        ConditionEvaluationError: On unknown fields or mismatched types
    """
    node = parse_condition(condition) if isinstance(condition, str) else condition
    evaluator = _Evaluator(context)
    result = evaluator.truth(node)
    return ConditionEvaluation(result=result, margins=evaluator.margins)
