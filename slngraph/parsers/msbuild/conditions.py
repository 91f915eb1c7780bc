"""Evaluator for MSBuild ``Condition`` attributes.

Supports the subset found in real descriptors: quoted and bare operands,
``==`` ``!=`` and the numeric comparisons, ``and`` ``or`` ``!`` with
parentheses, and the ``Exists()`` and ``HasTrailingSlash()`` functions.
String comparison is case-insensitive.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Callable, List, Optional, Tuple, Union

from slngraph.utils.path_utils import resolve_path

logger = logging.getLogger("slngraph.parsers.msbuild.conditions")

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>'[^']*')
      | (?P<op>==|!=|<=|>=|<|>|!|\(|\)|,)
      | (?P<word>(?:\$\([^)]*\)|[^\s'()=!<>,])+)
    )
    """,
    re.VERBOSE,
)

_COMPARISONS = ("==", "!=", "<", ">", "<=", ">=")

Token = Tuple[str, str]
Operand = Union[str, bool]


class ConditionError(ValueError):
    """A condition could not be parsed or evaluated."""


def tokenize(condition: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    text = condition.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise ConditionError(f"Unexpected character in condition: {condition!r}")
        pos = match.end()
        if match.group("string") is not None:
            tokens.append(("string", match.group("string")[1:-1]))
        elif match.group("op") is not None:
            tokens.append(("op", match.group("op")))
        else:
            word = match.group("word")
            if word.lower() in ("and", "or"):
                tokens.append(("op", word.lower()))
            else:
                tokens.append(("word", word))
    return tokens


class ConditionEvaluator:
    """Recursive descent evaluator over a token list.

    Args:
        expand: Callback that expands ``$(...)`` references in operands.
        base_dir: Directory ``Exists()`` resolves relative paths against.
    """

    def __init__(self, expand: Callable[[str], str], base_dir: str):
        self._expand = expand
        self._base_dir = base_dir
        self._tokens: List[Token] = []
        self._pos = 0

    def evaluate(self, condition: Optional[str]) -> bool:
        if condition is None or not condition.strip():
            return True
        self._tokens = tokenize(condition)
        self._pos = 0
        result = self._or()
        if self._pos != len(self._tokens):
            raise ConditionError(f"Trailing tokens in condition: {condition!r}")
        return self._as_bool(result)

    def _peek(self) -> Optional[Token]:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise ConditionError("Unexpected end of condition")
        self._pos += 1
        return token

    def _accept(self, op: str) -> bool:
        token = self._peek()
        if token == ("op", op):
            self._pos += 1
            return True
        return False

    def _or(self) -> Operand:
        left = self._and()
        while self._accept("or"):
            right = self._and()
            left = self._as_bool(left) or self._as_bool(right)
        return left

    def _and(self) -> Operand:
        left = self._not()
        while self._accept("and"):
            right = self._not()
            left = self._as_bool(left) and self._as_bool(right)
        return left

    def _not(self) -> Operand:
        if self._accept("!"):
            return not self._as_bool(self._not())
        return self._comparison()

    def _comparison(self) -> Operand:
        left = self._operand()
        token = self._peek()
        if token is not None and token[0] == "op" and token[1] in _COMPARISONS:
            self._pos += 1
            right = self._operand()
            return self._compare(token[1], left, right)
        return left

    def _operand(self) -> Operand:
        kind, value = self._next()
        if kind == "op" and value == "(":
            inner = self._or()
            if not self._accept(")"):
                raise ConditionError("Missing closing parenthesis")
            return inner
        if kind == "string":
            return self._expand(value)
        if kind == "word":
            if self._accept("("):
                return self._call(value)
            return self._expand(value)
        raise ConditionError(f"Unexpected operator {value!r}")

    def _call(self, name: str) -> Operand:
        args: List[str] = []
        if not self._accept(")"):
            while True:
                args.append(str(self._operand()))
                if self._accept(")"):
                    break
                if not self._accept(","):
                    raise ConditionError(f"Malformed arguments to {name}()")
        lowered = name.lower()
        if lowered == "exists":
            path = args[0].strip() if args else ""
            return bool(path) and os.path.exists(resolve_path(path, self._base_dir))
        if lowered == "hastrailingslash":
            path = args[0] if args else ""
            return path.endswith(("\\", "/"))
        raise ConditionError(f"Unsupported condition function {name}()")

    @staticmethod
    def _compare(op: str, left: Operand, right: Operand) -> bool:
        lhs = str(left).strip().lower()
        rhs = str(right).strip().lower()
        if op == "==":
            return lhs == rhs
        if op == "!=":
            return lhs != rhs
        try:
            a, b = float(lhs), float(rhs)
        except ValueError as exc:
            raise ConditionError(f"Cannot compare {left!r} {op} {right!r}") from exc
        if op == "<":
            return a < b
        if op == ">":
            return a > b
        if op == "<=":
            return a <= b
        return a >= b

    @staticmethod
    def _as_bool(value: Operand) -> bool:
        if isinstance(value, bool):
            return value
        lowered = value.strip().lower()
        if lowered in ("true", "on", "yes"):
            return True
        if lowered in ("false", "off", "no"):
            return False
        raise ConditionError(f"Expected a boolean, got {value!r}")
