"""Expression-compiler capability used for string callbacks.

A string callback that is not a method name on the candidate object is
treated as a boolean expression over two variables: ``object`` and the
candidate's type variable (``product`` for a ``Product``).  For example::

    object.price > 0 and not product.is_draft()

The evaluator only depends on the :class:`ExpressionLanguage` protocol.
:class:`PythonExpressionLanguage` is the default implementation: it
accepts a restricted subset of Python expression syntax, validated node
by node before the expression is compiled to a code object.
:class:`UnavailableExpressionLanguage` stands in when expressions are
switched off.
"""

from __future__ import annotations

import ast
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import CodeType
from typing import Any, Protocol, runtime_checkable

from indexable.exceptions import ExpressionSyntaxError, UnsupportedFeatureError

# ── Compiled form ────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class CompiledExpression:
    """Expression text that compiled against a fixed set of variables.

    Attributes:
        source: Original expression text.
        names: Variable names the expression was compiled against.
        code: Implementation-specific compiled form (a code object for
            :class:`PythonExpressionLanguage`).
    """

    source: str
    names: tuple[str, ...]
    code: Any = None


@runtime_checkable
class ExpressionLanguage(Protocol):
    """What the evaluator needs from an expression engine."""

    def compile(self, text: str, names: Iterable[str]) -> CompiledExpression:
        """Compile *text* with *names* as the only free variables.

        Raises ``ExpressionSyntaxError`` if *text* does not compile.
        """
        ...

    def evaluate(self, expression: CompiledExpression, variables: Mapping[str, Any]) -> Any:
        """Evaluate a compiled expression with *variables* bound."""
        ...


# ── Restricted Python dialect ────────────────────────────

# Literal aliases so configuration can be written the same way in YAML
# and in expressions.
CONSTANT_ALIASES: dict[str, Any] = {"true": True, "false": False, "null": None}

SAFE_BUILTINS: dict[str, Any] = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "float": float,
    "int": int,
    "len": len,
    "max": max,
    "min": min,
    "round": round,
    "sorted": sorted,
    "str": str,
    "sum": sum,
}

_ALLOWED_NODES: tuple[type[ast.AST], ...] = (
    ast.Expression,
    ast.BoolOp, ast.And, ast.Or,
    ast.UnaryOp, ast.Not, ast.USub, ast.UAdd,
    ast.BinOp, ast.Add, ast.Sub, ast.Mult, ast.Div, ast.FloorDiv, ast.Mod,
    ast.Compare, ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE,
    ast.In, ast.NotIn, ast.Is, ast.IsNot,
    ast.IfExp,
    ast.Attribute, ast.Subscript, ast.Slice,
    ast.Name, ast.Load,
    ast.Constant, ast.List, ast.Tuple, ast.Set, ast.Dict,
    ast.Call, ast.keyword,
)

# String formatting walks attributes at runtime, out of reach of the
# checks below.
_BLOCKED_ATTRIBUTES: frozenset[str] = frozenset({"format", "format_map"})


class _Validator(ast.NodeVisitor):
    """Walks a parsed expression and rejects anything outside the dialect."""

    def __init__(self, source: str, names: frozenset[str]) -> None:
        self.source = source
        self.names = names

    def fail(self, reason: str) -> None:
        raise ExpressionSyntaxError(self.source, reason)

    def generic_visit(self, node: ast.AST) -> None:
        if not isinstance(node, _ALLOWED_NODES):
            self.fail(f"Unsupported syntax {type(node).__name__}")
        super().generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id in self.names or node.id in CONSTANT_ALIASES or node.id in SAFE_BUILTINS:
            return
        self.fail(f'Variable "{node.id}" is not valid')

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_") or node.attr in _BLOCKED_ATTRIBUTES:
            self.fail(f'Attribute "{node.attr}" is not accessible')
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        func = node.func
        if isinstance(func, ast.Name):
            if func.id not in SAFE_BUILTINS:
                self.fail(f'Function "{func.id}" does not exist')
        elif not isinstance(func, ast.Attribute):
            self.fail("Only methods and built-in functions can be called")
        for kw in node.keywords:
            if kw.arg is None:
                self.fail("Keyword argument unpacking is not supported")
        self.generic_visit(node)


class PythonExpressionLanguage:
    """Restricted Python expressions, checked before they are compiled.

    Names must be one of the declared variables, a constant alias
    (``true``/``false``/``null``) or a whitelisted builtin.  Private
    attributes, ``format``/``format_map``, comprehensions, lambdas and
    assignment expressions are rejected at compile time, and the compiled
    code runs with empty ``__builtins__``.
    """

    def compile(self, text: str, names: Iterable[str]) -> CompiledExpression:
        declared = tuple(dict.fromkeys(names))
        if not isinstance(text, str) or not text.strip():
            raise ExpressionSyntaxError(str(text), "Empty expression")
        try:
            tree = ast.parse(text.strip(), mode="eval")
        except (SyntaxError, ValueError) as exc:
            reason = getattr(exc, "msg", None) or str(exc)
            raise ExpressionSyntaxError(text, f"Syntax error ({reason})") from exc

        _Validator(text, frozenset(declared)).visit(tree)
        code: CodeType = compile(tree, "<expression>", "eval")
        return CompiledExpression(source=text, names=declared, code=code)

    def evaluate(self, expression: CompiledExpression, variables: Mapping[str, Any]) -> Any:
        namespace: dict[str, Any] = {**SAFE_BUILTINS, **CONSTANT_ALIASES, **variables}
        return eval(expression.code, {"__builtins__": {}}, namespace)  # noqa: S307


class UnavailableExpressionLanguage:
    """Stand-in used when expression support is switched off."""

    feature = "expression language"

    def compile(self, text: str, names: Iterable[str]) -> CompiledExpression:
        raise UnsupportedFeatureError(self.feature)

    def evaluate(self, expression: CompiledExpression, variables: Mapping[str, Any]) -> Any:
        raise UnsupportedFeatureError(self.feature)
