"""Resolved callbacks: the invocation-ready form of a configured callback.

A configured callback resolves to exactly one of four strategies:

    NONE        nothing configured; every object is indexable
    CALLABLE    ``callback(obj)``
    METHOD      ``getattr(obj, name)()``
    EXPRESSION  compiled expression evaluated with ``object`` (and the
                type variable) bound to the candidate

All four share the :class:`ResolvedCallback` protocol, so the evaluator
never inspects the raw specification once it is resolved.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from indexable.expression import CompiledExpression, ExpressionLanguage
from indexable.naming import TypeNameProvider, expression_variables


class CallbackKind(StrEnum):
    """Tag of a resolved callback."""

    NONE = "none"
    CALLABLE = "callable"
    METHOD = "method"
    EXPRESSION = "expression"


@runtime_checkable
class ResolvedCallback(Protocol):
    """Strategy interface shared by every resolved callback."""

    @property
    def kind(self) -> CallbackKind: ...

    def invoke(self, obj: Any) -> bool:
        """Decide whether *obj* is indexable."""
        ...


@dataclass(slots=True, frozen=True)
class NoCallback:
    """Nothing configured for the type: everything is indexable."""

    kind: CallbackKind = CallbackKind.NONE

    def invoke(self, obj: Any) -> bool:
        return True


@dataclass(slots=True, frozen=True)
class CallableCallback:
    """A configured callable receiving the candidate as sole argument."""

    function: Callable[[Any], Any]
    kind: CallbackKind = CallbackKind.CALLABLE

    def invoke(self, obj: Any) -> bool:
        return bool(self.function(obj))


@dataclass(slots=True, frozen=True)
class MethodCallback:
    """Name of a zero-argument method on the candidate."""

    name: str
    kind: CallbackKind = CallbackKind.METHOD

    def invoke(self, obj: Any) -> bool:
        return bool(getattr(obj, self.name)())


@dataclass(slots=True, frozen=True)
class ExpressionCallback:
    """A compiled expression bound to the engine that compiled it."""

    expression: CompiledExpression
    language: ExpressionLanguage
    type_names: TypeNameProvider
    kind: CallbackKind = CallbackKind.EXPRESSION

    def invoke(self, obj: Any) -> bool:
        # Bind the names compiled against as well as the ones for this
        # candidate's own type.
        names = (*self.expression.names, *expression_variables(self.type_names, obj))
        variables = dict.fromkeys(names, obj)
        return bool(self.language.evaluate(self.expression, variables))


NO_CALLBACK = NoCallback()
