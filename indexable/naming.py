"""Type-name providers for expression variable binding.

Inside an expression the candidate is always bound as ``object``.  It is
also bound under a second name derived from its type: by default the
lower-cased simple class name, so a ``Product`` instance is reachable as
``product``.  Plain values (numbers, strings, built-in containers) and
types whose name is a builtin such as ``len`` get no second name.
"""

from __future__ import annotations

import threading
from typing import Any, Protocol, runtime_checkable

from indexable.expression import CONSTANT_ALIASES, SAFE_BUILTINS

OBJECT_VARIABLE = "object"

# Names already meaningful inside expressions; a type variable never
# rebinds them.
RESERVED_NAMES: frozenset[str] = frozenset({OBJECT_VARIABLE, *CONSTANT_ALIASES, *SAFE_BUILTINS})

# Candidates of these types are values rather than objects: they bind
# only as ``object``.
VALUE_TYPES: tuple[type, ...] = (
    type(None), bool, int, float, complex, str, bytes,
    list, tuple, dict, set, frozenset,
)


@runtime_checkable
class TypeNameProvider(Protocol):
    """Maps a candidate object to its expression variable name."""

    def variable_name(self, obj: Any) -> str | None:
        """Return the variable name for *obj*, or ``None`` for plain values."""
        ...


class ClassNameProvider:
    """Lower-cased ``type(obj).__name__``, without the module path."""

    def variable_name(self, obj: Any) -> str | None:
        if isinstance(obj, VALUE_TYPES):
            return None
        return type(obj).__name__.lower()


class StaticTypeNameRegistry:
    """Explicit ``type -> variable name`` registry.

    Lookups walk the candidate's MRO, so registering a base class covers
    its subclasses.  Unregistered types are delegated to *fallback*.
    """

    def __init__(
        self,
        names: dict[type, str] | None = None,
        fallback: TypeNameProvider | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._names: dict[type, str] = {}
        self._fallback = fallback if fallback is not None else ClassNameProvider()
        for cls, name in (names or {}).items():
            self.register(cls, name)

    def register(self, cls: type, name: str) -> None:
        """Bind instances of *cls* to variable *name*.

        Raises
        ------
        ValueError
            If *name* is not an identifier or shadows ``object``, a builtin
            or a constant alias.
        """
        if not name.isidentifier():
            msg = f"Not a valid variable name: {name!r}"
            raise ValueError(msg)
        if name in RESERVED_NAMES:
            msg = f"{name!r} is reserved inside expressions"
            raise ValueError(msg)
        with self._lock:
            self._names[cls] = name

    def variable_name(self, obj: Any) -> str | None:
        with self._lock:
            for cls in type(obj).__mro__:
                name = self._names.get(cls)
                if name is not None:
                    return name
        return self._fallback.variable_name(obj)


def expression_variables(provider: TypeNameProvider, obj: Any) -> tuple[str, ...]:
    """Names an expression may reference for candidate *obj*."""
    name = provider.variable_name(obj)
    if name is None or name in RESERVED_NAMES:
        return (OBJECT_VARIABLE,)
    return (OBJECT_VARIABLE, name)
