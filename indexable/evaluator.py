"""Indexable evaluator: per-type predicates deciding what gets indexed.

The evaluator is built from a mapping of composite type keys
(``"index/type"``) to raw callback specifications, usually loaded by
:mod:`indexable.config`.  Each specification is resolved lazily, the
first time an object of that type is checked, and the resolved callback
is cached for the lifetime of the evaluator.

Resolution rules
----------------
1. No specification for the key → :data:`NO_CALLBACK` (always indexable).
2. ``callable(spec)`` → :class:`CallableCallback`.
   A string naming a callable attribute of the candidate →
   :class:`MethodCallback`.
3. Any other string → compiled by the expression language with the
   variables ``object`` and the candidate's type variable →
   :class:`ExpressionCallback`.  A syntax error becomes
   :class:`InvalidConfigurationError`.
4. Anything else → :class:`InvalidConfigurationError`.

Failed resolutions are not cached: every call for a misconfigured type
raises again.

Thread-safety
-------------
A single ``threading.Lock`` guards the cache.  Reads take a lock-free
fast path; a miss is resolved under the lock with a second lookup, so
each key is resolved at most once even under concurrent callers.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

from indexable.callbacks import (
    NO_CALLBACK,
    CallableCallback,
    ExpressionCallback,
    MethodCallback,
    ResolvedCallback,
)
from indexable.exceptions import ExpressionSyntaxError, InvalidConfigurationError
from indexable.expression import ExpressionLanguage, PythonExpressionLanguage
from indexable.keys import type_key
from indexable.naming import ClassNameProvider, TypeNameProvider, expression_variables

logger = logging.getLogger(__name__)


@runtime_checkable
class IndexableChecker(Protocol):
    """What an object persister needs before sending a document."""

    def is_object_indexable(self, index_name: str, type_name: str, obj: Any) -> bool: ...


class IndexableEvaluator:
    """Resolves and caches per-type indexable callbacks.

    Usage::

        evaluator = IndexableEvaluator({"shop/product": "object.price > 0"})
        evaluator.is_object_indexable("shop", "product", Product(price=10))  # True
    """

    def __init__(
        self,
        callbacks: Mapping[str, Any],
        *,
        expression_language: ExpressionLanguage | None = None,
        type_names: TypeNameProvider | None = None,
    ) -> None:
        self._callbacks: Mapping[str, Any] = MappingProxyType(dict(callbacks))
        self._expressions: ExpressionLanguage = (
            expression_language if expression_language is not None else PythonExpressionLanguage()
        )
        self._type_names: TypeNameProvider = (
            type_names if type_names is not None else ClassNameProvider()
        )
        self._lock = threading.Lock()
        self._resolved: dict[str, ResolvedCallback] = {}

    # ── queries ───────────────────────────────────────────

    @property
    def callbacks(self) -> Mapping[str, Any]:
        """Read-only view of the raw configured specifications."""
        return self._callbacks

    def is_object_indexable(self, index_name: str, type_name: str, obj: Any) -> bool:
        """Return whether *obj* should be indexed under *index_name*/*type_name*.

        Raises
        ------
        ValueError
            If either name is empty.
        InvalidConfigurationError
            If the callback configured for the type is unusable.
        UnsupportedFeatureError
            If the callback is an expression and expressions are unavailable.
        """
        key = type_key(index_name, type_name)
        return self._callback(key, obj).invoke(obj)

    def filter_indexable(self, index_name: str, type_name: str, objects: Iterable[Any]) -> list[Any]:
        """Keep the indexable *objects*, preserving order."""
        return [obj for obj in objects if self.is_object_indexable(index_name, type_name, obj)]

    def callback_for(self, index_name: str, type_name: str) -> ResolvedCallback | None:
        """Return the cached callback for a type, or ``None`` if not yet resolved."""
        return self._resolved.get(type_key(index_name, type_name))

    def resolved_keys(self) -> frozenset[str]:
        """Keys whose callback has been resolved."""
        with self._lock:
            return frozenset(self._resolved)

    # ── resolution ────────────────────────────────────────

    def _callback(self, key: str, obj: Any) -> ResolvedCallback:
        # Fast path, lock-free read.
        resolved = self._resolved.get(key)
        if resolved is not None:
            return resolved

        with self._lock:
            resolved = self._resolved.get(key)
            if resolved is None:
                resolved = self._build_callback(key, obj)
                self._resolved[key] = resolved
                logger.debug("Resolved indexable callback %s as %s", key, resolved.kind)
            return resolved

    def _build_callback(self, key: str, obj: Any) -> ResolvedCallback:
        if key not in self._callbacks:
            return NO_CALLBACK

        spec = self._callbacks[key]
        if callable(spec):
            return CallableCallback(spec)
        if isinstance(spec, str) and callable(getattr(obj, spec, None)):
            return MethodCallback(spec)
        if isinstance(spec, str):
            return self._build_expression_callback(key, obj, spec)

        msg = "is not a valid callback"
        raise InvalidConfigurationError(key, msg)

    def _build_expression_callback(self, key: str, obj: Any, text: str) -> ExpressionCallback:
        names = expression_variables(self._type_names, obj)
        try:
            compiled = self._expressions.compile(text, names)
        except ExpressionSyntaxError as exc:
            raise InvalidConfigurationError(key, "is an invalid expression") from exc
        return ExpressionCallback(compiled, self._expressions, self._type_names)
