"""Indexable — per-type predicates deciding whether an object is indexed.

Public API:
    - IndexableEvaluator       — resolves, caches and invokes per-type callbacks
    - IndexableChecker         — protocol implemented by the evaluator
    - type_key                 — builds the ``"index/type"`` composite key
    - ExpressionLanguage       — expression-compiler capability protocol
    - PythonExpressionLanguage — default restricted-Python expression engine
    - UnavailableExpressionLanguage — stand-in when expressions are disabled
    - CompiledExpression       — compiled expression text and its variables
    - TypeNameProvider         — maps a candidate to its expression variable
    - ClassNameProvider        — lower-cased class name provider (default)
    - StaticTypeNameRegistry   — explicit type-to-name registry
    - CallbackKind             — tag of a resolved callback
    - ResolvedCallback         — strategy protocol of resolved callbacks
    - IndexableSettings        — environment-driven settings
    - load_callbacks           — YAML callback file → evaluator mapping
    - build_evaluator          — evaluator wired from settings
    - IndexableError           — base exception for blanket catch
    - InvalidConfigurationError — raised when a configured callback is unusable
    - UnsupportedFeatureError  — raised when expressions are unavailable
    - ExpressionSyntaxError    — raised by expression compilers
    - CallbackConfigError      — raised when a callback file is malformed
"""

from __future__ import annotations

from indexable.callbacks import CallbackKind, ResolvedCallback
from indexable.config import IndexableSettings, build_evaluator, load_callbacks
from indexable.evaluator import IndexableChecker, IndexableEvaluator
from indexable.exceptions import (
    CallbackConfigError,
    ExpressionSyntaxError,
    IndexableError,
    InvalidConfigurationError,
    UnsupportedFeatureError,
)
from indexable.expression import (
    CompiledExpression,
    ExpressionLanguage,
    PythonExpressionLanguage,
    UnavailableExpressionLanguage,
)
from indexable.keys import type_key
from indexable.naming import ClassNameProvider, StaticTypeNameRegistry, TypeNameProvider

__all__ = [
    "CallbackConfigError",
    "CallbackKind",
    "ClassNameProvider",
    "CompiledExpression",
    "ExpressionLanguage",
    "ExpressionSyntaxError",
    "IndexableChecker",
    "IndexableError",
    "IndexableEvaluator",
    "IndexableSettings",
    "InvalidConfigurationError",
    "PythonExpressionLanguage",
    "ResolvedCallback",
    "StaticTypeNameRegistry",
    "TypeNameProvider",
    "UnavailableExpressionLanguage",
    "UnsupportedFeatureError",
    "build_evaluator",
    "load_callbacks",
    "type_key",
]
