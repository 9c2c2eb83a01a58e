"""Callback configuration: environment settings and the YAML callback file.

The callback file mirrors the index/type layout of the search index::

    indexes:
      blog:
        types:
          post:
            indexable_callback: is_published
      shop:
        types:
          product:
            indexable_callback: "object.price > 0"
          order:
            indexable_callback:
              callable: "myapp.rules:order_is_indexable"

``load_callbacks`` flattens it into the ``{"index/type": spec}`` mapping
that :class:`~indexable.evaluator.IndexableEvaluator` is built from.
``{callable: "module:attr"}`` entries are imported at load time; types
without an ``indexable_callback`` contribute no entry (always indexable).
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from indexable.evaluator import IndexableEvaluator
from indexable.exceptions import CallbackConfigError
from indexable.expression import ExpressionLanguage, PythonExpressionLanguage, UnavailableExpressionLanguage
from indexable.keys import type_key

logger = logging.getLogger(__name__)


class IndexableSettings(BaseSettings):
    """Environment-driven settings for the indexable evaluator."""

    callbacks_file: Path | None = None
    expressions_enabled: bool = True
    log_level: str = "INFO"

    model_config = {"env_prefix": "INDEXABLE_", "env_file": ".env", "extra": "ignore"}


# ── File schema ──────────────────────────────────────────


class CallableRef(BaseModel):
    """Import path of a callable, ``"package.module:attribute"``."""

    model_config = {"extra": "forbid"}

    callable: str = Field(pattern=r"^[\w.]+:[\w.]+$")


class TypeConfig(BaseModel):
    """Per-type options; only the indexable callback is read here."""

    model_config = {"extra": "allow"}

    indexable_callback: CallableRef | str | None = None


class IndexConfig(BaseModel):
    model_config = {"extra": "allow"}

    types: dict[str, TypeConfig] = Field(default_factory=dict)


class CallbacksDocument(BaseModel):
    """Top level of the callback file."""

    indexes: dict[str, IndexConfig] = Field(default_factory=dict)


# ── Loading ──────────────────────────────────────────────


def import_callable(ref: str) -> Any:
    """Import ``"package.module:attribute"`` and return the callable.

    Raises
    ------
    CallbackConfigError
        If the module or attribute cannot be found, or is not callable.
    """
    module_name, _, attr_path = ref.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        msg = f"Cannot import module {module_name!r} for callback {ref!r}: {exc}"
        raise CallbackConfigError(msg) from exc

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as exc:
            msg = f"Callback {ref!r} not found"
            raise CallbackConfigError(msg) from exc

    if not callable(target):
        msg = f"Callback {ref!r} is not callable"
        raise CallbackConfigError(msg)
    return target


def callbacks_from_document(doc: CallbacksDocument) -> dict[str, Any]:
    """Flatten a validated document into ``{"index/type": spec}``."""
    callbacks: dict[str, Any] = {}
    for index_name, index in doc.indexes.items():
        for type_name, type_config in index.types.items():
            spec = type_config.indexable_callback
            if spec is None:
                continue
            try:
                key = type_key(index_name, type_name)
            except ValueError as exc:
                msg = f"Invalid index/type name {index_name!r}/{type_name!r}: {exc}"
                raise CallbackConfigError(msg) from exc
            if isinstance(spec, CallableRef):
                spec = import_callable(spec.callable)
            callbacks[key] = spec
    return callbacks


def load_document(path: Path | str) -> CallbacksDocument:
    """Read and validate a callback file.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    CallbackConfigError
        If the YAML is not a mapping or fails schema validation.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Callback configuration not found: {path}"
        raise FileNotFoundError(msg)

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise CallbackConfigError(f"Invalid YAML: {exc}", path) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"Expected YAML mapping at top level, got {type(data).__name__}"
        raise CallbackConfigError(msg, path)

    try:
        return CallbacksDocument.model_validate(data)
    except ValidationError as exc:
        raise CallbackConfigError(f"Validation failed: {exc}", path) from exc


def load_callbacks(path: Path | str) -> dict[str, Any]:
    """Load a callback file into the mapping the evaluator is built from."""
    callbacks = callbacks_from_document(load_document(path))
    logger.info("Loaded %d indexable callback(s) from %s", len(callbacks), path)
    return callbacks


def build_evaluator(settings: IndexableSettings | None = None) -> IndexableEvaluator:
    """Wire an evaluator from *settings* (read from the environment if omitted)."""
    if settings is None:
        settings = IndexableSettings()

    callbacks: dict[str, Any] = {}
    if settings.callbacks_file is not None:
        callbacks = load_callbacks(settings.callbacks_file)

    language: ExpressionLanguage
    if settings.expressions_enabled:
        language = PythonExpressionLanguage()
    else:
        logger.warning("Expression callbacks disabled; string expressions will be rejected")
        language = UnavailableExpressionLanguage()

    return IndexableEvaluator(callbacks, expression_language=language)
