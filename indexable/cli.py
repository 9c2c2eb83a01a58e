"""CLI for checking indexable-callback configuration.

Usage:
    python -m indexable validate config/indexable.yaml
    python -m indexable check config/indexable.yaml shop product '{"price": 10}'
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from indexable.config import IndexableSettings, load_callbacks
from indexable.evaluator import IndexableEvaluator
from indexable.exceptions import CallbackConfigError, ExpressionSyntaxError, IndexableError
from indexable.expression import PythonExpressionLanguage
from indexable.keys import split_type_key
from indexable.log import configure_logging
from indexable.naming import OBJECT_VARIABLE


def _load(config: str) -> dict[str, Any]:
    path = Path(config)
    if not path.exists():
        print(f"ERROR: configuration file not found: {path}", file=sys.stderr)
        sys.exit(1)
    try:
        return load_callbacks(path)
    except CallbackConfigError as exc:
        print(f"ERROR: {exc.message}", file=sys.stderr)
        sys.exit(1)


def _as_document(type_name: str, data: Any, methods: tuple[str, ...] = ()) -> Any:
    """Wrap decoded JSON so expressions can use attribute access.

    The top-level object gets a class named after the type, so a
    ``product`` document is reachable as ``product`` in expressions.
    Top-level fields listed in *methods* become zero-argument callables
    returning the field value, standing in for the model's methods.
    """

    def convert(value: Any) -> Any:
        if isinstance(value, dict):
            return SimpleNamespace(**{k: convert(v) for k, v in value.items()})
        if isinstance(value, list):
            return [convert(v) for v in value]
        return value

    def returning(value: Any) -> Any:
        return lambda: value

    if not isinstance(data, dict):
        return data
    fields = {k: convert(v) for k, v in data.items()}
    for name in methods:
        if name in fields:
            fields[name] = returning(fields[name])
    doc_cls = type(type_name.capitalize(), (SimpleNamespace,), {})
    return doc_cls(**fields)


def cmd_validate(args: argparse.Namespace) -> None:
    """Compile every expression callback in a configuration file."""
    callbacks = _load(args.config)
    language = PythonExpressionLanguage()
    failures = 0

    for key, spec in sorted(callbacks.items()):
        if callable(spec):
            print(f"  ok       {key:30s}  callable {getattr(spec, '__qualname__', spec)!r}")
            continue
        if isinstance(spec, str) and spec.isidentifier():
            print(f"  ok       {key:30s}  method {spec}()")
            continue

        _, type_name = split_type_key(key)
        names = [OBJECT_VARIABLE, *args.var]
        if type_name.isidentifier():
            names.append(type_name.lower())
        try:
            language.compile(spec, names)
        except ExpressionSyntaxError as exc:
            failures += 1
            print(f"  INVALID  {key:30s}  {exc.message}")
        else:
            print(f"  ok       {key:30s}  expression {spec!r}")

    print()
    print(f"{len(callbacks)} callback(s), {failures} invalid")
    if failures:
        sys.exit(1)


def cmd_check(args: argparse.Namespace) -> None:
    """Evaluate one JSON document against the configured callback.

    A method-name callback cannot run against plain JSON, so the document
    must carry the method's result as a field of the same name.
    """
    callbacks = _load(args.config)
    evaluator = IndexableEvaluator(callbacks)
    try:
        data = json.loads(args.document)
    except json.JSONDecodeError as exc:
        print(f"ERROR: document is not valid JSON: {exc}", file=sys.stderr)
        sys.exit(1)

    methods: tuple[str, ...] = ()
    spec = callbacks.get(f"{args.index}/{args.type}")
    if isinstance(spec, str) and spec.isidentifier():
        if not isinstance(data, dict) or spec not in data:
            print(
                f'ERROR: callback for type "{args.index}/{args.type}" calls method {spec}(); '
                f'give its result as the "{spec}" field of the document',
                file=sys.stderr,
            )
            sys.exit(1)
        methods = (spec,)

    try:
        result = evaluator.is_object_indexable(args.index, args.type, _as_document(args.type, data, methods))
    except (IndexableError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    print("indexable" if result else "not indexable")
    if not result:
        sys.exit(2)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="indexable",
        description="Indexable callback configuration tooling",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="Logging level (default: INDEXABLE_LOG_LEVEL, else INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # validate
    p_validate = sub.add_parser("validate", help="Compile all expression callbacks")
    p_validate.add_argument("config", help="Path to callback YAML file")
    p_validate.add_argument(
        "--var", action="append", default=[],
        help="Extra variable name expressions may reference (repeatable)",
    )
    p_validate.set_defaults(func=cmd_validate)

    # check
    p_check = sub.add_parser("check", help="Check whether a JSON document is indexable")
    p_check.add_argument("config", help="Path to callback YAML file")
    p_check.add_argument("index", help="Index name")
    p_check.add_argument("type", help="Type name")
    p_check.add_argument("document", help="JSON document")
    p_check.set_defaults(func=cmd_check)

    args = parser.parse_args(argv)
    try:
        configure_logging(args.log_level or IndexableSettings().log_level)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    args.func(args)


if __name__ == "__main__":
    main()
