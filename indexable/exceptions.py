"""Error hierarchy for indexable-callback resolution.

Every error carries a human-readable ``message`` plus the structured
fields a caller needs to report it (the composite type key, the
expression text, the missing feature).  Resolution errors surface on the
first ``is_object_indexable`` call for a misconfigured type; errors
raised *inside* a callback during invocation are never wrapped.
"""

from __future__ import annotations

from pathlib import Path


class IndexableError(Exception):
    """Base exception for blanket catch."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidConfigurationError(IndexableError, ValueError):
    """Raised when the callback configured for a type cannot be used.

    Either the specification is neither callable, a method name, nor a
    string, or it is an expression that does not compile.
    """

    def __init__(self, type_key: str, reason: str) -> None:
        """Initialize configuration error.

        Args:
            type_key: Composite ``index/type`` key of the offending entry
            reason: Why the callback was rejected
        """
        super().__init__(f'Callback for type "{type_key}" {reason}')
        self.type_key = type_key
        self.reason = reason


class UnsupportedFeatureError(IndexableError, RuntimeError):
    """Raised when a callback needs a capability the runtime does not offer."""

    def __init__(self, feature: str) -> None:
        super().__init__(f"Unable to process an expression without the {feature}")
        self.feature = feature


class ExpressionSyntaxError(IndexableError):
    """Raised by an expression language when text fails to compile."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"{reason} in expression {expression!r}")
        self.expression = expression
        self.reason = reason


class CallbackConfigError(IndexableError):
    """Raised when a callback configuration file is malformed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path
