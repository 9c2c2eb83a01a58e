"""Composite type keys (``"index/type"``)."""

from __future__ import annotations

SEPARATOR = "/"


def type_key(index_name: str, type_name: str) -> str:
    """Join *index_name* and *type_name* into the lookup key.

    Raises
    ------
    ValueError
        If either name is empty.
    """
    if not index_name:
        msg = "index_name must be a non-empty string"
        raise ValueError(msg)
    if not type_name:
        msg = "type_name must be a non-empty string"
        raise ValueError(msg)
    return f"{index_name}{SEPARATOR}{type_name}"


def split_type_key(key: str) -> tuple[str, str]:
    """Inverse of :func:`type_key`; splits on the first separator."""
    index_name, sep, type_name = key.partition(SEPARATOR)
    if not sep or not index_name or not type_name:
        msg = f"Not a composite type key: {key!r}"
        raise ValueError(msg)
    return index_name, type_name
