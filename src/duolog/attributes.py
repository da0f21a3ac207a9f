"""Attribute merging and grouping.

An attribute is a ``(key, value)`` pair. Sequences of attributes keep their
order and keep duplicate keys; nothing here deduplicates. Three sources are
merged per event, always in this order:

1. attributes bound to the handler (``DuoLogger.with_attrs``)
2. attributes given at the call site
3. attributes resolved from the ambient context

The merged sequence is then shaped two ways. Text output flattens every key
with a dotted group prefix; JSON output nests all attributes under a single
object keyed by the group name.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from duolog.exceptions import PayloadError

#: A single (key, value) attribute.
Attr = tuple[str, Any]


def normalize_attrs(
    attrs: Mapping[str, Any] | Iterable[Attr] | None,
) -> tuple[Attr, ...]:
    """Turn a mapping or an iterable of pairs into an immutable attr tuple.

    Mappings keep insertion order. Keys are converted with ``str()``.

    Example:
        >>> normalize_attrs({"url": "/a", "status": 200})
        (('url', '/a'), ('status', 200))
    """
    if attrs is None:
        return ()
    items = attrs.items() if isinstance(attrs, Mapping) else attrs
    return tuple((str(key), value) for key, value in items)


def merge_attributes(
    bound: Iterable[Attr],
    call: Iterable[Attr],
    context: Iterable[Attr],
) -> list[Attr]:
    """Concatenate the three attribute sources in merge order."""
    merged: list[Attr] = []
    merged.extend(bound)
    merged.extend(call)
    merged.extend(context)
    return merged


def prefix_keys(attrs: Iterable[Attr], group: str) -> list[Attr]:
    """Prefix every key with ``group + "."`` when a group is set.

    Example:
        >>> prefix_keys([("a", 1)], "vals")
        [('vals.a', 1)]
        >>> prefix_keys([("a", 1)], "")
        [('a', 1)]
    """
    if not group:
        return list(attrs)
    return [(f"{group}.{key}", value) for key, value in attrs]


def stringify(value: Any) -> str:
    """Stringify an attribute value for the JSON payload.

    Raises:
        PayloadError: If the value's ``__str__`` raises.
    """
    if isinstance(value, str):
        return value
    try:
        return str(value)
    except Exception as exc:
        raise PayloadError(
            f"cannot stringify value of type {type(value).__name__}"
        ) from exc


def group_attrs(attrs: Iterable[Attr], group: str) -> dict[str, Any]:
    """Shape attributes for the JSON payload.

    Without a group, returns a flat ``{key: str(value)}`` dict. With a group,
    returns ``{group: {key: str(value), ...}}``, or ``{}`` when there is no
    attribute at all. Later duplicates overwrite earlier ones.

    Raises:
        PayloadError: If a value cannot be stringified.
    """
    flat = {key: stringify(value) for key, value in attrs}
    if not group:
        return flat
    if not flat:
        return {}
    return {group: flat}
