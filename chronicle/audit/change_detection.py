"""Structural change detection between entity snapshots.

Produces ordered ``ChangeRecord`` lists for audit records. Pure functions:
no I/O, no state, and no exceptions for well-formed snapshot data.

Example:
    >>> detect_changes(
    ...     {"name": "John", "address": {"city": "NYC"}},
    ...     {"name": "John", "address": {"city": "LA"}},
    ... )
    [ChangeRecord(path='address.city', old_value='NYC', new_value='LA', value_type='string')]
"""

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from chronicle.audit.models.change import ABSENT, ChangeRecord, value_type
from chronicle.config.models.audit import DEFAULT_EXCLUDED_FIELDS

ROOT_PATH = "(root)"
DEFAULT_MAX_DEPTH = 10

_INDEX_SUFFIX = re.compile(r"\[\d+\]$")


@dataclass(frozen=True)
class ChangeDetectionOptions:
    """Options for change detection.

    Attributes:
        exclude_fields: Field names skipped in addition to the defaults
        max_depth: Recursion bound; differences nested deeper are not reported
        include_unchanged: Reserved; unchanged fields are never emitted
    """

    exclude_fields: Iterable[str] = field(default=())
    max_depth: int = DEFAULT_MAX_DEPTH
    include_unchanged: bool = False


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str | bytes | bytearray)


def _is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def _same_kind(a: Any, b: Any) -> bool:
    # bool and numbers compare equal in Python (True == 1) but are different values here
    return isinstance(a, bool) == isinstance(b, bool)


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality over mappings, sequences and scalars.

    Mappings are equal when they have the same keys and equal values;
    sequences when they have the same length and equal items in order.
    Scalars fall back to identity, then ``==``.
    """
    if a is b:
        return True
    if a is None or b is None or a is ABSENT or b is ABSENT:
        return False

    if _is_sequence(a) and _is_sequence(b):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b, strict=True))

    if _is_mapping(a) and _is_mapping(b):
        if len(a) != len(b):
            return False
        return all(key in b and deep_equal(a[key], b[key]) for key in a)

    if _is_sequence(a) or _is_sequence(b) or _is_mapping(a) or _is_mapping(b):
        return False

    if not _same_kind(a, b):
        return False

    try:
        return bool(a == b)
    except Exception:
        # Values whose __eq__ raises compare by identity only
        return False


def _build_path(base: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{base}[{key}]"
    return f"{base}.{key}" if base else key


def _field_name(path: str) -> str:
    return _INDEX_SUFFIX.sub("", path.rsplit(".", 1)[-1])


def _merged_exclusions(options: ChangeDetectionOptions | None) -> frozenset[str]:
    extra = options.exclude_fields if options else ()
    return frozenset(DEFAULT_EXCLUDED_FIELDS) | frozenset(extra)


def _change(path: str, old: Any, new: Any) -> ChangeRecord:
    tag = value_type(new)
    if tag == "undefined":
        tag = value_type(old)
    return ChangeRecord(path=path or ROOT_PATH, old_value=old, new_value=new, value_type=tag)


def _detect(
    before: Any,
    after: Any,
    path: str,
    changes: list[ChangeRecord],
    excluded: frozenset[str],
    max_depth: int,
    depth: int,
) -> None:
    if depth > max_depth:
        return

    if path and _field_name(path) in excluded:
        return

    if before is ABSENT and after is ABSENT:
        return
    if before is None and after is None:
        return

    if _is_sequence(before) and _is_sequence(after):
        for index in range(max(len(before), len(after))):
            item_path = _build_path(path, index)
            if index >= len(before):
                changes.append(_change(item_path, ABSENT, after[index]))
            elif index >= len(after):
                changes.append(_change(item_path, before[index], ABSENT))
            else:
                _detect(
                    before[index],
                    after[index],
                    item_path,
                    changes,
                    excluded,
                    max_depth,
                    depth + 1,
                )
        return

    if _is_mapping(before) and _is_mapping(after):
        # Union of keys, before's order first, then keys only in after
        keys = list(before.keys())
        keys.extend(key for key in after.keys() if key not in before)
        for key in keys:
            if key in excluded:
                continue
            _detect(
                before.get(key, ABSENT),
                after.get(key, ABSENT),
                _build_path(path, str(key)),
                changes,
                excluded,
                max_depth,
                depth + 1,
            )
        return

    if not deep_equal(before, after):
        changes.append(_change(path, before, after))


def detect_changes(
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    options: ChangeDetectionOptions | None = None,
) -> list[ChangeRecord]:
    """Detect field-level changes between two entity states.

    Args:
        before: Entity state before the change
        after: Entity state after the change
        options: Extra exclusions and depth bound

    Returns:
        Change records in traversal order: mapping keys as encountered,
        sequence items by ascending index. Added or removed sequence items
        and keys carry ``ABSENT`` on the missing side.
    """
    max_depth = options.max_depth if options else DEFAULT_MAX_DEPTH
    changes: list[ChangeRecord] = []
    _detect(before, after, "", changes, _merged_exclusions(options), max_depth, 0)
    return changes


def detect_create_changes(
    entity: Mapping[str, Any],
    options: ChangeDetectionOptions | None = None,
) -> list[ChangeRecord]:
    """Changes for a CREATE: every top-level field, with ``None`` as old value.

    Nested values are not flattened; each top-level field is one record.
    """
    excluded = _merged_exclusions(options)
    return [
        ChangeRecord(path=key, old_value=None, new_value=value, value_type=value_type(value))
        for key, value in entity.items()
        if key not in excluded
    ]


def detect_delete_changes(
    entity: Mapping[str, Any],
    options: ChangeDetectionOptions | None = None,
) -> list[ChangeRecord]:
    """Changes for a DELETE: every top-level field, with ``None`` as new value."""
    excluded = _merged_exclusions(options)
    return [
        ChangeRecord(path=key, old_value=value, new_value=None, value_type=value_type(value))
        for key, value in entity.items()
        if key not in excluded
    ]
