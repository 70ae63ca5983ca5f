"""
Monotonic Fact Model merge.

Scalars take the delta's value only when it is non-empty; lists only grow.
"""

import re
from typing import Any, NamedTuple

import structlog

from willforge.models.facts import (
    FIELD_SECTIONS,
    LIST_FIELDS,
    SCALAR_FIELDS,
    FactDelta,
    FactModel,
    normalize_key,
)

logger = structlog.get_logger(__name__)

PLACEHOLDER = re.compile(r"^\[[A-Z][A-Z /'-]*\]$")


class MergeResult(NamedTuple):
    """Outcome of merging one delta."""

    facts: FactModel
    changed: bool
    changed_label: str | None


def is_blank(value: Any) -> bool:
    """Empty, whitespace-only or a bracketed placeholder such as "[YOUR NAME]"."""
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or bool(PLACEHOLDER.match(stripped))
    return False


def _key(item: Any) -> str:
    return normalize_key(item) if isinstance(item, str) else item.dedup_key


def merge_facts(current: FactModel, delta: FactDelta) -> MergeResult:
    """
    Merge a delta into the current facts.

    Returns a new FactModel; `current` is left untouched.
    """
    updates: dict[str, Any] = {}
    touched: list[str] = []

    for field_name in SCALAR_FIELDS:
        value = getattr(delta, field_name)
        if is_blank(value):
            continue
        if isinstance(value, str):
            value = value.strip()
        if value != getattr(current, field_name):
            updates[field_name] = value
            touched.append(field_name)

    for field_name in LIST_FIELDS:
        existing = list(getattr(current, field_name))
        keys = {_key(item) for item in existing}
        appended = False
        for item in getattr(delta, field_name):
            if isinstance(item, str) and is_blank(item):
                continue
            key = _key(item)
            if key in keys:
                continue
            existing.append(item.strip() if isinstance(item, str) else item)
            keys.add(key)
            appended = True
        if appended:
            updates[field_name] = existing
            touched.append(field_name)

    if not touched:
        return MergeResult(current, False, None)

    # Most salient section: first touched field in document order
    label = next(FIELD_SECTIONS[f] for f in FIELD_SECTIONS if f in touched)
    updates["last_updated_field"] = label

    merged = current.model_copy(deep=True, update=updates)
    logger.info("facts_merged", changed_label=label, fields=touched)
    return MergeResult(merged, True, label)
