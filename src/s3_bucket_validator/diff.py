"""Field-level comparison of two bucket configurations.

Object Lock enablement can only be set when a bucket is created, so a change
to it is reported as creation-only and requires replacing the bucket.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from .models import BucketConfig

# Validation context, not bucket state
_SKIPPED_FIELDS = {"allow_public_override", "is_existing_bucket"}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value):
        return {_camel(f.name): _plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, (frozenset, set)):
        return sorted(value)
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    if hasattr(value, "items"):
        return {k: _plain(v) for k, v in value.items()}
    return value


@dataclass(frozen=True)
class FieldChange:
    """A single changed field between two configurations."""

    field: str
    old: Any
    new: Any
    creation_only: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "old": _plain(self.old),
            "new": _plain(self.new),
            "creationOnly": self.creation_only,
        }


def _object_lock_enabled(config: BucketConfig) -> bool:
    return config.object_lock is not None and config.object_lock.enabled


def _compare(old: Any, new: Any, path: str, changes: list[FieldChange]) -> None:
    if (
        dataclasses.is_dataclass(old)
        and dataclasses.is_dataclass(new)
        and type(old) is type(new)
    ):
        for f in dataclasses.fields(old):
            _compare(getattr(old, f.name), getattr(new, f.name), f"{path}.{_camel(f.name)}", changes)
        return
    if old != new:
        changes.append(FieldChange(field=path, old=old, new=new))


def diff_configs(current: BucketConfig, desired: BucketConfig) -> list[FieldChange]:
    """List the fields that differ between the current and desired configuration.

    Args:
        current: Configuration of the existing bucket
        desired: Configuration to apply

    Returns:
        Changes in field declaration order; an Object Lock enablement toggle
        comes first and is marked ``creation_only``
    """
    changes: list[FieldChange] = []

    old_lock, new_lock = _object_lock_enabled(current), _object_lock_enabled(desired)
    if old_lock != new_lock:
        changes.append(FieldChange(field="objectLock.enabled", old=old_lock, new=new_lock, creation_only=True))

    for f in dataclasses.fields(BucketConfig):
        if f.name in _SKIPPED_FIELDS:
            continue
        old, new = getattr(current, f.name), getattr(desired, f.name)
        if f.name == "object_lock" and old is not None and new is not None:
            # enabled was handled above
            _compare(
                dataclasses.replace(old, enabled=True),
                dataclasses.replace(new, enabled=True),
                "objectLock",
                changes,
            )
            continue
        _compare(old, new, _camel(f.name), changes)

    return changes


def requires_replacement(changes: list[FieldChange]) -> bool:
    """Whether any change can only be made by creating a new bucket."""
    return any(change.creation_only for change in changes)
