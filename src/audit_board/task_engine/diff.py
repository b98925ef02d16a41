"""Field-level diffs between two optional task snapshots."""

from __future__ import annotations

from typing import Optional

from .model import Diff, FieldChange, Task


def diff_task(before: Optional[Task], after: Optional[Task]) -> Diff:
    """Return the changed fields between *before* and *after*.

    A missing side (``None``) stands for creation or deletion, in which case
    every field of the present side is reported against ``None``.  Values are
    compared in their serialized form, so tags compare as ordered lists and
    enums by value.
    """
    if before is None and after is None:
        return {}
    if before is None:
        return {name: FieldChange(None, value) for name, value in after.to_dict().items()}
    if after is None:
        return {name: FieldChange(value, None) for name, value in before.to_dict().items()}

    old = before.to_dict()
    diff: Diff = {}
    for name, value in after.to_dict().items():
        previous = old.get(name)
        if previous != value:
            diff[name] = FieldChange(previous, value)
    return diff
