"""
Helpers shared by the CRUD routes.
"""
from typing import Any, Dict

from pydantic import BaseModel


def provided_fields(payload: BaseModel) -> Dict[str, Any]:
    """Fields the client actually sent with a non-null value.

    A null or missing field means "keep the stored value", mirroring a
    ``SET col = COALESCE(:value, col)`` update.
    """
    return {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}


def apply_changes(row: Any, changes: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Set ``changes`` on ``row`` and return a before/after diff of the fields
    whose value actually changed.
    """
    diff = {}
    for key, after in changes.items():
        before = getattr(row, key)
        if before != after:
            diff[key] = {"before": before, "after": after}
            setattr(row, key, after)
    return diff
