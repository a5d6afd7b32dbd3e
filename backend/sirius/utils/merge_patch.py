"""JSON Merge Patch (RFC 7386) for the wizard `data` document.

    merge_patch({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}, "a": None})
    → {"b": {"c": 2, "d": 3}}

Nested objects merge key by key, `None` removes a key, anything else
(lists included) replaces. The target is never mutated, so the result can
be assigned back to a SQLAlchemy JSON column and picked up as a change.
"""

from __future__ import annotations

import copy
from typing import Any


def merge_patch(target: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)

    result = copy.deepcopy(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = merge_patch(result.get(key), value)
    return result
