"""Canonical JSON type aliases.

Use ``JSONValue`` / ``JSONObject`` only when the shape is genuinely unknown
(raw LLM output before validation, tool arguments, tool results).  Every
known structure has a named TypedDict in ``llm_types`` or ``host_types``.
"""
from __future__ import annotations

from typing import Union

JSONScalar = Union[str, int, float, bool, None]
"""A JSON leaf value."""

JSONValue = Union[JSONScalar, list["JSONValue"], dict[str, "JSONValue"]]
"""Recursive JSON value."""

JSONObject = dict[str, JSONValue]
"""A JSON object with unknown keys."""


def jint(value: JSONValue) -> int | None:
    """Return ``value`` as an int if it is an integral JSON number, else None.

    Booleans are rejected even though ``bool`` subclasses ``int``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None
