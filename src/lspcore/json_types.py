from __future__ import annotations

"""JSON-like value types used at the wire boundary.

Wire parameters arrive as JSON (camelCase keys) and leave as `lsprotocol`
values; everything in between is domain shaped.
"""

from typing import TypeAlias


JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
