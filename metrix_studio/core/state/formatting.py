"""Display formatting for tabular query results."""

import json
from typing import Any


def format_cell_value(value: Any) -> str:
    """
    Render one result cell as text.

    ``None`` becomes ``null`` and booleans are lowercase, matching how the
    database prints them. Maps and lists are shown as compact JSON.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(',', ':'), ensure_ascii=False)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
