"""Human/JSON output helpers.

The CLI renders ServiceResult for humans (key-value lines) or machines
(--json). Successful results go to stdout, failures to stderr.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from entitymap.services.result import ServiceResult


def _format_data_human(data: dict[str, Any]) -> str:
    """Format result data as indented key-value pairs."""
    lines: list[str] = []
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            rendered = _json.dumps(value, indent=2, default=str)
            lines.append(f"  {key}: " + rendered.replace("\n", "\n  "))
        else:
            lines.append(f"  {key}: {value}")
    return "\n".join(lines)


def format_result(result: ServiceResult, *, json_output: bool = False) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        json_output: If True, return JSON; otherwise return human-readable text.
    """
    if json_output:
        return result.model_dump_json(indent=2)
    if result.ok:
        parts = [f"OK: {result.op}"]
        if result.data:
            parts.append(_format_data_human(result.data))
        return "\n".join(parts)
    if result.error is None:
        return f"ERROR: {result.op}: Unknown error"
    line = f"ERROR: {result.op}: [{result.error.code}] {result.error.message}"
    field = result.error.detail.get("field")
    if field:
        line += f" (field: {field})"
    return line
