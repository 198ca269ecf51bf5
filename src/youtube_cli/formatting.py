"""Rendering of API results as table, JSON or CSV text."""

import csv
import io
import json
from typing import Any, Dict, List, Sequence, Tuple

# (header, key) pairs; keys are dotted paths into each item
Columns = Sequence[Tuple[str, str]]


def mask_secret(secret: str, visible_chars: int = 4) -> str:
    if not secret or len(secret) <= visible_chars:
        return "***"
    return secret[:visible_chars] + "*" * (len(secret) - visible_chars)


def _lookup(item: Dict[str, Any], dotted_key: str) -> str:
    value: Any = item
    for part in dotted_key.split("."):
        if not isinstance(value, dict):
            return ""
        value = value.get(part)
    return "" if value is None else str(value)


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def to_csv(items: List[Dict[str, Any]], columns: Columns) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([header for header, _ in columns])
    for item in items:
        writer.writerow([_lookup(item, key) for _, key in columns])
    return buffer.getvalue()


def to_table(items: List[Dict[str, Any]], columns: Columns, max_width: int = 50) -> str:
    rows = [
        [_truncate(_lookup(item, key), max_width) for _, key in columns]
        for item in items
    ]
    headers = [header for header, _ in columns]
    widths = [
        max([len(header)] + [len(row[i]) for row in rows])
        for i, header in enumerate(headers)
    ]

    def line(cells: List[str]) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    output = [line(headers), line(["-" * width for width in widths])]
    output.extend(line(row) for row in rows)
    return "\n".join(output)


def _truncate(text: str, width: int) -> str:
    text = text.replace("\n", " ")
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def render(items: List[Dict[str, Any]], columns: Columns, output_format: str) -> str:
    """Render `items` in the given format ('table', 'json' or 'csv')."""
    if output_format == "json":
        return to_json(items)
    if output_format == "csv":
        return to_csv(items, columns)
    if not items:
        return "No results."
    return to_table(items, columns)
