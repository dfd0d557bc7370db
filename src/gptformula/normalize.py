"""Value normalization.

Turns whatever the spreadsheet hands us into canonical forms:
- range-ish inputs -> a list of rows -> a tab/newline separated context block
- option payloads (dict, JSON text, one-element wrappers) -> a plain dict

Nothing in here raises for bad input. Failures are logged and degrade to
"no data" / "no overrides".
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, List, Mapping, Optional

from .types import RangeSource
from .logging_util import get_logger

logger = get_logger(__name__)

COLUMN_SEPARATOR = "\t"
ROW_SEPARATOR = "\n"

@dataclass
class GridRange:
    """In-memory range source (used by the CLI and the Lambda entrypoint)."""

    values: List[List[Any]] = field(default_factory=list)
    sheet_name: str = ""

    def get_values(self) -> List[List[Any]]:
        return self.values

    def get_sheet_name(self) -> str:
        return self.sheet_name

def is_range_source(value: Any) -> bool:
    return isinstance(value, RangeSource)

def is_grid_like(value: Any) -> bool:
    return isinstance(value, (list, tuple)) or is_range_source(value)

def normalize_grid(value: Any) -> List[List[Any]]:
    if value is None:
        return []

    if is_range_source(value):
        try:
            value = value.get_values()
        except Exception as e:
            logger.warning("Failed to read range values: %s", e)
            return []
        if value is None:
            return []

    if isinstance(value, (list, tuple)):
        if not value:
            return []
        if all(isinstance(row, (list, tuple)) for row in value):
            return [list(row) for row in value]
        # flat sequence -> a single row
        return [list(value)]

    return [[value]]

def _format_date(value: date) -> str:
    try:
        if isinstance(value, datetime):
            dt = value
        else:
            dt = datetime.combine(value, time())
        if dt.tzinfo is None:
            dt = dt.astimezone()
        return dt.isoformat(timespec="seconds")
    except (ValueError, OverflowError, OSError) as e:
        logger.debug("Date formatting failed (%s); using str()", e)
        return str(value)

def render_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return _format_date(value)
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(value)
    return str(value)

def serialize_grid(
    rows: List[List[Any]],
    col_sep: str = COLUMN_SEPARATOR,
    row_sep: str = ROW_SEPARATOR,
) -> str:
    out: List[str] = []
    for row in rows:
        line = col_sep.join(render_cell(c) for c in row).strip()
        if line:
            out.append(line)
    return row_sep.join(out)

def extract_sheet_identity(value: Any) -> str:
    if value is None or not is_range_source(value):
        return ""
    try:
        getter = getattr(value, "get_sheet_name", None)
        name = getter() if callable(getter) else getattr(value, "sheet_name", "")
    except Exception as e:
        logger.warning("Failed to read sheet identity: %s", e)
        return ""
    return str(name or "")

def parse_options_payload(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}

    if isinstance(value, (list, tuple)):
        if len(value) == 1:
            return parse_options_payload(value[0])
        return {}

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return {}
        try:
            obj = json.loads(s)
        except ValueError as e:
            logger.warning("Ignoring options: invalid JSON (%s)", e)
            return {}
        if isinstance(obj, dict):
            return obj
        logger.warning("Ignoring options: JSON is not an object (%s)", type(obj).__name__)
        return {}

    if isinstance(value, Mapping):
        return dict(value)

    return {}

def to_context(range_input: Any) -> str:
    return serialize_grid(normalize_grid(range_input))

def first_line(text: Optional[str], limit: int = 80) -> str:
    """One-line preview for logs."""
    if not text:
        return ""
    t = " ".join(str(text).split())
    if len(t) > limit:
        return t[:limit].rstrip() + " ..."
    return t
