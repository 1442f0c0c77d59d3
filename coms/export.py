"""
Export (CSV / JSON / Excel workbook)
====================================

- CSV: one file per list, restricted to the entity's flat export columns.
  Lists and nested records are written as compact JSON inside the cell,
  blanks stay blank, rows end with CRLF.
- JSON: the full records of the current view, field names preserved.
- Workbook: every collection on its own sheet, readable by `coms.loader`.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Sequence
import csv
import json
import os

from .engine import get_field
from .log import get_logger
from .models import to_dict

log = get_logger(__name__)

SHEET_NAMES = {
    "donors": "Donors",
    "projects": "Projects",
    "beneficiaries": "Beneficiaries",
    "staff": "Staff",
    "events": "Events",
    "donations": "Donations",
}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple, dict)):
        return _compact_json(value)
    if hasattr(value, "__dataclass_fields__"):
        return _compact_json(to_dict(value))
    return str(value)


def _compact_json(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = [to_dict(v) if hasattr(v, "__dataclass_fields__") else v for v in value]
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def csv_rows(records: Iterable[Any], columns: Sequence[str]) -> List[List[str]]:
    """Header row plus one row of cell strings per record."""
    rows = [list(columns)]
    for r in records:
        rows.append([_cell(get_field(r, c)) for c in columns])
    return rows


def write_csv(records: Iterable[Any], path: str, columns: Sequence[str]) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    rows = csv_rows(records, columns)
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f, lineterminator="\r\n")
        w.writerows(rows)
    log.info("exported %d rows to %s", len(rows) - 1, path)
    return path


def write_json(records: Iterable[Any], path: str) -> str:
    """Export records to a JSON file.

    CSV is great for spreadsheets; JSON is great for programs and preserves nested fields.
    """
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    payload = [to_dict(r) for r in records]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
    log.info("exported %d records to %s", len(payload), path)
    return path


def organization_frames(org) -> Dict[str, "pd.DataFrame"]:
    """One DataFrame per collection; list/nested columns JSON-encoded."""
    import pandas as pd
    from .models import ENTITY_TYPES, field_names

    frames = {}
    for name, repo in org.collections().items():
        columns = field_names(ENTITY_TYPES[name])
        data = []
        for r in repo:
            row = to_dict(r)
            for k, v in row.items():
                if isinstance(v, (list, dict)):
                    row[k] = _compact_json(v)
            data.append(row)
        frames[name] = pd.DataFrame(data, columns=list(columns))
    return frames


def write_workbook(org, path: str) -> str:
    """Write every collection to its own sheet of an .xlsx workbook."""
    import pandas as pd

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in organization_frames(org).items():
            df.to_excel(writer, sheet_name=SHEET_NAMES[name], index=False)
    log.info("exported workbook to %s", path)
    return path
