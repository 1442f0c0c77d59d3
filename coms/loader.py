"""
Dataset loader (Excel / CSV -> Organization)
============================================

Reads an organization back from the files `coms.export` writes (or from
hand-made spreadsheets with similar columns) and converts each row into the
matching record type.

Key ideas:
- We try multiple spellings of each column ("joined_date", "Joined Date", ...).
- Conversion helpers (_to_int/_to_float/_to_str) turn blanks into None.
- List and nested columns are JSON ("[1,2]"); plain "1, 2" id lists also work.
- Missing optional columns and blank optional cells take the record's
  default; a missing required column is an error.
- Every loaded record is validated like a typed-in one; the first bad row
  stops the load with a ValueError naming the collection and row.
"""

from __future__ import annotations
from dataclasses import MISSING, fields
from typing import Any, Dict, List, Optional, Tuple, Union, get_args, get_origin
import glob
import json
import os
import re

import pandas as pd

from .log import get_logger
from .models import ENTITY_TYPES, from_dict
from .repository import Organization, Repository
from .validation import ValidationError, check

log = get_logger(__name__)


def _to_int(x) -> Optional[int]:
    """Convert a cell to int, returning None if missing/invalid."""
    if _is_blank(x): return None
    try: return int(float(x))
    except (TypeError, ValueError): return None


def _to_float(x) -> Optional[float]:
    """Convert a cell to float, returning None if missing/invalid."""
    if _is_blank(x): return None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    return int(v) if v.is_integer() else v


def _to_str(x) -> str:
    if _is_blank(x): return ""
    if isinstance(x, pd.Timestamp):
        return x.date().isoformat()
    return str(x).strip()


def _to_bool(x) -> bool:
    if _is_blank(x): return False
    if isinstance(x, str):
        return x.strip().lower() in ("true", "yes", "1")
    return bool(x)


def _to_list(x) -> List[Any]:
    if _is_blank(x): return []
    if isinstance(x, (list, tuple)):
        return list(x)
    s = str(x).strip()
    if s.startswith("["):
        return json.loads(s)
    return [int(float(p)) for p in re.split(r"[,;\s]+", s) if p]


def _is_blank(x) -> bool:
    if isinstance(x, (list, tuple, dict)):
        return False
    if x is None:
        return True
    try:
        if pd.isna(x):
            return True
    except (TypeError, ValueError):
        return False
    return isinstance(x, str) and not x.strip()


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(df: pd.DataFrame, *names: str) -> Optional[str]:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    return None


def _converter(tp):
    origin = get_origin(tp)
    args = get_args(tp)
    if origin is Union and type(None) in args:
        inner = [a for a in args if a is not type(None)][0]
        conv = _converter(inner)
        if conv is _to_str:
            return lambda x: None if _is_blank(x) else _to_str(x)
        return conv
    if origin in (tuple, Tuple, list, List):
        return _to_list
    if tp is int:
        return _to_int
    if tp is float:
        return _to_float
    if tp is bool:
        return _to_bool
    return _to_str


def parse_fields(entity: Union[str, type], raw: Dict[str, Any]) -> Dict[str, Any]:
    """Convert typed-in `field=value` strings to the field types of an entity
    (by name) or of a record class such as ProjectExpense."""
    cls = entity if isinstance(entity, type) else ENTITY_TYPES[entity]
    if isinstance(entity, type):
        entity = cls.__name__
    known = {f.name: f for f in fields(cls)}
    out: Dict[str, Any] = {}
    for name, value in raw.items():
        f = known.get(name)
        if f is None:
            raise KeyError(f"{entity} has no field {name!r} (fields: {', '.join(known)})")
        out[name] = _converter(f.type)(value)
    return out


def records_from_frame(df: pd.DataFrame, entity: str) -> List[Any]:
    """Convert one sheet/CSV into records of the entity's type."""
    cls = ENTITY_TYPES[entity]
    df = df.rename(columns={c: str(c).strip() for c in df.columns})
    plan = []
    for f in fields(cls):
        col = _col(df, f.name, f.name.replace("_", " ").title(), f.name.replace("_", " "))
        required = f.default is MISSING and f.default_factory is MISSING
        if col is None and required and f.name != "id":
            raise KeyError(f"{entity}: missing required column {f.name!r}. Available={list(df.columns)}")
        plan.append((f.name, col, _converter(f.type), required))

    out: List[Any] = []
    for i, (_, row) in enumerate(df.iterrows()):
        data: Dict[str, Any] = {}
        for name, col, conv, required in plan:
            if col is None:
                continue
            raw = row[col]
            if not required and _is_blank(raw):
                # fall back to the field default
                continue
            data[name] = conv(raw)
        if data.get("id") is None:
            data["id"] = i + 1
        out.append(from_dict(cls, data))
    return out


def _organization(frames: Dict[str, pd.DataFrame], source: str) -> Organization:
    repos = {}
    for entity in ENTITY_TYPES:
        df = frames.get(entity)
        records = records_from_frame(df, entity) if df is not None else []
        for i, r in enumerate(records):
            try:
                check(r)
            except ValidationError as e:
                # i + 2: the header is the first spreadsheet row
                raise ValueError(f"{source}: {entity} row {i + 2} (id {r.id}): {e}") from e
        repos[entity] = Repository(entity, records)
    org = Organization(**repos)
    if len(org.donations):
        org.recompute_totals()
    log.info("loaded %s: %s", source, ", ".join(f"{k}={len(v)}" for k, v in repos.items()))
    return org


def load_workbook(path: str) -> Organization:
    """Load an .xlsx with one sheet per collection (sheet names are matched loosely)."""
    sheets = pd.read_excel(path, sheet_name=None, engine="openpyxl")
    frames: Dict[str, pd.DataFrame] = {}
    for sheet, df in sheets.items():
        entity = _entity_for_name(sheet)
        if entity:
            frames[entity] = df
    return _organization(frames, path)


def load_csv_dir(directory: str) -> Organization:
    """Load one CSV per collection (e.g. donors.csv or COMS_Donors_Export.csv)."""
    frames: Dict[str, pd.DataFrame] = {}
    for p in sorted(glob.glob(os.path.join(directory, "*.csv"))):
        entity = _entity_for_name(os.path.splitext(os.path.basename(p))[0])
        if entity:
            frames[entity] = pd.read_csv(p, dtype=object, keep_default_na=False)
    return _organization(frames, directory)


def load_organization(path: str) -> Organization:
    if os.path.isdir(path):
        return load_csv_dir(path)
    return load_workbook(path)


def _entity_for_name(name: str) -> Optional[str]:
    n = _norm(name)
    for entity in ENTITY_TYPES:
        if entity in n:
            return entity
    return None
