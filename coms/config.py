"""
Runtime settings
================

Settings come from three places, later ones winning:
1) defaults below,
2) COMS_* environment variables (`Settings.from_env`),
3) CLI flags (applied by `coms.cli`).
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Mapping, Optional
import os

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class Settings:
    page_size: int = DEFAULT_PAGE_SIZE
    # seed for the mock data source; fixed so sessions are reproducible
    seed: int = 42
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    # workbook (.xlsx) or directory of CSV files to load instead of mock data
    data_path: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        s = cls()
        if env.get("COMS_PAGE_SIZE"):
            s = replace(s, page_size=_positive_int("COMS_PAGE_SIZE", env["COMS_PAGE_SIZE"]))
        if env.get("COMS_SEED"):
            s = replace(s, seed=int(env["COMS_SEED"]))
        if env.get("COMS_LOG_LEVEL"):
            s = replace(s, log_level=env["COMS_LOG_LEVEL"].upper())
        if env.get("COMS_LOG_FILE"):
            s = replace(s, log_file=env["COMS_LOG_FILE"])
        if env.get("COMS_DATA"):
            s = replace(s, data_path=env["COMS_DATA"])
        return s

    def with_overrides(self, **kwargs) -> "Settings":
        """Return a copy with every non-None keyword applied."""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        if "page_size" in changes:
            changes["page_size"] = _positive_int("page_size", changes["page_size"])
        return replace(self, **changes)


def _positive_int(name: str, value) -> int:
    n = int(value)
    if n <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return n
