"""
Logging
=======

One package logger ("coms") configured on first use. Level comes from
COMS_LOG_LEVEL (default WARNING so the REPL stays quiet); setting
COMS_LOG_FILE adds a rotating file handler (~1MB x 3).
"""

from __future__ import annotations
import logging, os
from logging.handlers import RotatingFileHandler
from typing import Optional

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_logger = logging.getLogger("coms")


def configure(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """(Re)configure the package logger. Safe to call more than once."""
    level = (level or os.environ.get("COMS_LOG_LEVEL", "WARNING")).upper()
    log_file = log_file or os.environ.get("COMS_LOG_FILE")
    _logger.setLevel(getattr(logging, level, logging.WARNING))
    for h in list(_logger.handlers):
        _logger.removeHandler(h)
        h.close()
    fmt = logging.Formatter(_FORMAT)
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        fh.setFormatter(fmt)
        _logger.addHandler(fh)
    else:
        sh = logging.StreamHandler()
        sh.setFormatter(fmt)
        _logger.addHandler(sh)
    return _logger


def get_logger(name: str = "coms") -> logging.Logger:
    if name == "coms":
        return _logger
    if name.startswith("coms."):
        name = name[len("coms."):]
    return _logger.getChild(name)
