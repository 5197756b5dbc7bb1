"""Logging setup for the CLI and embedding applications.

Text mode emits ``level=INFO ts=... logger=... msg=...`` lines; JSON mode
emits one compact object per record. Library modules only ever call
``logging.getLogger(__name__)``; installing handlers is left to the
entry point.
"""
from __future__ import annotations

import json
import logging
import sys

from worldgrid.config import LoggingSection

_HANDLER_NAME = "worldgrid"


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        rec = {
            "level": record.levelname.lower(),
            "ts": int(record.created),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            rec["exc"] = self.formatException(record.exc_info)
        try:
            return json.dumps(rec, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError):
            return json.dumps({"level": rec["level"], "ts": rec["ts"], "error": "json_encode_failed"})


def configure_logging(section: LoggingSection) -> logging.Logger:
    """Install (or replace) the package handler on the ``worldgrid`` logger."""
    root = logging.getLogger("worldgrid")
    root.setLevel(getattr(logging, section.level.upper(), logging.INFO))
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    if section.log_jsonl:
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("level=%(levelname)s ts=%(created)d logger=%(name)s msg=%(message)s")
        )
    root.addHandler(handler)
    return root
