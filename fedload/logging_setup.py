"""Structured log sink for resolution events.

Every fedload log message starts with a bracketed stage tag such as
``[resolve]``, ``[locate]``, ``[load]`` or ``[env]``. The sink writes one JSON
object per record with the tag split out as ``event``, so a log can be
filtered by stage without parsing message text.
"""

import json
import logging
import os
import re
from datetime import UTC
from datetime import datetime
from pathlib import Path

ENV_LOG_PATH = "FEDLOAD_LOG_PATH"
ENV_LOG_LEVEL = "FEDLOAD_LOG_LEVEL"
DEFAULT_LOG_PATH = "./fedload.log.jsonl"
DEFAULT_LOG_LEVEL = "WARNING"

SCHEMA = {"name": "fedload.log", "ver": "1.1.0"}

_STAGE_TAG = re.compile(r"^\[(?P<event>[a-z]+)\]\s*")

# Attributes every LogRecord has; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JsonlFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        event = getattr(record, "event", None)
        tag = _STAGE_TAG.match(message)
        if tag:
            event = event or tag.group("event")
            message = message[tag.end() :]

        entry = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "lvl": record.levelname,
            "schema": SCHEMA,
            "logger": record.name,
            "event": event,
            "message": message,
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in entry:
                entry[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            entry["error"] = repr(record.exc_info[1])
        return json.dumps(entry, ensure_ascii=False, default=str)


class JsonlHandler(logging.FileHandler):
    """Append-only JSONL file sink; the file is opened on first write."""

    def __init__(self, path: str | Path):
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        super().__init__(path, mode="a", encoding="utf-8", delay=True)
        self.setFormatter(JsonlFormatter())

    @property
    def path(self) -> Path:
        return Path(self.baseFilename)


def init_json_logging(path: str | Path | None = None, level: str | None = None) -> JsonlHandler:
    """Install the JSONL sink on the root logger, replacing an earlier one.

    Args:
        path: Log file (default: $FEDLOAD_LOG_PATH or ./fedload.log.jsonl)
        level: Level name (default: $FEDLOAD_LOG_LEVEL or WARNING); unknown
            names fall back to WARNING
    """
    path = path or os.environ.get(ENV_LOG_PATH, DEFAULT_LOG_PATH)
    level = (level or os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)).upper()

    root = logging.getLogger()
    root.setLevel(logging.getLevelNamesMapping().get(level, logging.WARNING))
    for handler in list(root.handlers):
        if isinstance(handler, JsonlHandler):
            root.removeHandler(handler)
            handler.close()

    sink = JsonlHandler(path)
    root.addHandler(sink)
    return sink
