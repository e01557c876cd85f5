from __future__ import annotations

import json
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from pastebin_server.config.settings import DEFAULT_LOG_LEVEL, LOG_LEVELS, parse_log_level, resolve_path

EVENTS_FILE_NAME = "pastebin.events.jsonl"

_LEVEL_RANK = {name: rank for rank, name in enumerate(LOG_LEVELS)}


def _to_jsonable(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(key): _to_jsonable(sub) for key, sub in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return str(value)


class EventLogger:
    """Structured JSONL writer for clipboard service events."""

    def __init__(self, data_dir: str, min_level: str = DEFAULT_LOG_LEVEL) -> None:
        self._path = resolve_path(data_dir) / EVENTS_FILE_NAME
        self._min_rank = _LEVEL_RANK[parse_log_level(min_level)]
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def ensure_writable(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8"):
            pass

    def enabled(self, level: str) -> bool:
        rank = _LEVEL_RANK.get(parse_log_level(level, default="INFO"), _LEVEL_RANK["INFO"])
        return rank >= self._min_rank

    def write(self, *, level: str, event: str, message: str = "", **fields: Any) -> None:
        if not self.enabled(level):
            return
        record: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": parse_log_level(level, default="INFO"),
            "event": str(event),
            "message": str(message),
        }
        for key, value in fields.items():
            record[str(key)] = _to_jsonable(value)
        raw = json.dumps(record, ensure_ascii=False)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                with self._path.open("a", encoding="utf-8") as handle:
                    handle.write(raw + "\n")
        except OSError as exc:
            # Reported on stderr; the request that produced it still completes.
            print(f"event log write failed ({exc}): {raw}", file=sys.stderr)


def tail_lines(path: Path, limit: int = 120) -> list[str]:
    if limit <= 0:
        limit = 120
    try:
        lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    except (FileNotFoundError, OSError):
        return []
    return lines[-limit:]
