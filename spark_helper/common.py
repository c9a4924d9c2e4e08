import copy
import json
import threading
from datetime import datetime
from typing import Any, Dict, Optional

# -------------------------
# Global run identifiers
# -------------------------
RUN_ID = datetime.now().astimezone().strftime("%Y%m%d-%H%M%S")

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


class PrintLogger:
    """JSON-line logger for driver-side helpers, writing to stdout and an optional file."""

    _lock = threading.Lock()

    def __init__(
        self,
        job_name: str,
        file_path: Optional[str] = None,
        level: str = "INFO",
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        level = level.upper()
        if level not in _LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        self.job = job_name
        self.file_path = file_path
        self.level = level
        self.context: Dict[str, Any] = dict(context or {})

    def bind(self, **kv: Any) -> "PrintLogger":
        """Return a logger sharing this sink with extra fields on every record."""
        bound = copy.copy(self)
        bound.context = {**self.context, **kv}
        return bound

    def enabled_for(self, level: str) -> bool:
        return _LEVELS.get(level, 0) >= _LEVELS[self.level]

    def _write_line(self, line: str) -> None:
        with self._lock:
            print(line)
            if self.file_path:
                with open(self.file_path, "a", encoding="utf-8") as handle:
                    handle.write(line + "\n")

    def log(self, level: str, msg: str, **kv: Any) -> None:
        if not self.enabled_for(level):
            return
        rec: Dict[str, Any] = {
            "ts": datetime.now().astimezone().isoformat(timespec="milliseconds"),
            "level": level,
            "job": self.job,
            **self.context,
            **kv,
            "msg": msg,
            "run_id": RUN_ID,
        }
        self._write_line(json.dumps(rec, separators=(",", ":"), ensure_ascii=False, default=str))

    def debug(self, msg: str, **kv: Any) -> None:
        self.log("DEBUG", msg, **kv)

    def info(self, msg: str, **kv: Any) -> None:
        self.log("INFO", msg, **kv)

    def warn(self, msg: str, **kv: Any) -> None:
        self.log("WARN", msg, **kv)

    def error(self, msg: str, **kv: Any) -> None:
        self.log("ERROR", msg, **kv)

    def event(self, event: str, level: str = "INFO", **kv: Any) -> None:
        kv = dict(kv)
        kv.setdefault("event", event)
        self.log(level, event, **kv)
