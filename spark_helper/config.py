from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .dates import DEFAULT_DATE_FORMAT, DEFAULT_NOW_FORMAT, to_strftime


@dataclass
class MonitorConfig:
    title: str
    contacts: List[str] = field(default_factory=list)
    description: Optional[str] = None
    log_folder: Optional[str] = None
    purge_window_days: Optional[int] = None
    date_format: str = DEFAULT_DATE_FORMAT
    time_format: str = "HH:mm"
    file_date_format: str = DEFAULT_NOW_FORMAT
    job_name: str = "spark_helper"
    log_file: Optional[str] = None
    log_level: str = "INFO"
    runtime: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "MonitorConfig":
        validate_config(cfg)
        runtime = cfg["runtime"]
        monitor = cfg["monitor"]
        return cls(
            title=monitor["title"],
            contacts=list(monitor.get("contacts", [])),
            description=monitor.get("description"),
            log_folder=monitor.get("log_folder"),
            purge_window_days=monitor.get("purge_window_days"),
            date_format=monitor.get("date_format", DEFAULT_DATE_FORMAT),
            time_format=monitor.get("time_format", "HH:mm"),
            file_date_format=monitor.get("file_date_format", DEFAULT_NOW_FORMAT),
            job_name=runtime.get("job_name", "spark_helper"),
            log_file=runtime.get("log_file"),
            log_level=runtime.get("log_level", "INFO"),
            runtime=dict(runtime),
        )


def validate_config(cfg: Dict[str, Any]) -> None:
    for key in ["runtime", "monitor"]:
        if key not in cfg:
            raise ValueError(f"Missing config key: {key}")
    monitor = cfg["monitor"]
    if not monitor.get("title"):
        raise ValueError("Missing monitor.title")
    contacts = monitor.get("contacts", [])
    if isinstance(contacts, str) or not isinstance(contacts, list):
        raise ValueError("monitor.contacts must be a list")
    window = monitor.get("purge_window_days")
    if window is not None and (isinstance(window, bool) or not isinstance(window, int) or window < 0):
        raise ValueError(f"monitor.purge_window_days must be a non-negative integer, got {window!r}")
    if window is not None and not monitor.get("log_folder"):
        raise ValueError("monitor.purge_window_days requires monitor.log_folder")
    for key in ["date_format", "time_format", "file_date_format"]:
        if key in monitor:
            try:
                to_strftime(monitor[key])
            except ValueError as exc:
                raise ValueError(f"Invalid monitor.{key}: {exc}") from exc


def load_config(path: str) -> MonitorConfig:
    with open(path, "r", encoding="utf-8") as handle:
        cfg = json.load(handle)
    return MonitorConfig.from_dict(cfg)
