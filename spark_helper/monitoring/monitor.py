"""
Job-run monitor for Spark drivers.

A ``Monitor`` accumulates a human-readable report of the steps of a job, keeps
track of whether the job is still considered successful and gates that state on
KPI tests. When a log folder is set, the report in progress is persisted to
``current.ongoing`` after each update so a running job can be followed from the
cluster, and ``store()`` writes the final ``<yyyyMMdd_HHmm>.success`` or
``.failed`` file.

Typical use on the driver:

    monitor = Monitor.from_config(load_config("job.json"), spark=spark)
    monitor.purge_logs(7)
    with monitor.task("Load input", diagnostic="No input data?"):
        df = spark.read.parquet(path)
    monitor.update_by_kpis_validation(
        [KpiTest("Nbr of output records", df.count(), ThresholdType.SUPERIOR_THAN, 10e6)],
        "Output checks",
    )
    monitor.store()

The monitor only mutates driver-side state; it is not meant to be shared with
executors or used from several threads.
"""

from __future__ import annotations

import traceback
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterable, Iterator, List, Optional

from pyspark.sql import SparkSession

from ..common import PrintLogger
from ..config import MonitorConfig
from ..dates import DEFAULT_DATE_FORMAT, DEFAULT_NOW_FORMAT, DateHelper, format_duration
from ..storage import Filesystem, purge_folder
from .kpi import KpiTest

ONGOING_FILE = "current.ongoing"
SUCCESS_SUFFIX = "success"
FAILED_SUFFIX = "failed"


def _as_list(contacts: Optional[Iterable[str]]) -> List[str]:
    if contacts is None:
        return []
    if isinstance(contacts, str):
        return [contacts]
    return list(contacts)


def _indent(text: str, prefix: str = "  ") -> str:
    return "\n".join(prefix + line for line in text.rstrip("\n").splitlines())


class Monitor:
    """Accumulates the report and success state of a single job run."""

    def __init__(
        self,
        title: Optional[str] = None,
        contacts: Optional[Iterable[str]] = None,
        description: Optional[str] = None,
        log_folder: Optional[str] = None,
        *,
        logger: Optional[PrintLogger] = None,
        spark: Optional[SparkSession] = None,
        clock: Callable[[], datetime] = datetime.now,
        date_format: str = DEFAULT_DATE_FORMAT,
        time_format: str = "HH:mm",
        file_date_format: str = DEFAULT_NOW_FORMAT,
    ) -> None:
        self.logger = logger or PrintLogger(job_name="spark_helper")
        if title:
            self.logger = self.logger.bind(monitor=title)
        self.spark = spark
        self.clock = clock
        self.dates = DateHelper(default_format=date_format, clock=clock)
        self.time_format = time_format
        self.file_date_format = file_date_format
        self._title: Optional[str] = title
        self._contacts: List[str] = _as_list(contacts)
        self._descriptions: List[str] = [description] if description else []
        self._entries: List[str] = []
        self._successful = True
        self._started_at = clock()
        self._last_update = self._started_at
        self._log_folder: Optional[str] = None
        self._fs: Optional[Filesystem] = None
        if log_folder:
            self.set_log_folder(log_folder)

    @classmethod
    def from_config(
        cls,
        cfg: MonitorConfig,
        *,
        logger: Optional[PrintLogger] = None,
        spark: Optional[SparkSession] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> "Monitor":
        logger = logger or PrintLogger(job_name=cfg.job_name, file_path=cfg.log_file, level=cfg.log_level)
        monitor = cls(
            title=cfg.title,
            contacts=cfg.contacts,
            description=cfg.description,
            logger=logger,
            spark=spark,
            clock=clock,
            date_format=cfg.date_format,
            time_format=cfg.time_format,
            file_date_format=cfg.file_date_format,
        )
        if cfg.log_folder:
            monitor.set_log_folder(cfg.log_folder)
            if cfg.purge_window_days is not None:
                monitor.purge_logs(cfg.purge_window_days)
        return monitor

    # -------------------------
    # Header
    # -------------------------
    def set_title(self, title: str) -> None:
        self._title = title
        self.logger = self.logger.bind(monitor=title)
        self._store_ongoing()

    def add_contacts(self, contacts: Iterable[str]) -> None:
        self._contacts.extend(_as_list(contacts))
        self._store_ongoing()

    def add_description(self, description: str) -> None:
        self._descriptions.append(description)
        self._store_ongoing()

    def set_log_folder(self, log_folder: str) -> None:
        self._fs = Filesystem.for_root(log_folder, self.spark)
        self._fs.makedirs("")
        self._log_folder = log_folder
        self.logger.info("monitor_log_folder_set", log_folder=log_folder)
        self._store_ongoing()

    @property
    def log_folder(self) -> Optional[str]:
        return self._log_folder

    @property
    def is_success(self) -> bool:
        return self._successful

    # -------------------------
    # Report updates
    # -------------------------
    def _time(self, moment: datetime) -> str:
        return self.dates.format(moment, self.time_format)

    def log(self, text: str) -> None:
        now = self.clock()
        self._entries.append(f"[{self._time(self._last_update)}-{self._time(now)}] {text}")
        self._last_update = now
        self._store_ongoing()

    def success(self, task: str) -> bool:
        self.log(f"{task}: success")
        self.logger.info("monitor_task_success", task=task)
        return True

    def error(
        self,
        task: str,
        exception: Optional[BaseException] = None,
        diagnostic: Optional[str] = None,
    ) -> bool:
        self._successful = False
        lines = [f"{task}: failed"]
        if diagnostic:
            lines.append(f"  Diagnostic: {diagnostic}")
        if exception is not None:
            trace = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
            lines.append(_indent(trace))
        self.log("\n".join(lines))
        self.logger.error(
            "monitor_task_failed",
            task=task,
            diagnostic=diagnostic,
            err=str(exception) if exception is not None else None,
            error_type=type(exception).__name__ if exception is not None else None,
        )
        return False

    def update_by_kpis_validation(self, tests: Iterable[KpiTest], suite_name: str) -> bool:
        tests = list(tests)
        failed = [t for t in tests if not t.is_success]
        valid = not failed
        if not valid:
            self._successful = False
        lines = [f"{suite_name}: {SUCCESS_SUFFIX if valid else FAILED_SUFFIX}"]
        for test in tests:
            lines.extend(test.render())
        self.log("\n".join(lines))
        for test in failed:
            self.logger.warn(
                "monitor_kpi_failed",
                suite=suite_name,
                kpi=test.description,
                value=test.kpi_value,
                threshold=test.applied_threshold,
                threshold_type=test.threshold_type.name,
            )
        return valid

    def update_by_kpi_validation(self, test: KpiTest, suite_name: str) -> bool:
        return self.update_by_kpis_validation([test], suite_name)

    @contextmanager
    def task(self, description: str, diagnostic: Optional[str] = None, swallow: bool = False) -> Iterator["Monitor"]:
        """Record ``description`` as a success, or as a failure when the block raises."""
        try:
            yield self
        except Exception as exc:
            self.error(description, exc, diagnostic)
            if not swallow:
                raise
        else:
            self.success(description)

    # -------------------------
    # Rendering & persistence
    # -------------------------
    def report(self, final: bool = False, finished_at: Optional[datetime] = None) -> str:
        lines: List[str] = []
        if self._title:
            lines.append("\t\t\t\t\t" + self._title)
            lines.append("")
        if self._contacts:
            lines.append("Point of contact: " + ", ".join(self._contacts))
        lines.extend(self._descriptions)
        lines.append(f"[{self._time(self._started_at)}] Beginning")
        lines.extend(self._entries)
        if final:
            now = finished_at or self.clock()
            lines.append(f"[{self._time(now)}] Duration: {format_duration(now - self._started_at)}")
        return "\n".join(lines) + "\n"

    def _store_ongoing(self) -> None:
        if self._fs is None:
            return
        try:
            self._fs.write_text(ONGOING_FILE, self.report())
        except Exception as exc:
            self.logger.warn("monitor_ongoing_store_failed", log_folder=self._log_folder, err=str(exc))

    def _fs_for(self, log_folder: Optional[str]) -> Filesystem:
        if log_folder is None or log_folder == self._log_folder:
            if self._fs is None:
                raise ValueError("No log folder set for the monitor")
            return self._fs
        return Filesystem.for_root(log_folder, self.spark)

    def store(self, log_folder: Optional[str] = None) -> str:
        fs = self._fs_for(log_folder)
        suffix = SUCCESS_SUFFIX if self._successful else FAILED_SUFFIX
        finished_at = self.clock()
        name = f"{self.dates.format(finished_at, self.file_date_format)}.{suffix}"
        path = fs.write_text(name, self.report(final=True, finished_at=finished_at))
        fs.delete(ONGOING_FILE)
        if self._fs is not None and fs is not self._fs:
            self._fs.delete(ONGOING_FILE)
        self.logger.event("monitor_report_stored", path=path, success=self._successful)
        return path

    def purge_logs(self, days: int) -> List[str]:
        fs = self._fs_for(None)
        deleted = purge_folder(fs, "", days, self.dates, self.logger)
        self.logger.event("monitor_logs_purged", log_folder=self._log_folder, deleted=len(deleted), days=days)
        return deleted
