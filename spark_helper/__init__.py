"""
Driver-side helpers for Spark batch jobs.

The package centres on ``Monitor``, which keeps a human-readable report of a
job run, gates its success on KPI tests and persists the report to a local or
HDFS log folder. ``DateHelper`` and ``Filesystem`` are the date and storage
layers it builds on, and are usable on their own.
"""

from .common import RUN_ID, PrintLogger
from .config import MonitorConfig, load_config, validate_config
from .dates import DateHelper, format_duration, to_strftime
from .monitoring import KpiTest, KpiType, Monitor, ThresholdType
from .storage import Filesystem, purge_folder

__all__ = [
    "RUN_ID",
    "DateHelper",
    "Filesystem",
    "KpiTest",
    "KpiType",
    "Monitor",
    "MonitorConfig",
    "PrintLogger",
    "ThresholdType",
    "format_duration",
    "load_config",
    "purge_folder",
    "to_strftime",
    "validate_config",
]
