from .history import ReportFile, list_reports, ongoing_report
from .kpi import KpiTest, KpiType, ThresholdType
from .monitor import FAILED_SUFFIX, ONGOING_FILE, SUCCESS_SUFFIX, Monitor

__all__ = [
    "FAILED_SUFFIX",
    "KpiTest",
    "KpiType",
    "Monitor",
    "ONGOING_FILE",
    "ReportFile",
    "SUCCESS_SUFFIX",
    "ThresholdType",
    "list_reports",
    "ongoing_report",
]
