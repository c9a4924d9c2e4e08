from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ..dates import DEFAULT_NOW_FORMAT, DateHelper
from ..storage import Filesystem
from .monitor import FAILED_SUFFIX, ONGOING_FILE, SUCCESS_SUFFIX


@dataclass(frozen=True)
class ReportFile:
    name: str
    path: str
    status: str
    finished_at: datetime


def list_reports(
    fs: Filesystem,
    folder: str = "",
    dates: Optional[DateHelper] = None,
    file_date_format: str = DEFAULT_NOW_FORMAT,
) -> List[ReportFile]:
    """Stored reports of ``folder``, newest first."""
    dates = dates or DateHelper()
    reports: List[ReportFile] = []
    for entry in fs.list_status(folder):
        if entry.is_dir or "." not in entry.name:
            continue
        stem, status = entry.name.rsplit(".", 1)
        if status not in (SUCCESS_SUFFIX, FAILED_SUFFIX):
            continue
        if not dates.is_compliant(stem, file_date_format):
            continue
        reports.append(
            ReportFile(
                name=entry.name,
                path=entry.path,
                status=status,
                finished_at=dates.parse(stem, file_date_format),
            )
        )
    return sorted(reports, key=lambda r: (r.finished_at, r.name), reverse=True)


def ongoing_report(fs: Filesystem, folder: str = "") -> Optional[str]:
    path = fs.join(folder, ONGOING_FILE) if folder else ONGOING_FILE
    if not fs.exists(path):
        return None
    return fs.read_text(path)
