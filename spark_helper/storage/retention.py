from __future__ import annotations

from typing import List, Optional

from ..common import PrintLogger
from ..dates import DateHelper
from .filesystem import Filesystem


def purge_folder(
    fs: Filesystem,
    folder: str,
    purge_age_days: int,
    dates: Optional[DateHelper] = None,
    logger: Optional[PrintLogger] = None,
) -> List[str]:
    """Delete direct children of ``folder`` last modified more than ``purge_age_days`` days ago."""
    if purge_age_days < 0:
        raise ValueError(f"Purge age must be non-negative, got {purge_age_days}")
    dates = dates or DateHelper()
    deleted: List[str] = []
    for entry in fs.list_status(folder):
        age_days = dates.days_since_timestamp(entry.modification_time)
        if age_days > purge_age_days:
            fs.delete(entry.path, recursive=entry.is_dir)
            deleted.append(entry.path)
            if logger is not None:
                logger.debug("purge_delete", path=entry.path, age_days=age_days)
    if logger is not None:
        logger.info("purge_done", folder=folder, deleted=len(deleted), purge_age_days=purge_age_days)
    return deleted
