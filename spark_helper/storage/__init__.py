"""Storage helpers for local and HDFS-backed folders."""

from .filesystem import FileEntry, Filesystem, is_hdfs_path
from .retention import purge_folder

__all__ = [
    "FileEntry",
    "Filesystem",
    "is_hdfs_path",
    "purge_folder",
]
