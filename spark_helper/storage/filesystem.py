from __future__ import annotations

import os
import posixpath
import shutil
from dataclasses import dataclass
from typing import List, Optional

from pyspark.sql import SparkSession


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: str
    is_dir: bool
    size: int
    modification_time: int  # epoch millis


class Filesystem:
    """Abstraction over filesystem protocols (local, HDFS today)."""

    def __init__(self, impl) -> None:
        self._impl = impl

    @property
    def root(self) -> str:
        return self._impl.root

    @classmethod
    def for_root(cls, root: str, spark: Optional[SparkSession] = None) -> "Filesystem":
        if is_hdfs_path(root):
            if spark is None:
                spark = SparkSession.getActiveSession()
            if spark is None:
                raise RuntimeError("Spark session required for HDFS filesystem access")
            impl = _HdfsStorage(root.rstrip("/"), spark)
        else:
            impl = _LocalStorage(root)
        return cls(impl)

    def join(self, *parts: str) -> str:
        return self._impl.join(*parts)

    def exists(self, path: str) -> bool:
        return self._impl.exists(path)

    def makedirs(self, path: str) -> None:
        self._impl.makedirs(path)

    def write_text(self, path: str, data: str) -> str:
        return self._impl.write_text(path, data)

    def append_text(self, path: str, data: str) -> str:
        return self._impl.append_text(path, data)

    def read_text(self, path: str) -> str:
        return self._impl.read_text(path)

    def delete(self, path: str, recursive: bool = False) -> None:
        self._impl.delete(path, recursive)

    def rename(self, src: str, dst: str) -> None:
        self._impl.rename(src, dst)

    def replace(self, src: str, dst: str) -> None:
        self._impl.replace(src, dst)

    def listdir(self, path: str = "") -> List[str]:
        return [entry.name for entry in self._impl.list_status(path)]

    def list_status(self, path: str = "") -> List[FileEntry]:
        return self._impl.list_status(path)


def is_hdfs_path(path: str) -> bool:
    return path.startswith("hdfs://")


class _LocalStorage:
    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    def _full(self, path: str) -> str:
        if not path:
            return self.root
        if os.path.isabs(path):
            return path
        return os.path.join(self.root, path)

    def join(self, *parts: str) -> str:
        parts = [p for p in parts if p]
        if not parts:
            return self.root
        return os.path.join(*parts)

    def exists(self, path: str) -> bool:
        return os.path.exists(self._full(path))

    def makedirs(self, path: str) -> None:
        os.makedirs(self._full(path), exist_ok=True)

    def write_text(self, path: str, data: str) -> str:
        full = self._full(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "w", encoding="utf-8") as handle:
            handle.write(data)
        return full

    def append_text(self, path: str, data: str) -> str:
        full = self._full(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "a", encoding="utf-8") as handle:
            handle.write(data)
        return full

    def read_text(self, path: str) -> str:
        with open(self._full(path), "r", encoding="utf-8") as handle:
            return handle.read()

    def delete(self, path: str, recursive: bool = False) -> None:
        full = self._full(path)
        if not os.path.exists(full):
            return
        if os.path.isdir(full) and recursive:
            shutil.rmtree(full)
        elif os.path.isdir(full):
            os.rmdir(full)
        else:
            os.remove(full)

    def rename(self, src: str, dst: str) -> None:
        target = self._full(dst)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        if os.path.exists(target):
            raise IOError(f"Unable to rename {src} -> {dst}: destination exists")
        os.rename(self._full(src), target)

    def replace(self, src: str, dst: str) -> None:
        os.makedirs(os.path.dirname(self._full(dst)), exist_ok=True)
        os.replace(self._full(src), self._full(dst))

    def list_status(self, path: str) -> List[FileEntry]:
        full = self._full(path)
        if not os.path.isdir(full):
            return []
        entries = []
        with os.scandir(full) as it:
            for item in it:
                st = item.stat()
                entries.append(
                    FileEntry(
                        name=item.name,
                        path=item.path,
                        is_dir=item.is_dir(),
                        size=st.st_size,
                        modification_time=int(st.st_mtime * 1000),
                    )
                )
        return sorted(entries, key=lambda e: e.name)


class _HdfsStorage:
    def __init__(self, root: str, spark: SparkSession) -> None:
        self.root = root.rstrip("/")
        self.spark = spark
        self._conf = spark._jsc.hadoopConfiguration()
        self._jvm = spark.sparkContext._jvm
        self.Path = self._jvm.org.apache.hadoop.fs.Path
        self.fs = self._jvm.org.apache.hadoop.fs.FileSystem.get(self._conf)
        self.IOUtils = self._jvm.org.apache.hadoop.io.IOUtils

    def _full(self, path: str) -> str:
        if not path:
            return self.root
        if is_hdfs_path(path):
            return path.rstrip("/")
        return f"{self.root}/{path.lstrip('/')}"

    def _path(self, path: str):
        return self.Path(self._full(path))

    def join(self, *parts: str) -> str:
        clean: List[str] = []
        for part in parts:
            if not part:
                continue
            if is_hdfs_path(part):
                clean = [part.rstrip("/")]
            else:
                clean.append(part.strip("/"))
        if not clean:
            return self.root
        base = clean[0]
        for piece in clean[1:]:
            base = posixpath.join(base, piece)
        return base

    def _ensure_parent(self, p) -> None:
        parent = p.getParent()
        if parent is not None and not self.fs.exists(parent):
            self.fs.mkdirs(parent)

    def exists(self, path: str) -> bool:
        return self.fs.exists(self._path(path))

    def makedirs(self, path: str) -> None:
        p = self._path(path)
        if not self.fs.exists(p):
            self.fs.mkdirs(p)

    def write_text(self, path: str, data: str) -> str:
        full = self._full(path)
        p = self.Path(full)
        self._ensure_parent(p)
        stream = self.fs.create(p, True)
        try:
            stream.write(bytearray(data.encode("utf-8")))
        finally:
            stream.close()
        return full

    def append_text(self, path: str, data: str) -> str:
        full = self._full(path)
        p = self.Path(full)
        self._ensure_parent(p)
        stream = self.fs.append(p) if self.fs.exists(p) else self.fs.create(p, True)
        try:
            stream.write(bytearray(data.encode("utf-8")))
        finally:
            stream.close()
        return full

    def read_text(self, path: str) -> str:
        stream = self.fs.open(self._path(path))
        baos = self._jvm.java.io.ByteArrayOutputStream()
        try:
            self.IOUtils.copyBytes(stream, baos, self._conf, False)
        finally:
            stream.close()
        return bytes(baos.toByteArray()).decode("utf-8")

    def delete(self, path: str, recursive: bool = False) -> None:
        p = self._path(path)
        if self.fs.exists(p):
            self.fs.delete(p, bool(recursive))

    def rename(self, src: str, dst: str) -> None:
        dst_path = self._path(dst)
        self._ensure_parent(dst_path)
        if not self.fs.rename(self._path(src), dst_path):
            raise IOError(f"Unable to rename {src} -> {dst}")

    def replace(self, src: str, dst: str) -> None:
        dst_path = self._path(dst)
        if self.fs.exists(dst_path):
            self.fs.delete(dst_path, True)
        self.rename(src, dst)

    def list_status(self, path: str) -> List[FileEntry]:
        p = self._path(path)
        if not self.fs.exists(p):
            return []
        entries = []
        for status in self.fs.listStatus(p):
            entries.append(
                FileEntry(
                    name=status.getPath().getName(),
                    path=status.getPath().toString(),
                    is_dir=bool(status.isDirectory()),
                    size=int(status.getLen()),
                    modification_time=int(status.getModificationTime()),
                )
            )
        return sorted(entries, key=lambda e: e.name)
