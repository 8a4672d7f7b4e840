"""Web 应用资源基

目录资源（开发模式下的构建输出）与归档资源（生产模式下的 war 包）
提供统一的读取接口；开发模式的静态内容由 StaticFiles 直接提供。
"""

from __future__ import annotations

import posixpath
import threading
import zipfile
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

# (name, location) -> 是否为容器自身资源，需对 Web 应用隐藏
ServerResourcePredicate = Callable[[str, str], bool]

SERVER_RESOURCE_MARKER = "/WEB-INF/jetty-server/"
PROTECTED_TARGETS = ("WEB-INF", "META-INF")


def default_server_resource(name: str, location: str) -> bool:
    """归档内打包的容器类不对 Web 应用可见"""
    return SERVER_RESOURCE_MARKER in location


def normalize_name(name: str) -> str:
    """规范化资源名，".." 不会越过资源基的根"""
    name = name.replace("\\", "/")
    normalized = posixpath.normpath("/" + name).lstrip("/")
    return "" if normalized == "." else normalized


def is_protected(name: str) -> bool:
    """WEB-INF / META-INF 下的内容不通过 HTTP 提供"""
    first = name.split("/", 1)[0]
    return first.upper() in PROTECTED_TARGETS


class Resource(ABC):
    """类路径资源抽象"""

    @abstractmethod
    def location(self, name: str) -> str:
        """资源的完整位置描述（用于日志与隐藏判断）"""

    @abstractmethod
    def is_file(self, name: str) -> bool: ...

    @abstractmethod
    def read_bytes(self, name: str) -> bytes: ...


class DirectoryResource(Resource):
    """本地目录中的资源，开发模式下的编译输出目录"""

    def __init__(self, root: Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"DirectoryResource({self.root})"

    def _resolve(self, name: str) -> Path | None:
        path = (self.root / normalize_name(name)).resolve()
        root = self.root.resolve()
        # 符号链接不能指向资源基之外
        if path != root and root not in path.parents:
            return None
        return path

    def location(self, name: str) -> str:
        return (self.root / name).as_posix()

    def is_file(self, name: str) -> bool:
        path = self._resolve(name)
        return path is not None and path.is_file()

    def read_bytes(self, name: str) -> bytes:
        path = self._resolve(name)
        if path is None or not path.is_file():
            raise FileNotFoundError(name)
        return path.read_bytes()


class ArchiveResource(Resource):
    """war/zip 归档中的资源，prefix 限定归档内的子目录"""

    def __init__(self, archive: Path, prefix: str = ""):
        self.archive = Path(archive)
        self.prefix = prefix.strip("/")
        self._lock = threading.Lock()
        self._names: set[str] | None = None
        self._dirs: set[str] | None = None

    def __repr__(self) -> str:
        suffix = f"!/{self.prefix}" if self.prefix else ""
        return f"ArchiveResource({self.archive}{suffix})"

    def _entry(self, name: str) -> str:
        normalized = normalize_name(name)
        if self.prefix:
            return f"{self.prefix}/{normalized}" if normalized else self.prefix
        return normalized

    def _index(self) -> tuple[set[str], set[str]]:
        with self._lock:
            if self._names is None:
                with zipfile.ZipFile(self.archive) as zf:
                    names = set()
                    dirs = {""}
                    for info in zf.infolist():
                        entry = info.filename.rstrip("/")
                        if info.is_dir():
                            dirs.add(entry)
                        else:
                            names.add(entry)
                        # 归档中不一定有显式目录项
                        parent = posixpath.dirname(entry)
                        while parent:
                            dirs.add(parent)
                            parent = posixpath.dirname(parent)
                self._names, self._dirs = names, dirs
            return self._names, self._dirs

    def location(self, name: str) -> str:
        return f"{self.archive.as_posix()}!/{self._entry(name)}"

    def is_file(self, name: str) -> bool:
        return self._entry(name) in self._index()[0]

    def is_directory(self, name: str) -> bool:
        return self._entry(name) in self._index()[1]

    def read_bytes(self, name: str) -> bytes:
        if not self.is_file(name):
            raise FileNotFoundError(name)
        with zipfile.ZipFile(self.archive) as zf:
            return zf.read(self._entry(name))
