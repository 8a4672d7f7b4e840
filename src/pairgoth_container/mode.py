"""运行模式判定

判定逻辑 ``decide_mode`` 是纯函数，只依赖探测结果；
所有文件系统访问集中在 ``FileSystemProbe`` 实现中，便于测试时注入。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol, Union

from loguru import logger

from pairgoth_container.config import Settings


class OperationalMode(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


@dataclass(frozen=True)
class PathProbe:
    """一次路径探测的结果（path 为规范化后的路径）"""

    path: Path
    exists: bool = False
    is_file: bool = False
    is_dir: bool = False


class FileSystemProbe(Protocol):
    def probe(self, path: str | Path) -> PathProbe: ...


class LocalFileSystem:
    """基于本地文件系统的探测实现，相对路径以 root 为基准"""

    def __init__(self, root: Path | None = None):
        self.root = root or Path.cwd()

    def probe(self, path: str | Path) -> PathProbe:
        target = Path(path)
        if not target.is_absolute():
            target = self.root / target
        # 解析符号链接；路径不存在时不抛异常
        real = target.resolve()
        return PathProbe(
            path=real,
            exists=real.exists(),
            is_file=real.is_file(),
            is_dir=real.is_dir(),
        )


@dataclass(frozen=True)
class Production:
    archive: Path

    mode = OperationalMode.PRODUCTION


@dataclass(frozen=True)
class Development:
    api_base: Path
    view_base: Path

    mode = OperationalMode.DEVELOPMENT


@dataclass(frozen=True)
class Indeterminate:
    reason: str

    mode = None


ModeResolution = Union[Production, Development, Indeterminate]


def decide_mode(indicator: PathProbe | None, api: PathProbe, view: PathProbe) -> ModeResolution:
    """根据探测结果决定运行模式

    Args:
        indicator: 生产归档位置的探测结果，未设置时为 None
        api: API 应用开发目录的探测结果
        view: 视图应用开发目录的探测结果
    """
    if indicator is not None and indicator.exists and indicator.is_file:
        return Production(archive=indicator.path)

    if api.exists and api.is_dir and view.exists and view.is_dir:
        return Development(api_base=api.path, view_base=view.path)

    missing = [str(p.path) for p in (api, view) if not (p.exists and p.is_dir)]
    reason = f"开发目录不存在: {', '.join(missing)}"
    if indicator is not None:
        reason = f"归档 {indicator.path} 不是有效文件; {reason}"
    return Indeterminate(reason=reason)


def resolve_operational_mode(settings: Settings, filesystem: FileSystemProbe) -> ModeResolution:
    """探测文件系统并判定运行模式，每次启动只调用一次"""
    location = settings.livewar_location
    indicator = filesystem.probe(location) if location else None
    api = filesystem.probe(settings.API_WEBAPP_DIR)
    view = filesystem.probe(settings.VIEW_WEBAPP_DIR)

    resolution = decide_mode(indicator, api, view)
    if isinstance(resolution, Production):
        logger.info(f"运行模式: 生产, 归档={resolution.archive}")
    elif isinstance(resolution, Development):
        logger.info(
            f"运行模式: 开发, api={resolution.api_base}, view={resolution.view_base}"
        )
    else:
        logger.warning(f"无法判定运行模式: {resolution.reason}")
    return resolution
