"""子应用挂载配置

在监听启动前确定每个挂载点的资源基与额外类路径，之后不再修改。
"""

from __future__ import annotations

import zipfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from loguru import logger

from pairgoth_container.config import API_CONTEXT_PATH, VIEW_CONTEXT_PATH
from pairgoth_container.exceptions import ConfigurationError, ResourceNotFoundError
from pairgoth_container.mode import Development, ModeResolution, OperationalMode, Production
from pairgoth_container.properties import RuntimeConfig
from pairgoth_container.resources import (
    ArchiveResource,
    DirectoryResource,
    Resource,
    ServerResourcePredicate,
    default_server_resource,
)

WEBAPP_SOURCE_DIR = "src/main/webapp"
WEBAPP_CLASSES_DIR = "target/webapp/WEB-INF/classes"
ARCHIVE_CLASSES_DIR = "WEB-INF/classes"


@dataclass(frozen=True)
class SubApplicationMount:
    """一个挂载到监听上的 Web 应用"""

    name: str
    context_path: str
    base_resource: Path
    war: bool = False
    extra_classpath: Path | None = None
    init_params: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    server_resource: ServerResourcePredicate = default_server_resource

    def resource_base(self) -> Resource:
        if self.war:
            return ArchiveResource(self.base_resource)
        return DirectoryResource(self.base_resource)

    def classpath(self) -> list[Resource]:
        """类路径资源，按查找顺序"""
        if self.war:
            return [ArchiveResource(self.base_resource, prefix=ARCHIVE_CLASSES_DIR)]
        if self.extra_classpath is not None:
            return [DirectoryResource(self.extra_classpath)]
        return []

    def describe(self) -> dict[str, object]:
        return {
            "name": self.name,
            "context_path": self.context_path,
            "base_resource": str(self.base_resource),
            "war": self.war,
            "extra_classpath": str(self.extra_classpath) if self.extra_classpath else None,
            "init_params": dict(self.init_params),
        }


@dataclass(frozen=True)
class MountConfiguration:
    mode: OperationalMode
    api: SubApplicationMount
    view: SubApplicationMount
    dump_after_start: bool = False

    @property
    def mounts(self) -> tuple[SubApplicationMount, SubApplicationMount]:
        """按分派顺序排列的挂载点：/api 在前，/ 兜底"""
        return self.api, self.view


def _development_mount(
    name: str,
    context_path: str,
    base: Path,
    init_params: Mapping[str, str],
    server_resource: ServerResourcePredicate,
) -> SubApplicationMount:
    webapp = base / WEBAPP_SOURCE_DIR
    if not webapp.is_dir():
        raise ResourceNotFoundError(f"{name} Web 应用目录", str(webapp))
    return SubApplicationMount(
        name=name,
        context_path=context_path,
        base_resource=webapp,
        # 编译输出与 src/main/resources 拷贝到此目录
        extra_classpath=(base / WEBAPP_CLASSES_DIR).absolute(),
        init_params=init_params,
        server_resource=server_resource,
    )


def configure_mounts(
    resolution: ModeResolution,
    runtime: RuntimeConfig,
    server_resource: ServerResourcePredicate = default_server_resource,
) -> MountConfiguration:
    """根据运行模式配置两个挂载点

    Raises:
        ConfigurationError: 生产归档不是有效的 zip/war 文件
        ResourceNotFoundError: 运行模式无法判定，或开发目录缺少 src/main/webapp
    """
    api_params = MappingProxyType(dict(runtime.api_init_params))

    if isinstance(resolution, Production):
        # 生产模式下两个挂载点共用同一个自包含归档
        archive = resolution.archive
        if not zipfile.is_zipfile(archive):
            raise ConfigurationError(f"生产归档不是有效的 war/zip 文件: {archive}")

        configuration = MountConfiguration(
            mode=OperationalMode.PRODUCTION,
            api=SubApplicationMount(
                name="api",
                context_path=API_CONTEXT_PATH,
                base_resource=archive,
                war=True,
                init_params=api_params,
                server_resource=server_resource,
            ),
            view=SubApplicationMount(
                name="view",
                context_path=VIEW_CONTEXT_PATH,
                base_resource=archive,
                war=True,
                server_resource=server_resource,
            ),
        )
    elif isinstance(resolution, Development):
        configuration = MountConfiguration(
            mode=OperationalMode.DEVELOPMENT,
            api=_development_mount(
                "api", API_CONTEXT_PATH, resolution.api_base, api_params, server_resource
            ),
            view=_development_mount(
                "view",
                VIEW_CONTEXT_PATH,
                resolution.view_base,
                MappingProxyType({}),
                server_resource,
            ),
            dump_after_start=True,
        )
    else:
        raise ResourceNotFoundError("Web 应用资源基", getattr(resolution, "reason", None))

    for mount in configuration.mounts:
        logger.info(
            f"挂载 {mount.context_path} -> {mount.base_resource}"
            + (f" (classpath={mount.extra_classpath})" if mount.extra_classpath else "")
        )
    return configuration
