"""容器启动流程

严格线性的启动顺序：读取属性 → 判定模式 → 配置挂载 → 启动监听并阻塞。
任何阶段失败都直接向上抛出，不做回滚。
"""

from __future__ import annotations

import socket
from collections.abc import Callable
from enum import Enum
from functools import partial
from pathlib import Path

import uvicorn
from loguru import logger

from pairgoth_container.app_factory import create_app
from pairgoth_container.config import Settings
from pairgoth_container.exceptions import (
    BootstrapStateError,
    ResourceNotFoundError,
    ServerStartError,
)
from pairgoth_container.lifespan import dump_server_state
from pairgoth_container.logging import uvicorn_log_config
from pairgoth_container.mode import (
    FileSystemProbe,
    Indeterminate,
    LocalFileSystem,
    ModeResolution,
    resolve_operational_mode,
)
from pairgoth_container.mounts import MountConfiguration, configure_mounts
from pairgoth_container.properties import RuntimeConfig, resolve_properties_overrides
from pairgoth_container.resources import ServerResourcePredicate, default_server_resource


class BootstrapState(str, Enum):
    UNCONFIGURED = "unconfigured"
    PROPERTIES_LOADED = "properties_loaded"
    MODE_RESOLVED = "mode_resolved"
    MOUNTS_CONFIGURED = "mounts_configured"
    RUNNING = "running"
    STOPPED = "stopped"


def _port_available(host: str, port: int) -> bool:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    address = (host, port, 0, 0) if family == socket.AF_INET6 else (host, port)
    with socket.socket(family, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(address)
        except OSError:
            return False
    return True


class ContainerServer(uvicorn.Server):
    """uvicorn 服务器，可在启动完成后转储状态"""

    def __init__(self, config: uvicorn.Config, dump: Callable[[], str] | None = None):
        super().__init__(config)
        self.dump = dump

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.dump is not None and self.started and not self.should_exit:
            logger.info("服务器状态:\n" + self.dump())


ServerFactory = Callable[[uvicorn.Config, Callable[[], str] | None], uvicorn.Server]


class Bootstrap:
    """容器启动器"""

    def __init__(
        self,
        settings: Settings,
        working_dir: Path | None = None,
        filesystem: FileSystemProbe | None = None,
        server_factory: ServerFactory = ContainerServer,
        server_resource: ServerResourcePredicate = default_server_resource,
    ):
        self.settings = settings
        self.working_dir = working_dir or Path.cwd()
        self.filesystem = filesystem or LocalFileSystem(self.working_dir)
        self.server_factory = server_factory
        self.server_resource = server_resource

        self.state = BootstrapState.UNCONFIGURED
        self.runtime: RuntimeConfig | None = None
        self.resolution: ModeResolution | None = None
        self.configuration: MountConfiguration | None = None
        self.server: uvicorn.Server | None = None

    def _advance(self, expected: BootstrapState, target: BootstrapState) -> None:
        if self.state is not expected:
            raise BootstrapStateError(expected.value, self.state.value)
        self.state = target

    @property
    def properties_path(self) -> Path:
        path = Path(self.settings.PROPERTIES_FILE)
        return path if path.is_absolute() else self.working_dir / path

    def resolve_properties_overrides(self) -> RuntimeConfig:
        self._advance(BootstrapState.UNCONFIGURED, BootstrapState.PROPERTIES_LOADED)
        self.runtime = resolve_properties_overrides(self.properties_path)
        return self.runtime

    def resolve_operational_mode(self) -> ModeResolution:
        """判定运行模式；无法判定时启动失败

        Raises:
            ResourceNotFoundError: 既没有有效归档，也没有开发目录
        """
        self._advance(BootstrapState.PROPERTIES_LOADED, BootstrapState.MODE_RESOLVED)
        resolution = resolve_operational_mode(self.settings, self.filesystem)
        if isinstance(resolution, Indeterminate):
            raise ResourceNotFoundError("Web 应用资源基", resolution.reason)
        self.resolution = resolution
        return resolution

    def configure_mounts(self) -> MountConfiguration:
        self._advance(BootstrapState.MODE_RESOLVED, BootstrapState.MOUNTS_CONFIGURED)
        self.configuration = configure_mounts(
            self.resolution, self.runtime, server_resource=self.server_resource
        )
        return self.configuration

    def start(self) -> None:
        """启动监听并阻塞，直到外部停止

        Raises:
            ServerStartError: 端口被占用或监听未能启动
        """
        self._advance(BootstrapState.MOUNTS_CONFIGURED, BootstrapState.RUNNING)
        host, port = self.settings.SERVER_HOST, self.settings.SERVER_PORT
        configuration, runtime = self.configuration, self.runtime

        app = create_app(configuration, runtime, self.settings)

        if not _port_available(host, port):
            raise ServerStartError(f"端口 {port} 已被占用，请停止占用进程或修改 SERVER_PORT 后重试")

        dump = None
        if configuration.dump_after_start:
            dump = partial(dump_server_state, configuration, runtime, host, port)

        config = uvicorn.Config(app, host=host, port=port, log_config=uvicorn_log_config())
        self.server = self.server_factory(config, dump)
        logger.info(f"启动 HTTP 监听 {host}:{port}")
        try:
            self.server.run()
        except SystemExit as e:
            # uvicorn 绑定失败时直接 sys.exit
            if not self.server.started:
                raise ServerStartError(f"HTTP 监听启动失败: {host}:{port}") from e
            raise
        if not self.server.started:
            raise ServerStartError(f"HTTP 监听启动失败: {host}:{port}")
        self.state = BootstrapState.STOPPED
        logger.info("HTTP 监听已停止")

    def run(self) -> None:
        self.resolve_properties_overrides()
        self.resolve_operational_mode()
        self.configure_mounts()
        self.start()
