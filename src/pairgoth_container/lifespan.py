"""应用生命周期管理

提供生命周期上下文管理器与服务器状态转储。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from pairgoth_container.config import Settings
from pairgoth_container.logging import sanitize_dict
from pairgoth_container.mounts import MountConfiguration
from pairgoth_container.properties import RuntimeConfig


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期上下文管理器"""
    configuration: MountConfiguration = app.state.mounts
    settings: Settings = app.state.settings
    logger.info("=" * 50)
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} ({configuration.mode.value})")
    for mount in configuration.mounts:
        logger.info(f"  {mount.context_path:<5} -> {mount.base_resource}")
    logger.info("=" * 50)
    try:
        yield
    finally:
        logger.info("应用程序已停止")


def dump_server_state(
    configuration: MountConfiguration,
    runtime: RuntimeConfig,
    host: str,
    port: int,
) -> str:
    """生成服务器完整状态的文本转储（敏感值已脱敏）"""
    lines = [
        f"Server@{host}:{port} mode={configuration.mode.value}",
        f"+- properties: {sanitize_dict(dict(runtime.properties))}",
    ]
    for mount in configuration.mounts:
        info = mount.describe()
        lines.append(f"+- WebAppContext[{info['name']}] {info['context_path']}")
        lines.append(f"|  +- base_resource: {info['base_resource']} (war={info['war']})")
        lines.append(f"|  +- extra_classpath: {info['extra_classpath']}")
        lines.append(f"|  +- init_params: {sanitize_dict(info['init_params'])}")
        lines.append(f"|  +- resource_base: {mount.resource_base()!r}")
        lines.append(f"|  +- classpath: {mount.classpath()!r}")
    return "\n".join(lines)
