"""应用工厂模块

提供 create_app() 工厂函数：根 FastAPI 应用按前缀挂载 API 与视图两个子应用。
"""

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from pairgoth_container.config import API_CONTEXT_PATH, Settings
from pairgoth_container.lifespan import lifespan
from pairgoth_container.mounts import MountConfiguration
from pairgoth_container.properties import RuntimeConfig
from pairgoth_container.webapp import create_webapp


def create_app(
    configuration: MountConfiguration,
    runtime: RuntimeConfig,
    settings: Settings,
) -> FastAPI:
    """创建并配置根应用

    Args:
        configuration: 已确定的挂载配置
        runtime: 启动时构建的运行时配置
        settings: 容器配置（应用名称与版本）

    Returns:
        FastAPI: 挂载了 /api 与 / 的根应用
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=settings.APP_DESCRIPTION,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.mounts = configuration
    app.state.settings = settings
    app.state.runtime = runtime

    # "/" 挂载会吞掉不带斜杠的 /api
    @app.get(API_CONTEXT_PATH, include_in_schema=False)
    async def api_root_redirect() -> RedirectResponse:
        return RedirectResponse(url=API_CONTEXT_PATH + "/", status_code=302)

    # 按顺序分派：/api 在前，/ 兜底
    for mount in configuration.mounts:
        app.mount(mount.context_path, create_webapp(mount, runtime), name=mount.name)

    return app
