"""Web 应用上下文

把一个挂载点包装成可挂载的 FastAPI 子应用：按资源基提供静态内容，
并向子应用暴露初始化参数、类路径查找和运行时配置。
"""

from __future__ import annotations

import mimetypes
import os

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from loguru import logger

from pairgoth_container.mounts import SubApplicationMount
from pairgoth_container.properties import RuntimeConfig
from pairgoth_container.resources import ArchiveResource, is_protected, normalize_name

WELCOME_FILES = ("index.html",)


class WebAppContext:
    """挂载点的运行时上下文"""

    def __init__(self, mount: SubApplicationMount, runtime: RuntimeConfig):
        self.mount = mount
        self.runtime = runtime
        self.base = mount.resource_base()
        self.classpath = mount.classpath()

    @property
    def context_path(self) -> str:
        return self.mount.context_path

    def get_init_parameter(self, name: str) -> str | None:
        return self.mount.init_params.get(name)

    def get_classpath_resource(self, name: str) -> bytes | None:
        """按类路径顺序查找资源，容器自身的资源不可见"""
        for resource in self.classpath:
            if not resource.is_file(name):
                continue
            if self.mount.server_resource(name, resource.location(name)):
                logger.debug(f"隐藏容器资源: {resource.location(name)}")
                continue
            return resource.read_bytes(name)
        return None

    def find_welcome_file(self, directory: str) -> str | None:
        for welcome in WELCOME_FILES:
            candidate = f"{directory.rstrip('/')}/{welcome}".lstrip("/")
            if self.base.is_file(candidate):
                return candidate
        return None


class WebAppStaticFiles(StaticFiles):
    """目录资源基：WEB-INF / META-INF 不可访问"""

    def lookup_path(self, path: str) -> tuple[str, os.stat_result | None]:
        if is_protected(path.replace(os.sep, "/")):
            return "", None
        return super().lookup_path(path)


def _archive_response(base: ArchiveResource, name: str, method: str) -> Response:
    media_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
    content = base.read_bytes(name)
    if method == "HEAD":
        return Response(
            headers={"content-length": str(len(content))},
            media_type=media_type,
        )
    return Response(content=content, media_type=media_type)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """未处理异常"""
    logger.opt(exception=exc).error(f"请求处理失败: {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "code": 500, "message": "服务器内部错误"},
    )


def _serve_archive(app: FastAPI, context: WebAppContext) -> None:
    base = context.base

    # 归档读取是阻塞 I/O，同步处理函数在线程池中执行
    @app.api_route("/{name:path}", methods=["GET", "HEAD"], include_in_schema=False)
    def serve_resource(request: Request, name: str) -> Response:
        normalized = normalize_name(name)
        if is_protected(normalized):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)

        if base.is_file(normalized):
            return _archive_response(base, normalized, request.method)

        if base.is_directory(normalized):
            if normalized and not request.url.path.endswith("/"):
                return RedirectResponse(
                    url=str(request.url.replace(path=request.url.path + "/")),
                    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
                )
            welcome = context.find_welcome_file(normalized)
            if welcome is not None:
                return _archive_response(base, welcome, request.method)

        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)


def create_webapp(mount: SubApplicationMount, runtime: RuntimeConfig) -> FastAPI:
    """为挂载点创建子应用"""
    context = WebAppContext(mount, runtime)
    app = FastAPI(
        title=f"pairgoth {mount.name}",
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.webapp = context
    app.state.runtime = runtime
    app.add_exception_handler(Exception, general_exception_handler)

    if mount.war:
        _serve_archive(app, context)
    else:
        app.mount(
            "/",
            WebAppStaticFiles(directory=str(mount.base_resource), html=True),
            name="static",
        )

    return app
