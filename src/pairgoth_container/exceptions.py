"""
pairgoth 容器异常模块

启动阶段的所有错误都向上传播到入口函数，由入口统一记录并退出。
"""

from __future__ import annotations

# =============================================================================
# 基础异常类
# =============================================================================


class PairgothException(Exception):
    """pairgoth 容器异常基类"""

    def __init__(self, message: str, error_code: str | None = None):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ConfigurationError(PairgothException):
    """配置错误异常"""

    def __init__(self, message: str):
        super().__init__(message, error_code="CONFIGURATION_ERROR")


class PropertiesFormatError(ConfigurationError):
    """属性文件格式错误"""

    def __init__(self, message: str, path: str | None = None, line: int | None = None):
        self.path = path
        self.line = line
        location = ""
        if path:
            location = f"{path}:{line}" if line else path
        if location:
            message = f"{location}: {message}"
        super().__init__(message)


class ResourceNotFoundError(PairgothException):
    """所需资源不存在异常"""

    def __init__(self, resource: str, detail: str | None = None):
        self.resource = resource
        message = f"{resource} 不存在"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, error_code="RESOURCE_NOT_FOUND")


# =============================================================================
# 生命周期异常
# =============================================================================


class ServerStartError(PairgothException):
    """HTTP 监听启动失败"""

    def __init__(self, message: str):
        super().__init__(message, error_code="SERVER_START_ERROR")


class BootstrapStateError(PairgothException):
    """启动阶段调用顺序错误"""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"启动阶段顺序错误: 期望 {expected}，当前 {actual}",
            error_code="BOOTSTRAP_STATE_ERROR",
        )
