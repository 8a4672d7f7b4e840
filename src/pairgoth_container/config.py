"""应用配置模块

提供统一的配置管理，支持环境变量和 .env 文件。
"""

import os
from functools import cached_property

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# 固定挂载路径
API_CONTEXT_PATH = "/api"
VIEW_CONTEXT_PATH = "/"


class Settings(BaseSettings):
    """容器配置类"""

    # === 服务器配置 ===
    SERVER_HOST: str = Field(default="0.0.0.0")
    SERVER_PORT: int = Field(default=8080)

    # === 部署定位 ===
    # 由外部启动器设置的归档位置（生产模式标识）
    LIVEWAR_LOCATION: str = Field(default="")
    PROPERTIES_FILE: str = Field(default="./pairgoth.properties")
    API_WEBAPP_DIR: str = Field(default="../api-webapp")
    VIEW_WEBAPP_DIR: str = Field(default="../view-webapp")

    # === 日志配置 ===
    LOG_LEVEL: str = Field(default="INFO")
    LOG_TO_FILE: bool = Field(default=False)
    LOG_DIR: str = Field(default="logs")

    # === 应用信息 ===
    APP_NAME: str = "pairgoth"
    APP_DESCRIPTION: str = "pairgoth 容器：在同一监听端口上挂载 API 与视图应用"
    APP_VERSION: str = "0.1.0"

    @cached_property
    def LOG_FILE_PATH(self) -> str:
        return os.path.join(self.LOG_DIR, "pairgoth.log")

    @property
    def livewar_location(self) -> str | None:
        """外部启动器提供的归档路径，未设置时为 None"""
        location = self.LIVEWAR_LOCATION.strip()
        return location or None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_server_port(self) -> "Settings":
        """验证监听端口范围"""
        if not 0 < self.SERVER_PORT < 65536:
            raise ValueError(f"SERVER_PORT 超出范围: {self.SERVER_PORT}")
        return self


# 全局配置实例
settings = Settings()
