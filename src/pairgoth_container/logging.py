"""日志配置模块

提供日志初始化、格式化和敏感信息脱敏功能。
"""

import copy
import os
import re
import sys
from typing import Any

from loguru import logger
from uvicorn.config import LOGGING_CONFIG

from pairgoth_container.config import settings

# 日志格式
CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

REDACTED = "***REDACTED***"

# 敏感字段模式（用于脱敏）
SENSITIVE_PATTERNS = [
    # 密码 / 口令
    (
        re.compile(
            r'(password|passwd|pwd|sesame)["\']?\s*[:=]\s*["\']?([^"\'\s,}]{3,})["\']?',
            re.IGNORECASE,
        ),
        rf"\1={REDACTED}",
    ),
    # API 密钥/私密密钥
    (
        re.compile(
            r'(api[_-]?key|secret[_-]?key|access[_-]?key)["\']?\s*[:=]\s*["\']?([a-zA-Z0-9_\-]{8,})["\']?',
            re.IGNORECASE,
        ),
        rf"\1={REDACTED}",
    ),
    # 令牌
    (
        re.compile(
            r'(token|bearer|jwt)["\']?\s*[:=]\s*["\']?([a-zA-Z0-9_\-\.]{20,})["\']?',
            re.IGNORECASE,
        ),
        rf"\1={REDACTED}",
    ),
    # 带密码的连接 URL
    (
        re.compile(r"(mysql|postgres|postgresql|redis|https?)://([^:/]+):([^@]+)@", re.IGNORECASE),
        r"\1://\2:***@",
    ),
]

SENSITIVE_KEYS = {
    "password",
    "passwd",
    "pwd",
    "secret",
    "sesame",
    "token",
    "api_key",
    "apikey",
    "credential",
}


def sanitize_log_message(message: str) -> str:
    """对日志消息进行敏感信息脱敏"""
    if not message:
        return message

    sanitized = message
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """对字典数据进行敏感信息脱敏

    Args:
        data: 原始字典数据
        sensitive_keys: 需要脱敏的键名片段，默认使用 SENSITIVE_KEYS

    Returns:
        脱敏后的新字典
    """
    if sensitive_keys is None:
        sensitive_keys = SENSITIVE_KEYS

    if not isinstance(data, dict):
        return data

    result = {}
    for key, value in data.items():
        key_lower = str(key).lower()
        if any(sk in key_lower for sk in sensitive_keys):
            result[key] = REDACTED
        elif isinstance(value, dict):
            result[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            result[key] = sanitize_log_message(value)
        else:
            result[key] = value
    return result


class SanitizingFilter:
    """日志脱敏过滤器"""

    def __call__(self, record: dict[str, Any]) -> bool:
        if "message" in record:
            record["message"] = sanitize_log_message(record["message"])

        if "extra" in record and isinstance(record["extra"], dict):
            record["extra"] = sanitize_dict(record["extra"])

        return True


def setup_logging(
    level: str | None = None,
    log_to_file: bool | None = None,
    log_file_path: str | None = None,
) -> None:
    """初始化日志系统，包含敏感信息脱敏

    Args:
        level: 日志级别，默认使用 settings.LOG_LEVEL
        log_to_file: 是否输出到文件，默认使用 settings.LOG_TO_FILE
        log_file_path: 日志文件路径，默认使用 settings.LOG_FILE_PATH
    """
    logger.remove()

    log_level = level or settings.LOG_LEVEL
    should_log_to_file = log_to_file if log_to_file is not None else settings.LOG_TO_FILE
    file_path = log_file_path or settings.LOG_FILE_PATH

    sanitizing_filter = SanitizingFilter()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=log_level,
        colorize=True,
        filter=sanitizing_filter,
    )

    if should_log_to_file:
        log_dir = os.path.dirname(file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        logger.add(
            file_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            encoding="utf-8",
            enqueue=True,
            filter=sanitizing_filter,
        )

    logger.debug(f"日志初始化完成: level={log_level}, file={should_log_to_file}, sanitize=True")


def uvicorn_log_config() -> dict[str, Any]:
    """返回调整过格式的 uvicorn 日志配置"""
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s %(levelprefix)s %(message)s"
    log_config["formatters"]["default"]["datefmt"] = "%Y-%m-%d %H:%M:%S"
    log_config["formatters"]["access"]["fmt"] = (
        '%(asctime)s %(levelprefix)s %(message)s - "%(request_line)s" %(status_code)s'
    )
    log_config["formatters"]["access"]["datefmt"] = "%Y-%m-%d %H:%M:%S"
    return log_config
