"""运行时属性文件

解析 pairgoth.properties（java.util.Properties 文本格式），并把条目分派为：

- ``logger.`` 前缀：作为 API 应用的初始化参数（日志门面配置）
- 其它键：放入 ``pairgoth.`` 命名空间下的运行时配置
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from loguru import logger

from pairgoth_container.exceptions import ConfigurationError, PropertiesFormatError

LOGGER_KEY_PREFIX = "logger."
LOGGER_INIT_PARAM_PREFIX = "webapp-slf4j-logger."
PROPERTY_NAMESPACE = "pairgoth."

RuntimeProperties = dict[str, str]

_COMMENT_CHARS = "#!"
_SEPARATORS = "=:"
_WHITESPACE = " \t\f"
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _logical_lines(text: str) -> Iterator[tuple[int, str]]:
    """按续行规则合并物理行，产出 (起始行号, 逻辑行)"""
    pending: list[str] = []
    start = 0
    for number, raw in enumerate(_LINE_BREAK.split(text), start=1):
        line = raw.lstrip(_WHITESPACE) if pending else raw
        if not pending:
            stripped = line.lstrip(_WHITESPACE)
            if not stripped or stripped[0] in _COMMENT_CHARS:
                continue
            line = stripped
            start = number

        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending.append(line[:-1])
            continue

        pending.append(line)
        yield start, "".join(pending)
        pending = []

    # 文件末尾的续行符不再等待下一行
    if pending:
        yield start, "".join(pending)


def _unescape(text: str, line: int, path: str | None) -> str:
    chars: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "\\":
            chars.append(ch)
            i += 1
            continue
        i += 1
        if i >= len(text):
            break
        ch = text[i]
        if ch == "u":
            digits = text[i + 1 : i + 5]
            if len(digits) != 4 or any(c not in "0123456789abcdefABCDEF" for c in digits):
                raise PropertiesFormatError("非法的 \\uxxxx 转义", path=path, line=line)
            chars.append(chr(int(digits, 16)))
            i += 5
            continue
        chars.append(_ESCAPES.get(ch, ch))
        i += 1
    return "".join(chars)


def _split_entry(line: str) -> tuple[str, str]:
    """在第一个未转义的分隔符处拆分键和值（均未反转义）"""
    key_end = len(line)
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch in _SEPARATORS or ch in _WHITESPACE:
            key_end = i
            break
        i += 1

    rest = line[key_end:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return line[:key_end], rest


def parse_properties(text: str, path: str | None = None) -> RuntimeProperties:
    """解析属性文本，后出现的同名键覆盖先前的值

    Raises:
        PropertiesFormatError: 存在非法转义
    """
    entries: RuntimeProperties = {}
    for line_number, line in _logical_lines(text):
        raw_key, raw_value = _split_entry(line)
        key = _unescape(raw_key, line_number, path)
        entries[key] = _unescape(raw_value, line_number, path)
    return entries


def load_properties(path: Path) -> RuntimeProperties:
    """读取并解析属性文件

    Raises:
        ConfigurationError: 文件不可读或不是合法 UTF-8
        PropertiesFormatError: 文件内容格式错误
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"无法读取属性文件 {path}: {e}") from e
    return parse_properties(text, path=str(path))


@dataclass(frozen=True)
class RuntimeConfig:
    """启动时构建一次的运行时配置，启动后只读"""

    properties: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    api_init_params: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def get_property(self, name: str, default: str | None = None) -> str | None:
        """按不带命名空间的名称读取属性，如 ``auth`` 读取 ``pairgoth.auth``"""
        return self.properties.get(PROPERTY_NAMESPACE + name, default)

    @classmethod
    def from_properties(cls, entries: Mapping[str, str]) -> "RuntimeConfig":
        properties: dict[str, str] = {}
        init_params: dict[str, str] = {}
        for key, value in entries.items():
            if key.startswith(LOGGER_KEY_PREFIX):
                init_params[LOGGER_INIT_PARAM_PREFIX + key[len(LOGGER_KEY_PREFIX):]] = value
            else:
                properties[PROPERTY_NAMESPACE + key] = value
        return cls(
            properties=MappingProxyType(properties),
            api_init_params=MappingProxyType(init_params),
        )


def resolve_properties_overrides(path: Path) -> RuntimeConfig:
    """读取可选的属性文件并构建运行时配置；文件不存在时返回空配置"""
    if not path.exists():
        logger.debug(f"未找到属性文件 {path}，使用默认配置")
        return RuntimeConfig()

    entries = load_properties(path)
    runtime = RuntimeConfig.from_properties(entries)
    logger.info(
        f"已加载属性文件 {path}: {len(runtime.properties)} 项配置, "
        f"{len(runtime.api_init_params)} 项日志参数"
    )
    return runtime
