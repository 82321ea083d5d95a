"""
Z21 核心库 - 配置模块

负责配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量 (可选 .env 文件) 或字典中加载配置。
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 21105
DEFAULT_CV_TIMEOUT = 30.0


@dataclass(frozen=True)
class Z21Config:
    """Z21Client 的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        host: Z21 中心站 IP 地址或主机名。
        port: Z21 UDP 端口 (通常为 21105)。
        bind_ip: 本地绑定 IP (通常为 0.0.0.0)。
        bind_port: 本地绑定端口，0 表示由系统分配。
        cv_timeout: CV 读写等待应答的超时秒数。
        logout_delay: 发送注销包后等待的秒数。
        queue_size: 接收队列的最大长度。
    """

    host: str
    port: int = DEFAULT_PORT
    bind_ip: str = "0.0.0.0"
    bind_port: int = 0
    cv_timeout: float = DEFAULT_CV_TIMEOUT
    logout_delay: float = 0.5
    queue_size: int = 128

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} "
            f"target={self.host}:{self.port}, "
            f"bind={self.bind_ip}:{self.bind_port}, "
            f"cv_timeout={self.cv_timeout}>"
        )


def create_config_from_dict(raw_data: dict[str, Any]) -> Z21Config:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。

    Args:
        raw_data: 原始配置字典 (来自 TOML 或 Env)。

    Returns:
        Z21Config: 验证并转换后的配置对象。

    Raises:
        ConfigError: 当必要字段缺失或格式错误时抛出。
    """

    def _req(key: str) -> Any:
        """获取必要字段，缺失则报错"""
        if key not in raw_data or raw_data[key] in (None, ""):
            raise ConfigError(f"配置缺失: 缺少必要字段 '{key}'")
        return raw_data[key]

    def _to_port(key: str, default: int) -> int:
        val = raw_data.get(key, default)
        try:
            port = int(val)
        except (TypeError, ValueError):
            raise ConfigError(f"端口格式无效 '{key}': {val}") from None
        if not 0 <= port <= 0xFFFF:
            raise ConfigError(f"端口超出范围 '{key}': {port}")
        return port

    def _to_seconds(key: str, default: float) -> float:
        val = raw_data.get(key, default)
        try:
            seconds = float(val)
        except (TypeError, ValueError):
            raise ConfigError(f"时间格式无效 '{key}': {val}") from None
        if seconds < 0:
            raise ConfigError(f"时间不能为负数 '{key}': {seconds}")
        return seconds

    def _to_positive_int(key: str, default: int) -> int:
        val = raw_data.get(key, default)
        try:
            num = int(val)
        except (TypeError, ValueError):
            raise ConfigError(f"整数格式无效 '{key}': {val}") from None
        if num <= 0:
            raise ConfigError(f"'{key}' 必须为正整数: {num}")
        return num

    return Z21Config(
        host=str(_req("host")),
        port=_to_port("port", DEFAULT_PORT),
        bind_ip=str(raw_data.get("bind_ip", "0.0.0.0")),
        bind_port=_to_port("bind_port", 0),
        cv_timeout=_to_seconds("cv_timeout", DEFAULT_CV_TIMEOUT),
        logout_delay=_to_seconds("logout_delay", 0.5),
        queue_size=_to_positive_int("queue_size", 128),
    )


def load_config_from_toml(file_path: Path, profile: str = "default") -> Z21Config:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [z21]: 单设备配置块。
    3. Root: 根目录直接配置。

    Args:
        file_path: TOML 文件路径。
        profile: 配置预设名。默认为 "default"。

    Returns:
        Z21Config: 配置对象。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    if "profile" in data:
        if profile not in data["profile"]:
            raise ConfigError(f"未找到预设: [profile.{profile}]")
        raw_config = data["profile"][profile]
    elif "z21" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [z21] 节，忽略 profile='{profile}'。")
        raw_config = data["z21"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


def load_config_from_env(env_file: Path | None = None) -> Z21Config:
    """从环境变量加载配置。

    自动读取所有以 `Z21_` 开头的环境变量，并映射到配置字段。
    例如: `Z21_HOST` -> `host`。
    如果提供了 env_file，会先通过 python-dotenv 将其载入环境变量
    (不覆盖已存在的变量)。

    Args:
        env_file: 可选的 .env 文件路径。

    Returns:
        Z21Config: 配置对象。

    Raises:
        ConfigError: .env 文件不存在，或未检测到任何相关环境变量。
    """
    if env_file is not None:
        if not env_file.exists():
            raise ConfigError(f".env 文件未找到: {env_file}")
        load_dotenv(dotenv_path=env_file, override=False)
        logger.debug(f"已加载 .env 文件: {env_file}")

    env_map = {
        "host": "HOST",
        "port": "PORT",
        "bind_ip": "BIND_IP",
        "bind_port": "BIND_PORT",
        "cv_timeout": "CV_TIMEOUT",
        "logout_delay": "LOGOUT_DELAY",
        "queue_size": "QUEUE_SIZE",
    }

    raw_data = {}
    for cfg_key, env_suffix in env_map.items():
        val = os.environ.get(f"Z21_{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val

    if not raw_data:
        raise ConfigError("未检测到 Z21_ 前缀的环境变量")

    return create_config_from_dict(raw_data)
