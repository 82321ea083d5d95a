# src/z21_core/__init__.py
"""
Z21-Core v1.0.0
基于 asyncio 的 Z21 数字模型铁路中心站 UDP 客户端库。
"""

# 暴露核心配置
from .config import (
    Z21Config,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露客户端与状态
from .core import Z21Client
from .correlator import RequestCorrelator

# 暴露事件模型
from .events import (
    AccessoryInfoEvent,
    BroadcastFlagsEvent,
    CommandStationStatus,
    CvResultEvent,
    DecodedEvent,
    Direction,
    EngineInfoEvent,
    ErrorCode,
    ErrorEvent,
    EventChannel,
    FeedbackEvent,
    FeedbackModule,
    ProgrammingModeEvent,
    SerialNumberEvent,
    ShortCircuitEvent,
    StatusEvent,
    TrackPowerEvent,
    TurnoutPosition,
    UnknownBroadcastEvent,
)

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    CommandTimeoutError,
    ConfigError,
    NackCode,
    NackError,
    NetworkError,
    ProtocolError,
    ValidationError,
    Z21Error,
)
from .protocols.engine import FunctionState
from .state import ClientStatus, Z21State

__version__ = "1.0.0"

__all__ = [
    "Z21Client",
    "Z21Config",
    "Z21State",
    "ClientStatus",
    "RequestCorrelator",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "EventChannel",
    "DecodedEvent",
    "ErrorEvent",
    "ErrorCode",
    "SerialNumberEvent",
    "BroadcastFlagsEvent",
    "StatusEvent",
    "CommandStationStatus",
    "TrackPowerEvent",
    "ProgrammingModeEvent",
    "ShortCircuitEvent",
    "UnknownBroadcastEvent",
    "AccessoryInfoEvent",
    "TurnoutPosition",
    "EngineInfoEvent",
    "Direction",
    "CvResultEvent",
    "FeedbackEvent",
    "FeedbackModule",
    "FunctionState",
    "Z21Error",
    "ConfigError",
    "NetworkError",
    "ProtocolError",
    "ValidationError",
    "CommandTimeoutError",
    "NackError",
    "NackCode",
]
