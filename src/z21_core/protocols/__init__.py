# src/z21_core/protocols/__init__.py
"""
Z21 协议层 (Protocol Layer)

本包负责协议数据包的纯粹构建 (Build) 与解析 (Parse)。

- 不包含任何 socket 操作或网络 I/O。
- 不包含任何状态管理 (State)。
- 不依赖于 core 或 network 层。
"""

from . import constants
from .accessory import build_switch_turnout
from .engine import (
    FunctionState,
    build_drive,
    build_get_engine_info,
    build_set_function,
    validate_function,
)
from .framing import build_frame, build_x_frame, decode_envelope, extract_payload
from .lan import parse_lan
from .lan_x import parse_lan_x
from .programming import build_cv_read, build_cv_write
from .system import (
    build_emergency_stop,
    build_get_broadcast_flags,
    build_get_serial_number,
    build_get_status,
    build_logout,
    build_set_broadcast_flags,
    build_track_power_off,
    build_track_power_on,
)

# 公共 API
__all__ = [
    "constants",
    "FunctionState",
    "build_frame",
    "build_x_frame",
    "extract_payload",
    "decode_envelope",
    "parse_lan",
    "parse_lan_x",
    "build_get_serial_number",
    "build_get_broadcast_flags",
    "build_set_broadcast_flags",
    "build_logout",
    "build_get_status",
    "build_track_power_on",
    "build_track_power_off",
    "build_emergency_stop",
    "build_switch_turnout",
    "build_drive",
    "validate_function",
    "build_set_function",
    "build_get_engine_info",
    "build_cv_read",
    "build_cv_write",
]
