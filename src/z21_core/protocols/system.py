# File: src/z21_core/protocols/system.py
"""
Z21 协议层 - 系统命令 (System)

LAN 命令返回完整的 LAN 载荷 (Header + 数据)，由 build_frame 封装；
LAN_X 命令返回子帧 (X-Header + 数据 + XOR)，由 build_x_frame 封装。
"""

import struct

from ..utils import append_xor
from . import constants

# =========================================================================
# LAN 命令
# =========================================================================


def _lan_header(header: int) -> bytes:
    return struct.pack("<H", header)


def build_get_serial_number() -> bytes:
    """LAN_GET_SERIAL_NUMBER: 10 00"""
    return _lan_header(constants.Header.LAN_GET_SERIAL_NUMBER)


def build_get_broadcast_flags() -> bytes:
    """LAN_GET_BROADCASTFLAGS: 51 00"""
    return _lan_header(constants.Header.LAN_GET_BROADCAST_FLAGS)


def build_set_broadcast_flags(
    engine: bool = True, accessory: bool = True, feedback: bool = True
) -> bytes:
    """LAN_SET_BROADCASTFLAGS: 50 00 + 32 位小端序标志字。

    Args:
        engine: 订阅机车信息广播 (bit 0)。
        accessory: 订阅道岔信息广播 (bit 1)。
        feedback: 订阅 R-Bus 反馈广播 (bit 2)。
    """
    flags = 0
    if engine:
        flags |= 1 << constants.BroadcastFlag.ENGINE_BIT
    if accessory:
        flags |= 1 << constants.BroadcastFlag.ACCESSORY_BIT
    if feedback:
        flags |= 1 << constants.BroadcastFlag.FEEDBACK_BIT
    return _lan_header(constants.Header.LAN_SET_BROADCAST_FLAGS) + struct.pack(
        "<I", flags
    )


def build_logout() -> bytes:
    """LAN_LOGOFF: 30 00"""
    return _lan_header(constants.Header.LAN_LOGOFF)


# =========================================================================
# LAN_X 命令 (子帧)
# =========================================================================


def build_get_status() -> bytes:
    """LAN_X_GET_STATUS: 21 24 05"""
    return append_xor(bytes([constants.XHeader.SYSTEM, constants.XDb0.GET_STATUS]))


def build_track_power_on() -> bytes:
    """LAN_X_SET_TRACK_POWER_ON: 21 81 A0"""
    return append_xor(
        bytes([constants.XHeader.SYSTEM, constants.XDb0.TRACK_POWER_ON])
    )


def build_track_power_off() -> bytes:
    """LAN_X_SET_TRACK_POWER_OFF: 21 80 A1"""
    return append_xor(
        bytes([constants.XHeader.SYSTEM, constants.XDb0.TRACK_POWER_OFF])
    )


def build_emergency_stop() -> bytes:
    """LAN_X_SET_STOP: 80 80"""
    return append_xor(bytes([constants.XHeader.SET_STOP]))
