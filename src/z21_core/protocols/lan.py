# File: src/z21_core/protocols/lan.py
"""
Z21 协议层 - 简单 LAN 报文解析 (Simple Decoder)

处理非嵌套的扁平报文：序列号、广播标志位、R-Bus 反馈。
载荷为 LAN 头部 (2 字节) 之后的数据。

注意: 旧版本中存在两个不一致的解析器实现，其中一个缺少
R-Bus 反馈 (0x80) 的解析。这里实现的是两者的并集。
"""

import logging
import struct

from ..events import (
    BroadcastFlagsEvent,
    DecodedEvent,
    FeedbackEvent,
    FeedbackModule,
    SerialNumberEvent,
)
from ..utils import is_bit_set
from . import constants

logger = logging.getLogger(__name__)


def parse_lan(opcode: int, payload: bytes) -> DecodedEvent | None:
    """按操作码分发简单 LAN 报文。

    Args:
        opcode: LAN 头部 (0x10 / 0x51 / 0x80)。
        payload: 头部之后的数据。

    Returns:
        DecodedEvent | None: 解析结果；长度不符或操作码未知时返回 None。
    """
    if opcode == constants.Header.LAN_GET_SERIAL_NUMBER:
        return parse_serial_number(payload)
    if opcode == constants.Header.LAN_GET_BROADCAST_FLAGS:
        return parse_broadcast_flags(payload)
    if opcode == constants.Header.LAN_RMBUS_DATACHANGED:
        return parse_feedback(payload)
    return None


def parse_serial_number(payload: bytes) -> SerialNumberEvent | None:
    """解析 LAN_GET_SERIAL_NUMBER 响应 (4 字节 u32 LE)。"""
    if len(payload) != 4:
        logger.warning(f"序列号响应长度错误: {len(payload)} 字节 (应为 4)")
        return None

    (serial,) = struct.unpack("<I", payload)
    return SerialNumberEvent(serial_number=serial)


def parse_broadcast_flags(payload: bytes) -> BroadcastFlagsEvent | None:
    """解析 LAN_GET_BROADCAST_FLAGS 响应 (至少 4 字节 u32 LE)。"""
    if len(payload) < 4:
        logger.warning(f"广播标志位响应过短: {len(payload)} 字节")
        return None

    (flags,) = struct.unpack_from("<I", payload, 0)
    return BroadcastFlagsEvent(
        raw=flags,
        engine=is_bit_set(flags, constants.BroadcastFlag.ENGINE_BIT),
        accessory=is_bit_set(flags, constants.BroadcastFlag.ACCESSORY_BIT),
        feedback=is_bit_set(flags, constants.BroadcastFlag.FEEDBACK_BIT),
    )


def parse_feedback(payload: bytes) -> FeedbackEvent | None:
    """解析 LAN_RMBUS_DATACHANGED。

    结构: [GroupIndex (1B)] + [10 个模块的状态字节]
    模块地址 = GroupIndex * 10 + i + 1，每个置位的 bit b 对应输入 b + 1。
    状态全 0 的模块不会出现在结果中。
    """
    if len(payload) < constants.FEEDBACK_PAYLOAD_LEN:
        logger.warning(f"R-Bus 反馈数据过短: {len(payload)} 字节")
        return None

    group_index = payload[0]
    status_bytes = payload[1 : constants.FEEDBACK_PAYLOAD_LEN]

    modules = []
    for i, status in enumerate(status_bytes):
        if not status:
            continue
        address = group_index * constants.FEEDBACK_MODULES_PER_GROUP + i + 1
        active = tuple(bit + 1 for bit in range(8) if is_bit_set(status, bit))
        modules.append(FeedbackModule(address=address, active_inputs=active))

    return FeedbackEvent(modules=tuple(modules))
