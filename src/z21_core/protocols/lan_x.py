# File: src/z21_core/protocols/lan_x.py
"""
Z21 协议层 - LAN_X 子帧解析 (Extended-Protocol Decoder)

子帧结构: [X-Header][DB0 ... DBn][XOR]

解析对校验宽松：XOR 字节存在于线路数据中，但不做校验。
"""

import logging

from ..events import (
    AccessoryInfoEvent,
    CommandStationStatus,
    CvResultEvent,
    DecodedEvent,
    Direction,
    EngineInfoEvent,
    ErrorCode,
    ErrorEvent,
    ProgrammingModeEvent,
    ShortCircuitEvent,
    StatusEvent,
    TrackPowerEvent,
    TurnoutPosition,
    UnknownBroadcastEvent,
)
from ..utils import is_bit_set, join_address14, low_bits
from . import constants

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    constants.CentralState.EMERGENCY_STOP: CommandStationStatus.EMERGENCY_STOP,
    constants.CentralState.TRACK_VOLTAGE_OFF: CommandStationStatus.TRACK_VOLTAGE_OFF,
    constants.CentralState.SHORT_CIRCUIT: CommandStationStatus.SHORT_CIRCUIT,
    constants.CentralState.PROGRAMMING_MODE_ACTIVE: CommandStationStatus.PROGRAMMING_MODE_ACTIVE,
}

_TURNOUT_POSITIONS = {
    0b00: TurnoutPosition.NOT_SWITCHED,
    0b01: TurnoutPosition.P0,
    0b10: TurnoutPosition.P1,
    0b11: TurnoutPosition.INVALID,
}

# 功能扩展字节: (DB 下标, 起始功能号, 位数)
_FUNCTION_GROUPS = (
    (5, 5, 8),  # F5-F12
    (6, 13, 8),  # F13-F20
    (7, 21, 8),  # F21-F28
    (8, 29, 3),  # F29-F31
)


def parse_lan_x(payload: bytes) -> DecodedEvent | None:
    """按 X-Header 分发 LAN_X 子帧。

    Args:
        payload: LAN_X 标记 (0x40 0x00) 之后的子帧。

    Returns:
        DecodedEvent | None: 解析结果；未识别的操作码或子类型返回 None。
    """
    if not payload:
        return None

    opcode = payload[0]

    if opcode == constants.XHeader.STATUS_CHANGED:
        return parse_status_changed(payload)
    if opcode == constants.XHeader.BROADCAST:
        return parse_broadcast(payload)
    if opcode == constants.XHeader.CV_RESULT:
        return parse_cv_result(payload)
    if opcode == constants.XHeader.TURNOUT_INFO:
        return parse_turnout_info(payload[1:])
    if opcode == constants.XHeader.LOCO_INFO:
        return parse_engine_info(payload[1:])

    logger.warning(f"[LAN_X] 未知操作码: 0x{opcode:02x}")
    return None


def parse_status_changed(payload: bytes) -> StatusEvent | None:
    """LAN_X_STATUS_CHANGED: 0x62 0x22 <CentralState>。"""
    if len(payload) < 3 or payload[1] != constants.XDb0.STATUS_CHANGED:
        return None

    status = _STATUS_MAP.get(payload[2], CommandStationStatus.UNKNOWN)
    return StatusEvent(status=status)


def parse_broadcast(payload: bytes) -> DecodedEvent | None:
    """LAN_X_BC: 0x61 <code>。

    两种 NACK 以 ErrorEvent 的形式上报，这是 CV 读写失败的唯一通知渠道。
    未知的广播代码上报为 UnknownBroadcastEvent，而不是错误。
    """
    if len(payload) < 2:
        logger.warning("[LAN_X] 广播数据过短")
        return None

    code = payload[1]
    if code == constants.BroadcastCode.TRACK_POWER_OFF:
        return TrackPowerEvent(on=False)
    if code == constants.BroadcastCode.TRACK_POWER_ON:
        return TrackPowerEvent(on=True)
    if code == constants.BroadcastCode.PROGRAMMING_MODE:
        return ProgrammingModeEvent(active=True)
    if code == constants.BroadcastCode.TRACK_SHORT_CIRCUIT:
        return ShortCircuitEvent()
    if code == constants.BroadcastCode.CV_NACK:
        return ErrorEvent(code=ErrorCode.NACK, message="CV Read/Write NACK")
    if code == constants.BroadcastCode.CV_NACK_SC:
        return ErrorEvent(
            code=ErrorCode.NACK_SC,
            message="CV Read/Write NACK due to short-circuit",
        )

    logger.warning(f"[LAN_X] 未知广播代码: 0x{code:02x}")
    return UnknownBroadcastEvent(code=code)


def parse_cv_result(payload: bytes) -> CvResultEvent | None:
    """LAN_X_CV_RESULT: 0x64 0x14 <CVAdr_MSB> <CVAdr_LSB> <Value> [XOR]。

    线路上的 CV 地址从 0 开始，对外编号从 1 开始，因此上报时 +1。
    多余的尾部字节被忽略。
    """
    if len(payload) < 5 or payload[1] != constants.XDb0.CV_RESULT:
        return None

    cv_address = (payload[2] << 8) | payload[3]
    return CvResultEvent(cv=cv_address + 1, value=payload[4])


def parse_turnout_info(data: bytes) -> AccessoryInfoEvent | None:
    """LAN_X_TURNOUT_INFO 数据部分: <FAdr_MSB> <FAdr_LSB> <000000ZZ>。

    地址从 0 开始，上报时 +1。
    """
    if len(data) < 3:
        logger.warning("[LAN_X] 道岔信息数据过短")
        return None

    address = join_address14(data[0], data[1]) + 1
    position = _TURNOUT_POSITIONS[low_bits(data[2], 2)]
    return AccessoryInfoEvent(address=address, position=position)


def parse_engine_info(data: bytes) -> EngineInfoEvent | None:
    """LAN_X_LOCO_INFO 数据部分。

    DB0-DB1: 地址 (14 位，原样上报)
    DB2: 0000BKKK  B=busy, KKK=速度档位
    DB3: RVVVVVVV  R=方向 (1 为前进), V=速度
    DB4: 0DSLFGHJ  D=双机牵引, L=F0, F/G/H/J=F4/F3/F2/F1
    DB5-DB8 (可选): F5-F12, F13-F20, F21-F28, F29-F31
    """
    if len(data) < 5:
        logger.warning("[LAN_X] 机车信息数据过短")
        return None

    address = join_address14(data[0], data[1])

    db2 = data[2]
    busy = is_bit_set(db2, 3)
    speed_steps = constants.LOCO_INFO_SPEED_STEPS.get(low_bits(db2, 3))

    db3 = data[3]
    direction = Direction.FORWARD if is_bit_set(db3, 7) else Direction.REVERSE
    speed = low_bits(db3, 7)

    db4 = data[4]
    # 官方协议文档未说明该位，设备可能始终返回 0
    double_traction = is_bit_set(db4, 6)
    functions = {
        "F0": is_bit_set(db4, 4),
        "F1": is_bit_set(db4, 0),
        "F2": is_bit_set(db4, 1),
        "F3": is_bit_set(db4, 2),
        "F4": is_bit_set(db4, 3),
    }

    for index, first, count in _FUNCTION_GROUPS:
        if len(data) <= index:
            break
        for bit in range(count):
            functions[f"F{first + bit}"] = is_bit_set(data[index], bit)

    return EngineInfoEvent(
        address=address,
        busy=busy,
        speed_steps=speed_steps,
        direction=direction,
        speed=speed,
        double_traction=double_traction,
        functions=functions,
    )
