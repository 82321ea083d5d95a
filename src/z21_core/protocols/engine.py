# File: src/z21_core/protocols/engine.py
"""
Z21 协议层 - 机车命令 (Engine)

包含驾驶、功能设置和机车信息查询。
功能设置分为两个阶段：先 validate_function 校验参数，
校验通过后才构建字节，保证非法输入不会产生任何网络 I/O。
"""

from enum import Enum

from ..exceptions import ValidationError
from ..utils import append_xor, split_address14
from . import constants


class FunctionState(Enum):
    ON = "on"
    OFF = "off"
    TOGGLE = "toggle"


_FUNCTION_STATE_BITS = {
    FunctionState.ON: constants.FunctionStateBits.ON,
    FunctionState.OFF: constants.FunctionStateBits.OFF,
    FunctionState.TOGGLE: constants.FunctionStateBits.TOGGLE,
}

_SPEED_STEP_MODES = {
    14: constants.SpeedStepMode.DCC14,
    28: constants.SpeedStepMode.DCC28,
    128: constants.SpeedStepMode.DCC128,
}


def build_drive(
    address: int, speed: int, forward: bool, speed_steps: int = 128
) -> bytes:
    """构建 LAN_X_SET_LOCO_DRIVE 子帧。

    结构: 0xE4 <Steps> <Adr_MSB> <Adr_LSB> <RVVVVVVV> <XOR>

    Args:
        address: 机车地址 (14 位)。
        speed: 速度 (0-127)，只取低 7 位。
        forward: True 为前进 (R 位)。
        speed_steps: 速度档位 14 / 28 / 128，其他值按 128 处理。
    """
    msb, lsb = split_address14(address)
    steps = _SPEED_STEP_MODES.get(speed_steps, constants.SpeedStepMode.DCC128)
    speed_byte = (0x80 if forward else 0x00) | (speed & 0x7F)

    return append_xor(bytes([constants.XHeader.SET_LOCO, steps, msb, lsb, speed_byte]))


def validate_function(function_number: int, state: str | FunctionState) -> FunctionState:
    """校验功能号与功能状态。

    Args:
        function_number: 功能号 (0-28)。
        state: "on" / "off" / "toggle" 或 FunctionState。

    Returns:
        FunctionState: 规范化后的状态。

    Raises:
        ValidationError: 功能号越界或状态非法。
    """
    if not constants.FUNCTION_MIN <= function_number <= constants.FUNCTION_MAX:
        raise ValidationError(
            f"功能号必须在 {constants.FUNCTION_MIN}-{constants.FUNCTION_MAX} 之间，"
            f"实际为 {function_number}"
        )
    try:
        return FunctionState(state)
    except ValueError:
        raise ValidationError(
            f"功能状态必须是 \"on\"、\"off\" 或 \"toggle\"，实际为 {state!r}"
        ) from None


def build_set_function(
    address: int, function_number: int, state: str | FunctionState
) -> bytes:
    """构建 LAN_X_SET_LOCO_FUNCTION 子帧。

    结构: 0xE4 0xF8 <Adr_MSB> <Adr_LSB> <TT + 功能位> <XOR>
    TT: on=0x40, off=0x00, toggle=0x80。
    功能位为 1 << (功能号 - 1)，截断到 1 字节；F0 不设置功能位。

    Raises:
        ValidationError: 参数校验失败，此时不会构建任何字节。
    """
    fn_state = validate_function(function_number, state)

    msb, lsb = split_address14(address)
    function_byte = _FUNCTION_STATE_BITS[fn_state]
    if function_number > 0:
        function_byte |= (1 << (function_number - 1)) & 0xFF

    return append_xor(
        bytes(
            [
                constants.XHeader.SET_LOCO,
                constants.XDb0.SET_LOCO_FUNCTION,
                msb,
                lsb,
                function_byte,
            ]
        )
    )


def build_get_engine_info(address: int) -> bytes:
    """构建 LAN_X_GET_LOCO_INFO 子帧。

    结构: 0xE3 0xF0 <Adr_MSB> <Adr_LSB> <XOR>
    地址 >= 128 时，Adr_MSB 的最高两位强制置 1 (长地址标记)。
    """
    msb, lsb = split_address14(address)
    if address >= constants.LONG_ADDRESS_THRESHOLD:
        msb |= constants.LONG_ADDRESS_FLAG

    return append_xor(
        bytes([constants.XHeader.GET_LOCO_INFO, constants.XDb0.GET_LOCO_INFO, msb, lsb])
    )
