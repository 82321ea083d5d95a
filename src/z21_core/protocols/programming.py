# File: src/z21_core/protocols/programming.py
"""
Z21 协议层 - 编程轨 CV 读写 (Programming)

CV 编号对外从 1 开始，线路上从 0 开始。
"""

from ..exceptions import ValidationError
from ..utils import append_xor, split_address16
from . import constants


def validate_cv(cv: int) -> None:
    if not constants.CV_MIN <= cv <= constants.CV_MAX:
        raise ValidationError(
            f"CV 编号必须在 {constants.CV_MIN}-{constants.CV_MAX} 之间，实际为 {cv}"
        )


def build_cv_read(cv: int) -> bytes:
    """构建 LAN_X_CV_READ 子帧 (直接模式)。

    结构: 0x23 0x11 <CVAdr_MSB> <CVAdr_LSB> <XOR>

    Raises:
        ValidationError: CV 编号越界。
    """
    validate_cv(cv)
    msb, lsb = split_address16(cv - 1)
    return append_xor(bytes([constants.XHeader.CV_READ, constants.XDb0.CV_READ, msb, lsb]))


def build_cv_write(cv: int, value: int) -> bytes:
    """构建 LAN_X_CV_WRITE 子帧 (直接模式)。

    结构: 0x24 0x12 <CVAdr_MSB> <CVAdr_LSB> <Value> <XOR>

    Raises:
        ValidationError: CV 编号或写入值越界。
    """
    validate_cv(cv)
    if not 0 <= value <= constants.CV_VALUE_MAX:
        raise ValidationError(f"CV 值必须在 0-255 之间，实际为 {value}")

    msb, lsb = split_address16(cv - 1)
    return append_xor(
        bytes([constants.XHeader.CV_WRITE, constants.XDb0.CV_WRITE, msb, lsb, value])
    )
