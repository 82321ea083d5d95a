# File: src/z21_core/protocols/accessory.py
"""
Z21 协议层 - 道岔命令 (Accessory)
"""

from ..utils import append_xor, split_address16
from . import constants


def build_switch_turnout(
    address: int,
    output: bool = False,
    activate: bool = True,
    queue: bool = False,
) -> bytes:
    """构建 LAN_X_SET_TURNOUT 子帧。

    结构: 0x53 <FAdr_MSB> <FAdr_LSB> <10Q0A00P> <XOR>

    Args:
        address: 道岔地址 (从 1 开始)，线路上转换为从 0 开始。
        output: False 为输出 1，True 为输出 2 (P 位)。
        activate: True 为激活，False 为释放 (A 位)。
        queue: True 时指令进入队列，不立即执行 (Q 位)。

    Returns:
        bytes: 子帧。
    """
    msb, lsb = split_address16(address - 1)

    db2 = constants.TurnoutBits.BASE
    if queue:
        db2 |= constants.TurnoutBits.QUEUE
    if activate:
        db2 |= constants.TurnoutBits.ACTIVATE
    if output:
        db2 |= constants.TurnoutBits.OUTPUT_2

    return append_xor(bytes([constants.XHeader.SET_TURNOUT, msb, lsb, db2]))
