# File: src/z21_core/utils.py
"""
Z21 核心库 - 通用算法工具箱

本模块汇集了 Z21 协议中通用的校验与位运算辅助函数。
解析器和命令构建器都通过这些具名函数访问位字段，
避免在协议代码里散落魔法数字。
"""


def xor_checksum(data: bytes) -> int:
    """计算 LAN_X 子帧的 XOR 校验字节。

    算法逻辑: 从 X-Header 开始，对之后的每个字节依次异或。

    Args:
        data: 需要计算校验的字节流 (不含校验字节本身)。

    Returns:
        int: 1 字节的校验值 (0-255)。
    """
    ret = 0
    for byte in data:
        ret ^= byte
    return ret


def append_xor(data: bytes) -> bytes:
    """在字节流末尾追加 XOR 校验字节。"""
    return bytes(data) + bytes([xor_checksum(data)])


def is_bit_set(value: int, bit: int) -> bool:
    """判断 value 的第 bit 位 (从 0 开始) 是否为 1。"""
    return (value >> bit) & 1 == 1


def low_bits(value: int, count: int) -> int:
    """取 value 的低 count 位。"""
    return value & ((1 << count) - 1)


def split_address14(address: int) -> tuple[int, int]:
    """将 14 位地址拆分为 (高 6 位, 低 8 位)。

    机车地址和道岔信息中的地址都使用这种编码。
    """
    return (address >> 8) & 0x3F, address & 0xFF


def join_address14(msb: int, lsb: int) -> int:
    """从 (高字节, 低字节) 还原 14 位地址，高字节只取低 6 位。"""
    return (low_bits(msb, 6) << 8) | lsb


def split_address16(address: int) -> tuple[int, int]:
    """将 16 位地址按大端序拆分为 (MSB, LSB)。"""
    return (address >> 8) & 0xFF, address & 0xFF
