# File: src/z21_core/protocols/framing.py
"""
Z21 协议层 - 帧编解码 (Frame Codec)

帧结构::

    +-----------------+----------------------------------+
    | DataLen (u16 LE)|             Payload              |
    |    2 bytes      |         DataLen - 2 bytes        |
    +-----------------+----------------------------------+

- DataLen: 整个数据包的字节数，包含 DataLen 字段本身。
- Payload 的首字节决定子协议：0x40 为 LAN_X (嵌套子帧)，
  0x10 / 0x51 / 0x80 为简单 LAN 报文。

本模块是无状态的 (Stateless)，所有函数都是输入字节的纯函数。
"""

import logging
import struct

from ..exceptions import ProtocolError
from ..events import DecodedEvent, ErrorEvent, ErrorCode
from . import constants
from .lan import parse_lan
from .lan_x import parse_lan_x

logger = logging.getLogger(__name__)


def build_frame(payload: bytes) -> bytes:
    """为载荷添加 2 字节小端序长度前缀。

    Args:
        payload: 命令载荷 (Header + 数据)。

    Returns:
        bytes: 可直接发送的完整数据包。

    Raises:
        ProtocolError: 载荷过长，长度字段无法表示。
    """
    length = len(payload) + constants.LENGTH_FIELD_SIZE
    if length > constants.MAX_FRAME_LENGTH:
        raise ProtocolError(f"载荷过长: {len(payload)} 字节")
    return struct.pack("<H", length) + bytes(payload)


def build_x_frame(subframe: bytes) -> bytes:
    """将 LAN_X 子帧 (X-Header + 数据 + XOR) 与固定标记一起封装为数据包。"""
    return build_frame(constants.LAN_X_MARKER + bytes(subframe))


def extract_payload(datagram: bytes) -> bytes:
    """校验长度字段并剥离它，返回载荷。

    Raises:
        ProtocolError: 数据包不足 2 字节，或声明长度大于实际长度。
    """
    if len(datagram) < constants.LENGTH_FIELD_SIZE:
        raise ProtocolError("数据包长度无效")

    (declared,) = struct.unpack_from("<H", datagram, 0)
    if len(datagram) < declared:
        raise ProtocolError("数据包短于声明长度")

    return bytes(datagram[constants.LENGTH_FIELD_SIZE :])


def decode_envelope(datagram: bytes) -> DecodedEvent | None:
    """解码一个 UDP 数据包。

    Args:
        datagram: 原始 UDP 数据。

    Returns:
        DecodedEvent | None: 解码出的事件；数据包非法时返回
        code 为 invalid-payload 的 ErrorEvent；未识别的报文返回 None。
    """
    try:
        data = extract_payload(datagram)
    except ProtocolError as e:
        return ErrorEvent(code=ErrorCode.INVALID_PAYLOAD, message=str(e))

    if not data:
        return None

    header = data[0]
    if header == constants.Header.LAN_X:
        # 去掉 LAN_X 标记 (0x40 0x00)，剩余部分即子帧
        return parse_lan_x(data[constants.LAN_HEADER_SIZE :])

    if header in constants.Header.SIMPLE:
        return parse_lan(header, data[constants.LAN_HEADER_SIZE :])

    logger.debug(f"忽略未识别的报文头: 0x{header:02x}")
    return None
