# src/z21_core/protocols/constants.py
"""
Z21 协议层 - 常量定义

本模块定义了所有协议相关的魔法数字、偏移量和固定值。
采用命名空间 (Class Namespace) 组织，不使用扁平全局变量。
"""

# =========================================================================
# 1. 数据包头部 (Header)
# =========================================================================


class Header:
    """LAN 数据包头部 (DataLen 之后的 2 字节，小端序)。"""

    LAN_GET_SERIAL_NUMBER = 0x10
    LAN_LOGOFF = 0x30
    LAN_X = 0x40
    LAN_SET_BROADCAST_FLAGS = 0x50
    LAN_GET_BROADCAST_FLAGS = 0x51
    LAN_RMBUS_DATACHANGED = 0x80

    # 由简单解码器处理的头部
    SIMPLE = (LAN_GET_SERIAL_NUMBER, LAN_GET_BROADCAST_FLAGS, LAN_RMBUS_DATACHANGED)


# 长度字段 (2 字节, 小端序)
LENGTH_FIELD_SIZE = 2
MAX_FRAME_LENGTH = 0xFFFF

# LAN 头部长度 (Header 本身是 16 位)
LAN_HEADER_SIZE = 2

# LAN_X 标记
LAN_X_MARKER = b"\x40\x00"


# =========================================================================
# 2. LAN_X 操作码 (X-Header)
# =========================================================================


class XHeader:
    """LAN_X 子帧的第一个字节。"""

    # 客户端 -> Z21
    SYSTEM = 0x21  # 状态查询 / 轨道电源
    SET_STOP = 0x80
    CV_READ = 0x23
    CV_WRITE = 0x24
    SET_TURNOUT = 0x53
    GET_LOCO_INFO = 0xE3
    SET_LOCO = 0xE4

    # Z21 -> 客户端
    BROADCAST = 0x61
    STATUS_CHANGED = 0x62
    CV_RESULT = 0x64
    TURNOUT_INFO = 0x43
    LOCO_INFO = 0xEF


class XDb0:
    """LAN_X 子帧第二个字节 (DB0) 的子类型。"""

    GET_STATUS = 0x24
    TRACK_POWER_OFF = 0x80
    TRACK_POWER_ON = 0x81
    STATUS_CHANGED = 0x22
    CV_RESULT = 0x14
    CV_READ = 0x11
    CV_WRITE = 0x12
    GET_LOCO_INFO = 0xF0
    SET_LOCO_FUNCTION = 0xF8


# =========================================================================
# 3. 广播代码 (LAN_X_BC, 0x61 之后的字节)
# =========================================================================


class BroadcastCode:
    TRACK_POWER_OFF = 0x00
    TRACK_POWER_ON = 0x01
    PROGRAMMING_MODE = 0x02
    TRACK_SHORT_CIRCUIT = 0x08
    CV_NACK_SC = 0x12
    CV_NACK = 0x13


# =========================================================================
# 4. 中心站状态位 (LAN_X_STATUS_CHANGED)
# =========================================================================


class CentralState:
    EMERGENCY_STOP = 0x01
    TRACK_VOLTAGE_OFF = 0x02
    SHORT_CIRCUIT = 0x04
    PROGRAMMING_MODE_ACTIVE = 0x20


# =========================================================================
# 5. 广播标志位 (Broadcast Flags)
# =========================================================================


class BroadcastFlag:
    ENGINE_BIT = 0
    ACCESSORY_BIT = 1
    FEEDBACK_BIT = 2


# =========================================================================
# 6. 驾驶 / 功能 / 道岔
# =========================================================================


class SpeedStepMode:
    """LAN_X_SET_LOCO_DRIVE 的 DB0 (速度档位)。"""

    DCC14 = 0x10
    DCC28 = 0x12
    DCC128 = 0x13


# LAN_X_LOCO_INFO 中 DB2 低 3 位 (KKK) -> 速度档位
LOCO_INFO_SPEED_STEPS = {0: 14, 2: 28, 4: 128}


class FunctionStateBits:
    """LAN_X_SET_LOCO_FUNCTION 中的 TT 字段。"""

    OFF = 0x00
    ON = 0x40
    TOGGLE = 0x80


# 可设置的功能号范围 (闭区间)
FUNCTION_MIN = 0
FUNCTION_MAX = 28

# 机车地址 >= 此值时，高字节的最高两位置 1 (长地址)
LONG_ADDRESS_THRESHOLD = 128
LONG_ADDRESS_FLAG = 0xC0


class TurnoutBits:
    """LAN_X_SET_TURNOUT 的 DB2: 10Q0A00P。"""

    BASE = 0x80
    QUEUE = 0x20
    ACTIVATE = 0x08
    OUTPUT_2 = 0x01


# =========================================================================
# 7. 编程 (CV)
# =========================================================================

CV_MIN = 1
CV_MAX = 1024
CV_VALUE_MAX = 0xFF

# =========================================================================
# 8. 反馈模块 (R-Bus)
# =========================================================================

FEEDBACK_MODULES_PER_GROUP = 10
FEEDBACK_PAYLOAD_LEN = 1 + FEEDBACK_MODULES_PER_GROUP
