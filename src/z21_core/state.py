# File: src/z21_core/state.py
"""
Z21 核心库 - 状态模块

存储客户端在当前进程内观察到的易变状态。
本模块不包含业务逻辑，仅作为数据容器；不做任何持久化。
"""

from dataclasses import dataclass
from enum import Enum, auto

from .events import BroadcastFlagsEvent, CommandStationStatus


class ClientStatus(Enum):
    """客户端的生命周期状态枚举。

    状态流转示意:
    IDLE -> CONNECTED -> CLOSED
               |
               v
             ERROR
    """

    IDLE = auto()
    """初始状态，客户端已实例化但 Socket 尚未建立。"""

    CONNECTED = auto()
    """Socket 已建立，接收任务正在运行。"""

    CLOSED = auto()
    """已注销并关闭 Socket。"""

    ERROR = auto()
    """传输层发生错误 (如端口绑定失败、Socket 异常)。"""


@dataclass
class Z21State:
    """存储从设备广播中观察到的最新状态。

    Attributes:
        status: 客户端生命周期状态。
        last_error: 最近一次错误描述。
        serial_number: 最近一次收到的序列号。
        broadcast_flags: 最近一次收到的广播标志位。
        track_power: 轨道电源状态，None 表示尚未收到广播。
        central_status: 最近一次收到的中心站状态。
    """

    status: ClientStatus = ClientStatus.IDLE
    last_error: str = ""

    serial_number: int | None = None
    broadcast_flags: BroadcastFlagsEvent | None = None
    track_power: bool | None = None
    central_status: CommandStationStatus | None = None

    @property
    def is_connected(self) -> bool:
        return self.status == ClientStatus.CONNECTED
