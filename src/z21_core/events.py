# File: src/z21_core/events.py
"""
Z21 核心库 - 事件模块 (Events)

1. 解码事件 (Decoded Event)：解析器的唯一输出类型，也是订阅者唯一接收的类型。
   每个变体只携带对该类事件有意义的字段。
2. 事件通道 (EventChannel)：显式的发布/订阅对象，按引用传递给
   需要发布或订阅的组件，而不是通过基类继承获得广播能力。
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

logger = logging.getLogger(__name__)


# =========================================================================
# 枚举 (Enums)
# =========================================================================


class ErrorCode(Enum):
    """ErrorEvent 的错误代码。"""

    INVALID_PAYLOAD = "invalid-payload"
    NACK = "nack"
    NACK_SC = "nack-sc"


class CommandStationStatus(Enum):
    """中心站状态 (LAN_X_STATUS_CHANGED)。"""

    EMERGENCY_STOP = "Emergency Stop Activated"
    TRACK_VOLTAGE_OFF = "Track Voltage Off"
    SHORT_CIRCUIT = "Short Circuit"
    PROGRAMMING_MODE_ACTIVE = "Programming Mode Active"
    UNKNOWN = "Unknown Status"


class TurnoutPosition(Enum):
    """道岔位置 (LAN_X_TURNOUT_INFO 的低 2 位)。"""

    NOT_SWITCHED = "not_switched"
    P0 = "P0"
    P1 = "P1"
    INVALID = "invalid"


class Direction(Enum):
    """机车行驶方向。"""

    FORWARD = "forward"
    REVERSE = "reverse"


# =========================================================================
# 解码事件 (Decoded Events)
# =========================================================================


@dataclass(frozen=True)
class ErrorEvent:
    """错误事件：非法数据包或 CV 读写 NACK。"""

    code: ErrorCode
    message: str

    @property
    def is_nack(self) -> bool:
        return self.code in (ErrorCode.NACK, ErrorCode.NACK_SC)


@dataclass(frozen=True)
class SerialNumberEvent:
    serial_number: int


@dataclass(frozen=True)
class BroadcastFlagsEvent:
    """广播标志位。raw 为原始 32 位值，其余字段取自 bit 0/1/2。"""

    raw: int
    engine: bool
    accessory: bool
    feedback: bool


@dataclass(frozen=True)
class StatusEvent:
    status: CommandStationStatus


@dataclass(frozen=True)
class TrackPowerEvent:
    on: bool


@dataclass(frozen=True)
class ProgrammingModeEvent:
    active: bool


@dataclass(frozen=True)
class ShortCircuitEvent:
    """轨道短路广播，不携带任何字段。"""


@dataclass(frozen=True)
class UnknownBroadcastEvent:
    """未识别的 LAN_X_BC 广播，保留原始代码以便向前兼容。"""

    code: int


@dataclass(frozen=True)
class AccessoryInfoEvent:
    address: int
    position: TurnoutPosition


@dataclass(frozen=True)
class EngineInfoEvent:
    """机车信息 (LAN_X_LOCO_INFO)。

    Attributes:
        address: 机车地址 (原样上报，不做 +1 偏移)。
        busy: 是否被其他手柄控制。
        speed_steps: 速度档位 14 / 28 / 128，None 表示未知。
        direction: 行驶方向。
        speed: 7 位速度值。
        double_traction: 双机牵引标志。
        functions: 功能状态，键为 "F0" ~ "F31"。
            只包含数据包中实际携带的功能，缺失的字节不会被补成 False。
    """

    address: int
    busy: bool
    speed_steps: int | None
    direction: Direction
    speed: int
    double_traction: bool
    functions: dict[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class CvResultEvent:
    """CV 读写结果。cv 为对外的 1 起始编号。"""

    cv: int
    value: int


@dataclass(frozen=True)
class FeedbackModule:
    address: int
    active_inputs: tuple[int, ...]


@dataclass(frozen=True)
class FeedbackEvent:
    """R-Bus 反馈模块状态，只列出至少有一个输入激活的模块。"""

    modules: tuple[FeedbackModule, ...]


DecodedEvent = Union[
    ErrorEvent,
    SerialNumberEvent,
    BroadcastFlagsEvent,
    StatusEvent,
    TrackPowerEvent,
    EngineInfoEvent,
    AccessoryInfoEvent,
    CvResultEvent,
    FeedbackEvent,
    ProgrammingModeEvent,
    ShortCircuitEvent,
    UnknownBroadcastEvent,
]


# =========================================================================
# 事件通道 (Event Channel)
# =========================================================================

T = TypeVar("T")

# 订阅者类型别名：支持同步或异步函数
Subscriber = Callable[[Any], Any | Awaitable[Any]]


class EventChannel(Generic[T]):
    """类型化的发布/订阅通道。

    - 任意时刻都可以挂接多个相互独立的订阅者。
    - 投递是即发即忘 (fire-and-forget) 的，不做回放。
    - 事件按发布顺序投递；同步订阅者按订阅顺序被直接调用，
      异步订阅者 (async def) 被调度为 Task。
    """

    def __init__(self, name: str = "events") -> None:
        self.name = name
        self._subscribers: list[tuple[Subscriber, type | tuple[type, ...] | None]] = []
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self,
        callback: Subscriber,
        event_type: type | tuple[type, ...] | None = None,
    ) -> Subscriber:
        """注册订阅者。

        Args:
            callback: 回调函数，接收事件对象作为唯一参数。
            event_type: 可选的类型过滤。只有 isinstance 匹配的事件才会投递。

        Returns:
            传入的 callback，便于之后调用 unsubscribe。
        """
        self._subscribers.append((callback, event_type))
        return callback

    def unsubscribe(self, callback: Subscriber) -> None:
        """移除订阅者。未订阅的回调会被静默忽略。

        按相等性 (==) 而不是同一性比较：每次访问 obj.method 都会生成新的
        绑定方法对象，但它们彼此相等。
        """
        self._subscribers = [
            (cb, et) for cb, et in self._subscribers if cb != callback
        ]

    def publish(self, event: T) -> None:
        """向所有匹配的订阅者广播事件。

        单个订阅者抛出的异常只会被记录，不会影响其他订阅者。
        """
        # 遍历快照：订阅者可能在回调中取消自己的订阅
        for callback, event_type in list(self._subscribers):
            if event_type is not None and not isinstance(event, event_type):
                continue
            if inspect.iscoroutinefunction(callback):
                self._schedule(callback, event)
                continue
            try:
                callback(event)
            except Exception as e:
                logger.error(f"[{self.name}] 订阅者执行异常: {e}", exc_info=True)

    def _schedule(self, callback: Subscriber, event: T) -> None:
        """[Internal] 将异步订阅者调度为 Task，并持有引用直到完成。"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # 没有运行中的事件循环时无法调度异步订阅者
            logger.warning(f"[{self.name}] 事件循环未运行，丢弃异步订阅者投递")
            return

        task = loop.create_task(callback(event))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        """[Internal] 回收异步订阅者的 Task，并记录其异常。"""
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"[{self.name}] 异步订阅者执行异常: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )
