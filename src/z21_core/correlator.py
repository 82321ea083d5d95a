# File: src/z21_core/correlator.py
"""
Z21 核心库 - 请求关联器 (Request Correlator)

将"发出命令"与"稍后异步到达的应答广播"按关联键 (CV 编号) 配对。

每个挂起的请求都会经历以下状态之一，且只会结束一次::

    ARMED --(匹配的 CvResultEvent)--> RESOLVED
    ARMED --(NACK / NACK_SC 广播)---> REJECTED (NackError)
    ARMED --(定时器到期)------------> REJECTED (CommandTimeoutError)
    ARMED --(send() 抛出异常)-------> REJECTED (原异常)

协议限制: NACK 广播不携带 CV 编号，也不存在请求 ID，因此无法判断它
针对的是哪一个请求。收到 NACK 时，所有处于挂起状态的请求都会被拒绝。
这是线路协议本身的限制，并非实现上的取舍。
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .events import CvResultEvent, ErrorCode, ErrorEvent, EventChannel
from .exceptions import CommandTimeoutError, NackCode, NackError

logger = logging.getLogger(__name__)

SendFunc = Callable[[], Awaitable[Any]]


@dataclass
class PendingRequest:
    """一个挂起的关联请求。"""

    key: int
    future: asyncio.Future
    timer: asyncio.TimerHandle | None = None

    @property
    def settled(self) -> bool:
        return self.future.done()


class RequestCorrelator:
    """按关联键等待应答的挂起请求表。

    只有在至少存在一个挂起请求时才会订阅事件通道，
    表为空时立即退订，所有入站事件都经由同一个分发入口处理。
    """

    def __init__(self, channel: EventChannel, timeout: float = 30.0) -> None:
        self.channel = channel
        self.timeout = timeout
        self._pending: dict[int, list[PendingRequest]] = {}
        self._subscribed = False
        # 订阅与退订必须使用同一个回调对象
        self._handler = self._dispatch

    @property
    def pending_count(self) -> int:
        """当前处于挂起状态的请求数量。"""
        return sum(len(entries) for entries in self._pending.values())

    async def request(self, key: int, send: SendFunc) -> CvResultEvent:
        """挂起一个请求，执行 send()，然后等待结果。

        Args:
            key: 关联键 (对外的 1 起始 CV 编号)。
            send: 实际发送命令的协程函数。

        Returns:
            CvResultEvent: 匹配的结果事件。

        Raises:
            NackError: 设备拒绝了 CV 操作。
            CommandTimeoutError: 超时未收到应答。
            Exception: send() 抛出的原始异常。
        """
        loop = asyncio.get_running_loop()
        entry = PendingRequest(key=key, future=loop.create_future())
        entry.timer = loop.call_later(self.timeout, self._expire, entry)
        self._arm(entry)

        try:
            await send()
        except Exception as e:
            logger.debug(f"CV {key} 请求发送失败: {e}")
            self._settle(entry, exc=e)

        try:
            return await entry.future
        finally:
            # 调用方被取消时也要清理挂起项
            if not entry.settled:
                entry.future.cancel()
            self._discard(entry)

    # =========================================================================
    # 内部状态管理
    # =========================================================================

    def _arm(self, entry: PendingRequest) -> None:
        self._pending.setdefault(entry.key, []).append(entry)
        if not self._subscribed:
            self.channel.subscribe(self._handler)
            self._subscribed = True
            logger.debug("关联器已挂接事件通道")

    def _discard(self, entry: PendingRequest) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None

        entries = self._pending.get(entry.key)
        if entries and entry in entries:
            entries.remove(entry)
            if not entries:
                del self._pending[entry.key]

        if not self._pending and self._subscribed:
            self.channel.unsubscribe(self._handler)
            self._subscribed = False
            logger.debug("关联器已退订事件通道")

    def _settle(
        self,
        entry: PendingRequest,
        result: CvResultEvent | None = None,
        exc: BaseException | None = None,
    ) -> None:
        """结束一个挂起项。已结束的挂起项再次结束时不产生任何效果。"""
        if entry.settled:
            return
        if exc is not None:
            entry.future.set_exception(exc)
        else:
            entry.future.set_result(result)
        self._discard(entry)

    def _expire(self, entry: PendingRequest) -> None:
        entry.timer = None
        logger.warning(f"CV {entry.key} 请求超时 ({self.timeout}s)")
        self._settle(
            entry,
            exc=CommandTimeoutError(
                f"CV {entry.key} 在 {self.timeout}s 内未收到应答", key=entry.key
            ),
        )

    def _dispatch(self, event: Any) -> None:
        """单一分发入口：对每个入站事件检查所有挂起项。"""
        if isinstance(event, CvResultEvent):
            for entry in list(self._pending.get(event.cv, ())):
                self._settle(entry, result=event)
            return

        if isinstance(event, ErrorEvent) and event.is_nack:
            # NACK 不携带 CV 编号，只能拒绝所有挂起项
            nack_code = (
                NackCode.NACK_SC
                if event.code == ErrorCode.NACK_SC
                else NackCode.NACK
            )
            for entries in list(self._pending.values()):
                for entry in list(entries):
                    self._settle(entry, exc=NackError(event.message, nack_code))
