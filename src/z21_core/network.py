# src/z21_core/network.py
"""
Z21 核心库 - 网络模块 (Network)

Z21 中心站只说 UDP (默认端口 21105)。本模块负责与中心站之间的数据报收发：
- 绑定本地端口 (bind_ip / bind_port)，所有命令都发往配置中的 host:port；
- 中心站的应答与广播全部进入一个有界队列，由 Z21Client 的接收循环取出；
- 底层错误与连接关闭同样以队列项的形式交给接收循环，不会被吞掉。

这里不解析任何报文内容，帧格式见 protocols.framing。
"""

import asyncio
import logging
from typing import Optional, Tuple, Union, cast

from .config import Z21Config
from .exceptions import NetworkError

logger = logging.getLogger(__name__)

Address = Tuple[str, int]
# 队列项：收到的数据报，或者需要上报给接收循环的错误
QueueItem = Union[Tuple[bytes, Address], Exception]


class Z21UdpProtocol(asyncio.DatagramProtocol):
    """把中心站发来的数据报缓存到有界队列中。

    广播 (R-Bus 反馈、机车信息) 可能在短时间内密集到达。
    队列满时丢弃新到的数据报，已排队的报文保持原有顺序。
    """

    def __init__(self, queue_size: int = 128):
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.queue: asyncio.Queue[QueueItem] = asyncio.Queue(maxsize=queue_size)

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = cast(asyncio.DatagramTransport, transport)
        logger.debug("UDP Transport 已建立")

    def datagram_received(self, data: bytes, addr: Address) -> None:
        try:
            self.queue.put_nowait((data, addr))
        except asyncio.QueueFull:
            logger.warning(f"UDP 接收队列已满，丢弃数据包 (来自 {addr[0]})")

    def error_received(self, exc: Exception) -> None:
        # 例如中心站离线时收到的 ICMP 端口不可达
        logger.error(f"UDP 错误: {exc}")
        self._push_error(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc:
            logger.warning(f"UDP 连接断开: {exc}")
            self._push_error(exc)
        else:
            logger.debug("UDP 连接已正常关闭")
            self._push_error(NetworkError("连接已关闭"))
        self.transport = None

    def _push_error(self, exc: Exception) -> None:
        """[Internal] 错误必须送达接收循环，队列满时让出最旧的一项。"""
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(exc)


class NetworkClient:
    """与单个 Z21 中心站通信的 UDP 端点。"""

    def __init__(self, config: Z21Config):
        self.config = config
        self.protocol: Optional[Z21UdpProtocol] = None
        self.transport: Optional[asyncio.DatagramTransport] = None

    @property
    def target(self) -> Address:
        """中心站地址 (host, port)。"""
        return (self.config.host, self.config.port)

    async def connect(self) -> None:
        """绑定本地端口。bind_port 为 0 时由系统分配。"""
        loop = asyncio.get_running_loop()
        bind_addr = (self.config.bind_ip, self.config.bind_port)

        try:
            transport, protocol = await loop.create_datagram_endpoint(
                lambda: Z21UdpProtocol(self.config.queue_size),
                local_addr=bind_addr,
            )
        except OSError as e:
            await self.close()
            raise NetworkError(f"端口绑定失败 {bind_addr}: {e}") from e

        self.transport = cast(asyncio.DatagramTransport, transport)
        self.protocol = cast(Z21UdpProtocol, protocol)
        logger.debug(f"本地端口已绑定: {bind_addr}，中心站: {self.target}")

    async def send(self, packet: bytes) -> None:
        """向中心站发送一个完整的 Z21 数据报 (含长度头)。

        尚未绑定时先自动 connect()；已关闭的端点不会被重新打开。
        """
        if self.transport is None:
            await self.connect()
        elif self.transport.is_closing():
            raise NetworkError("Transport 已关闭")

        assert self.transport is not None

        try:
            self.transport.sendto(packet, self.target)
        except Exception as e:
            raise NetworkError(f"发送失败: {e}") from e
        logger.debug(f"TX {packet.hex(' ')}")

    async def receive(self, timeout: float | None = None) -> Tuple[bytes, Address]:
        """取出下一个来自中心站的数据报。

        Args:
            timeout: 最长等待秒数，None 表示一直等待。

        Raises:
            NetworkError: 超时、端点未连接，或队列中取出的是底层错误。
        """
        if not self.protocol:
            raise NetworkError("Protocol 未初始化")

        try:
            item = await asyncio.wait_for(self.protocol.queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            raise NetworkError(f"接收超时 ({timeout}s)") from None

        if isinstance(item, NetworkError):
            raise item
        if isinstance(item, Exception):
            raise NetworkError(f"接收错误: {item}") from item
        return item

    async def close(self) -> None:
        if self.transport:
            self.transport.close()
            self.transport = None
            logger.debug("UDP Transport 已关闭")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
