# File: src/z21_core/core.py
"""
Z21 客户端 (Client)

职责：
1. 资源组装：State + Network + Config + EventChannel + Correlator。
2. 入站：接收循环 -> 帧解码 -> 事件通道。
3. 出站：参数校验 -> 构建命令字节 -> 封帧 -> 发送。
4. 生命周期：Connect -> Receive -> Logout -> Close。
"""

import asyncio
import logging
from dataclasses import replace
from typing import Any

from . import protocols
from .config import Z21Config
from .correlator import RequestCorrelator
from .events import (
    BroadcastFlagsEvent,
    CommandStationStatus,
    CvResultEvent,
    DecodedEvent,
    EventChannel,
    ProgrammingModeEvent,
    SerialNumberEvent,
    ShortCircuitEvent,
    StatusEvent,
    TrackPowerEvent,
)
from .exceptions import ConfigError, NetworkError, Z21Error
from .network import NetworkClient
from .protocols.engine import FunctionState
from .protocols.programming import validate_cv
from .state import ClientStatus, Z21State

logger = logging.getLogger(__name__)


class Z21Client:
    """Z21 中心站 UDP 客户端 (Async)。

    所有入站数据都会被解码并发布到 ``events`` 通道；
    传输层异常发布到 ``transport_errors`` 通道。

    Example::

        async with Z21Client(config) as z21:
            z21.events.subscribe(print, EngineInfoEvent)
            await z21.set_track_power_on()
            result = await z21.cv_read(1)
    """

    def __init__(self, config: Z21Config) -> None:
        """初始化客户端。

        Args:
            config: 全局配置对象。
        """
        self.config = config

        self.events: EventChannel[DecodedEvent] = EventChannel("events")
        self.transport_errors: EventChannel[Exception] = EventChannel(
            "transport_errors"
        )

        try:
            self._state = Z21State()
            self.net_client = NetworkClient(config)
            self.correlator = RequestCorrelator(self.events, timeout=config.cv_timeout)
        except Exception as e:
            raise ConfigError(f"组件初始化失败: {e}") from e

        # 内部订阅者：跟踪设备广播的最新状态
        self.events.subscribe(self._track_state)

        self._receive_task: asyncio.Task | None = None

        self._update_status(ClientStatus.IDLE, "客户端已就绪")

    @property
    def state(self) -> Z21State:
        """获取当前状态的只读副本。

        返回的是一个副本 (Copy)，修改它不会影响客户端内部状态。
        """
        return replace(self._state)

    # =========================================================================
    # 生命周期
    # =========================================================================

    async def connect(self) -> None:
        """建立 Socket 并启动后台接收任务。

        Raises:
            NetworkError: 端口绑定失败。
        """
        if self._receive_task and not self._receive_task.done():
            logger.warning("客户端已连接，跳过")
            return

        try:
            await self.net_client.connect()
        except NetworkError as e:
            self._state.last_error = str(e)
            self._update_status(ClientStatus.ERROR, f"连接失败: {e}")
            raise

        self._receive_task = asyncio.create_task(
            self._receive_loop(), name="Z21ReceiveTask"
        )
        self._update_status(
            ClientStatus.CONNECTED,
            f"已连接 {self.config.host}:{self.config.port}",
        )

    async def close(self) -> None:
        """注销并关闭客户端。

        先发送 LAN_LOGOFF，等待 logout_delay 秒让数据包发出，
        然后停止接收任务并关闭 Socket。
        """
        if self._state.is_connected:
            try:
                await self.logout()
                await asyncio.sleep(self.config.logout_delay)
            except Z21Error as e:
                logger.warning(f"注销过程异常: {e}")

        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
            finally:
                self._receive_task = None

        await self.net_client.close()
        self._update_status(ClientStatus.CLOSED, "已关闭")

    async def __aenter__(self) -> "Z21Client":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # 入站
    # =========================================================================

    def handle_datagram(self, data: bytes) -> DecodedEvent | None:
        """解码一个数据包并发布到事件通道。

        Returns:
            DecodedEvent | None: 解码出的事件；未识别的报文返回 None 且不发布。
        """
        logger.debug(f"RX {data.hex(' ')}")
        event = protocols.decode_envelope(data)
        if event is None:
            return None

        logger.debug(f"事件: {event}")
        self.events.publish(event)
        return event

    async def _receive_loop(self) -> None:
        """[Internal] 后台接收循环。"""
        try:
            while True:
                data, _addr = await self.net_client.receive()
                self.handle_datagram(data)

        except asyncio.CancelledError:
            logger.debug("接收任务被取消")
            raise

        except NetworkError as e:
            self._state.last_error = str(e)
            self._update_status(ClientStatus.ERROR, f"接收异常: {e}")
            self.transport_errors.publish(e)

    def _track_state(self, event: Any) -> None:
        """[Internal] 根据广播事件更新内部状态。"""
        if isinstance(event, SerialNumberEvent):
            self._state.serial_number = event.serial_number
        elif isinstance(event, BroadcastFlagsEvent):
            self._state.broadcast_flags = event
        elif isinstance(event, TrackPowerEvent):
            self._state.track_power = event.on
        elif isinstance(event, StatusEvent):
            self._state.central_status = event.status
        elif isinstance(event, ShortCircuitEvent):
            self._state.central_status = CommandStationStatus.SHORT_CIRCUIT
        elif isinstance(event, ProgrammingModeEvent) and event.active:
            self._state.central_status = CommandStationStatus.PROGRAMMING_MODE_ACTIVE

    # =========================================================================
    # 出站
    # =========================================================================

    async def _send_lan(self, payload: bytes) -> None:
        """[Internal] 封装并发送简单 LAN 命令。"""
        try:
            await self.net_client.send(protocols.build_frame(payload))
        except NetworkError as e:
            self.transport_errors.publish(e)
            raise

    async def _send_x(self, subframe: bytes) -> None:
        """[Internal] 封装并发送 LAN_X 命令。"""
        try:
            await self.net_client.send(protocols.build_x_frame(subframe))
        except NetworkError as e:
            self.transport_errors.publish(e)
            raise

    # --- 系统 ---

    async def get_serial_number(self) -> None:
        """请求序列号，结果以 SerialNumberEvent 形式到达。"""
        await self._send_lan(protocols.build_get_serial_number())

    async def get_broadcast_flags(self) -> None:
        """请求广播标志位，结果以 BroadcastFlagsEvent 形式到达。"""
        await self._send_lan(protocols.build_get_broadcast_flags())

    async def set_broadcast_flags(
        self, engine: bool = True, accessory: bool = True, feedback: bool = True
    ) -> None:
        await self._send_lan(
            protocols.build_set_broadcast_flags(engine, accessory, feedback)
        )

    async def logout(self) -> None:
        await self._send_lan(protocols.build_logout())

    async def get_status(self) -> None:
        """请求中心站状态，结果以 StatusEvent 形式到达。"""
        await self._send_x(protocols.build_get_status())

    async def set_track_power_on(self) -> None:
        await self._send_x(protocols.build_track_power_on())

    async def set_track_power_off(self) -> None:
        await self._send_x(protocols.build_track_power_off())

    async def emergency_stop(self) -> None:
        """所有机车紧急停车，轨道保持供电。"""
        await self._send_x(protocols.build_emergency_stop())

    # --- 道岔 ---

    async def switch_turnout(
        self,
        address: int,
        output: bool = False,
        activate: bool = True,
        queue: bool = False,
    ) -> None:
        await self._send_x(
            protocols.build_switch_turnout(address, output, activate, queue)
        )

    # --- 机车 ---

    async def get_engine_info(self, address: int) -> None:
        """请求机车信息，结果以 EngineInfoEvent 形式到达。"""
        await self._send_x(protocols.build_get_engine_info(address))

    async def set_drive_engine(
        self, address: int, speed: int, forward: bool, speed_steps: int = 128
    ) -> None:
        await self._send_x(
            protocols.build_drive(address, speed, forward, speed_steps)
        )

    async def set_engine_function(
        self, address: int, function_number: int, state: str | FunctionState
    ) -> None:
        """设置机车功能。

        Raises:
            ValidationError: 功能号或状态非法，此时不会发送任何数据。
        """
        fn_state = protocols.validate_function(function_number, state)
        await self._send_x(
            protocols.build_set_function(address, function_number, fn_state)
        )

    # --- 编程轨 ---

    async def cv_read(self, cv: int) -> CvResultEvent:
        """读取 CV 值并等待结果。

        Args:
            cv: CV 编号 (从 1 开始)。

        Returns:
            CvResultEvent: 设备返回的结果。

        Raises:
            ValidationError: CV 编号越界，此时不会发送任何数据。
            NackError: 设备拒绝了读取 (或任何挂起的 CV 操作)。
            CommandTimeoutError: 超时未收到应答。
            NetworkError: 发送失败。
        """
        validate_cv(cv)
        subframe = protocols.build_cv_read(cv)
        return await self.correlator.request(cv, lambda: self._send_x(subframe))

    async def cv_write(self, cv: int, value: int) -> CvResultEvent:
        """写入 CV 值并等待设备回报的结果。

        Raises:
            ValidationError: CV 编号或值越界，此时不会发送任何数据。
            NackError: 设备拒绝了写入。
            CommandTimeoutError: 超时未收到应答。
            NetworkError: 发送失败。
        """
        subframe = protocols.build_cv_write(cv, value)
        return await self.correlator.request(cv, lambda: self._send_x(subframe))

    def _update_status(self, status: ClientStatus, msg: str) -> None:
        """更新内部生命周期状态。"""
        self._state.status = status
        logger.info(f"[{status.name}] {msg}")
