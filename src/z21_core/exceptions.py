# File: src/z21_core/exceptions.py
"""
Z21 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，以便上层应用能进行精细的错误处理。
"""

from enum import IntEnum


class Z21Error(Exception):
    """Z21 核心库的所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 z21-core 抛出的已知错误。
    """

    pass


class ConfigError(Z21Error):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 host)。
    2. 字段格式错误 (如端口不是整数、超时为负数)。
    3. 找不到配置文件或环境变量。
    """

    pass


class NetworkError(Z21Error):
    """网络层面的错误 (I/O 级别)。

    触发场景:
    1. Socket 创建失败或端口被占用。
    2. 发送 (send) 失败或接收超时。
    3. 连接已关闭。

    注意: 此类错误通常是暂时的，上层逻辑可以尝试重试。
    """

    pass


class ProtocolError(Z21Error):
    """协议层面的错误 (逻辑级别)。

    触发场景:
    1. 数据包长度不足 2 字节。
    2. 数据包声明的长度大于实际收到的长度。
    3. 待封装的载荷超出 16 位长度字段的表示范围。
    """

    pass


class ValidationError(Z21Error):
    """命令参数校验失败。

    在构建命令字节之前同步抛出，此时没有任何数据被发送，
    调用方不应假设指令已对设备产生任何影响。

    触发场景:
    1. 功能号超出 0-28 范围。
    2. 功能状态不是 on / off / toggle 之一。
    3. CV 编号或 CV 值超出范围。
    """

    pass


class CommandTimeoutError(Z21Error):
    """关联请求在超时时间内未收到匹配的应答。

    与 NackError 区分：超时表示"设备从未回复"，
    NACK 表示"设备明确拒绝"。
    """

    def __init__(self, message: str, key: int | None = None) -> None:
        super().__init__(message)
        self.key = key


class NackCode(IntEnum):
    """CV 读写否定应答 (NACK) 的广播代码。

    这些代码来自 LAN_X_BC 广播包 (0x61) 的第 2 字节。
    """

    NACK_SC = 0x12  # 因短路导致的 NACK
    NACK = 0x13  # 普通 NACK

    @property
    def description(self) -> str:
        """获取 NACK 代码对应的人类可读中文描述。"""
        _DESC_MAP = {
            0x12: "CV 读写被拒绝 (轨道短路)",
            0x13: "CV 读写被拒绝 (NACK)",
        }
        return _DESC_MAP.get(self.value, f"未知 NACK (Code: {hex(self.value)})")


class NackError(Z21Error):
    """CV 读写被设备明确拒绝 (收到 NACK 广播)。"""

    def __init__(self, message: str, nack_code: int | None = None) -> None:
        """初始化 NACK 错误。

        Args:
            message: 错误描述信息。
            nack_code: 原始广播代码。构造函数会尝试将其转换为
                NackCode 枚举，并使用标准化的中文描述覆盖 message。
        """
        self.nack_code_enum: NackCode | None = None

        if nack_code is not None:
            try:
                self.nack_code_enum = NackCode(nack_code)
                message = self.nack_code_enum.description
            except ValueError:
                pass

        super().__init__(message)
        self.nack_code = nack_code
