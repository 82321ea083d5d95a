# tests/conftest.py
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from z21_core.config import Z21Config
from z21_core.core import Z21Client
from z21_core.network import NetworkClient


@pytest.fixture
def valid_config():
    """
    [Fixture] 返回一个用于测试的 Z21Config 对象。
    超时时间调得很短，避免测试等待。
    """
    return Z21Config(
        host="192.168.0.111",
        port=21105,
        bind_ip="127.0.0.1",
        bind_port=0,
        cv_timeout=0.2,
        logout_delay=0.0,
        queue_size=16,
    )


@pytest.fixture
def mock_net_client():
    """[Fixture] 一个模拟的 NetworkClient，send / connect / close 均为 AsyncMock。"""
    net = MagicMock(spec=NetworkClient)
    net.connect = AsyncMock()
    net.send = AsyncMock()
    net.close = AsyncMock()
    net.transport = None
    return net


@pytest.fixture
def client(valid_config, mock_net_client):
    """[Fixture] 一个已注入模拟网络层的 Z21Client (未启动接收任务)。"""
    z21 = Z21Client(valid_config)
    z21.net_client = mock_net_client
    return z21
