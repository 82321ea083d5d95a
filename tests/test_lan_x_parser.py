# tests/test_lan_x_parser.py
"""
测试 LAN_X 子帧解析。
重点验证:
1. 中心站状态与广播代码的映射 (含 NACK 作为错误事件上报)。
2. CV 结果与道岔信息的地址 +1 偏移。
3. 机车信息的位字段解码与可选功能字节。
"""

import pytest

from z21_core.events import (
    AccessoryInfoEvent,
    CommandStationStatus,
    CvResultEvent,
    Direction,
    EngineInfoEvent,
    ErrorCode,
    ErrorEvent,
    ProgrammingModeEvent,
    ShortCircuitEvent,
    StatusEvent,
    TrackPowerEvent,
    TurnoutPosition,
    UnknownBroadcastEvent,
)
from z21_core.protocols.lan_x import parse_lan_x


@pytest.mark.parametrize(
    "code, expected",
    [
        (0x01, CommandStationStatus.EMERGENCY_STOP),
        (0x02, CommandStationStatus.TRACK_VOLTAGE_OFF),
        (0x04, CommandStationStatus.SHORT_CIRCUIT),
        (0x20, CommandStationStatus.PROGRAMMING_MODE_ACTIVE),
        (0x00, CommandStationStatus.UNKNOWN),
        (0x03, CommandStationStatus.UNKNOWN),
    ],
)
def test_status_changed(code, expected):
    assert parse_lan_x(bytes([0x62, 0x22, code])) == StatusEvent(status=expected)


def test_status_changed_wrong_subtype():
    """0x62 但第二字节不是 0x22 时不匹配"""
    assert parse_lan_x(bytes([0x62, 0x23, 0x01])) is None


@pytest.mark.parametrize(
    "code, expected",
    [
        (0x00, TrackPowerEvent(on=False)),
        (0x01, TrackPowerEvent(on=True)),
        (0x02, ProgrammingModeEvent(active=True)),
        (0x08, ShortCircuitEvent()),
        (0x7F, UnknownBroadcastEvent(code=0x7F)),
    ],
)
def test_broadcast(code, expected):
    assert parse_lan_x(bytes([0x61, code, 0x61 ^ code])) == expected


def test_broadcast_nack():
    event = parse_lan_x(bytes([0x61, 0x13, 0x72]))
    assert isinstance(event, ErrorEvent)
    assert event.code == ErrorCode.NACK
    assert event.is_nack
    assert event.message == "CV Read/Write NACK"


def test_broadcast_nack_short_circuit():
    event = parse_lan_x(bytes([0x61, 0x12, 0x73]))
    assert isinstance(event, ErrorEvent)
    assert event.code == ErrorCode.NACK_SC
    assert event.is_nack
    assert "short-circuit" in event.message


@pytest.mark.parametrize("cv", [1, 2, 17, 256])
def test_cv_result_reports_one_based(cv):
    """线路上的 0 起始地址 cv-1 上报为 cv"""
    wire = cv - 1
    event = parse_lan_x(bytes([0x64, 0x14, wire >> 8, wire & 0xFF, 0x2A, 0x00]))
    assert event == CvResultEvent(cv=cv, value=0x2A)


def test_cv_result_trailing_bytes_ignored():
    event = parse_lan_x(bytes([0x64, 0x14, 0x00, 0x00, 0x03, 0x77, 0x88, 0x99]))
    assert event == CvResultEvent(cv=1, value=3)


def test_cv_result_wrong_subtype():
    assert parse_lan_x(bytes([0x64, 0x15, 0x00, 0x00, 0x03])) is None


@pytest.mark.parametrize(
    "status, position",
    [
        (0b00, TurnoutPosition.NOT_SWITCHED),
        (0b01, TurnoutPosition.P0),
        (0b10, TurnoutPosition.P1),
        (0b11, TurnoutPosition.INVALID),
        (0b1111_1110, TurnoutPosition.P1),
    ],
)
def test_turnout_info(status, position):
    event = parse_lan_x(bytes([0x43, 0x00, 0x09, status, 0x00]))
    assert event == AccessoryInfoEvent(address=10, position=position)


def test_turnout_info_high_address():
    """高字节只取低 6 位"""
    event = parse_lan_x(bytes([0x43, 0xC1, 0x00, 0x01]))
    assert event == AccessoryInfoEvent(address=0x100 + 1, position=TurnoutPosition.P0)


def test_engine_info_basic():
    # 地址 1234，128 档，前进速度 50，F0 和 F1 开启
    event = parse_lan_x(bytes([0xEF, 0x04, 0xD2, 0x04, 0xB2, 0x11, 0x00]))
    assert isinstance(event, EngineInfoEvent)
    assert event.address == 1234
    assert event.busy is False
    assert event.speed_steps == 128
    assert event.direction == Direction.FORWARD
    assert event.speed == 50
    assert event.double_traction is False
    assert event.functions["F0"] is True
    assert event.functions["F1"] is True
    assert event.functions["F2"] is False


def test_engine_info_busy_and_speed_steps():
    event = parse_lan_x(bytes([0xEF, 0x00, 0x03, 0b0000_1010, 0x05, 0b0100_0000]))
    assert event.address == 3
    assert event.busy is True
    assert event.speed_steps == 28
    assert event.direction == Direction.REVERSE
    assert event.speed == 5
    assert event.double_traction is True


@pytest.mark.parametrize("kkk, steps", [(0, 14), (2, 28), (4, 128), (1, None), (7, None)])
def test_engine_info_speed_step_mapping(kkk, steps):
    event = parse_lan_x(bytes([0xEF, 0x00, 0x03, kkk, 0x00, 0x00]))
    assert event.speed_steps == steps


def test_engine_info_optional_function_bytes():
    data = bytes(
        [
            0xEF, 0x00, 0x03, 0x04, 0x80, 0x00,
            0b0000_0001,  # F5
            0b1000_0000,  # F20
            0b0000_0010,  # F22
            0b0000_0100,  # F31
        ]
    )
    event = parse_lan_x(data)
    assert len(event.functions) == 32
    assert event.functions["F5"] is True
    assert event.functions["F6"] is False
    assert event.functions["F20"] is True
    assert event.functions["F22"] is True
    assert event.functions["F31"] is True
    assert event.functions["F29"] is False


def test_engine_info_missing_function_bytes_omitted():
    """缺失的功能字节不会被补成 False"""
    event = parse_lan_x(bytes([0xEF, 0x00, 0x03, 0x04, 0x80, 0x00, 0xFF]))
    assert event.functions["F12"] is True
    assert "F13" not in event.functions
    assert "F29" not in event.functions


@pytest.mark.parametrize(
    "payload",
    [
        bytes([0x61]),
        bytes([0x43, 0x00]),
        bytes([0xEF, 0x00, 0x03, 0x04]),
        bytes([0x64, 0x14, 0x00]),
        bytes([0x62]),
    ],
)
def test_truncated_payload_returns_none(payload):
    assert parse_lan_x(payload) is None


def test_unknown_opcode(caplog):
    assert parse_lan_x(bytes([0x99, 0x00])) is None
    assert "未知操作码" in caplog.text


def test_empty_payload():
    assert parse_lan_x(b"") is None
