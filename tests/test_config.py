# tests/test_config.py
"""测试配置加载：字典 / TOML / 环境变量 (含 .env 文件)。"""

import os

import pytest

from z21_core import create_config_from_dict, load_config_from_env, load_config_from_toml
from z21_core.config import Z21Config
from z21_core.exceptions import ConfigError

ENV_KEYS = (
    "Z21_HOST",
    "Z21_PORT",
    "Z21_BIND_IP",
    "Z21_BIND_PORT",
    "Z21_CV_TIMEOUT",
    "Z21_LOGOUT_DELAY",
    "Z21_QUEUE_SIZE",
)


@pytest.fixture
def clean_env(monkeypatch):
    """清理所有 Z21_ 前缀的环境变量"""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield monkeypatch
    # python-dotenv 直接写入 os.environ，需要手动清理
    for key in ENV_KEYS:
        os.environ.pop(key, None)


def test_config_happy_path():
    config = create_config_from_dict({"host": "192.168.0.111"})

    assert isinstance(config, Z21Config)
    assert config.host == "192.168.0.111"
    assert config.port == 21105
    assert config.bind_ip == "0.0.0.0"
    assert config.bind_port == 0
    assert config.cv_timeout == 30.0
    assert config.logout_delay == 0.5
    assert config.queue_size == 128


def test_config_type_conversion():
    """字符串形式的数值 (来自环境变量) 会被转换"""
    config = create_config_from_dict(
        {"host": "z21.local", "port": "21106", "cv_timeout": "5", "queue_size": "8"}
    )
    assert config.port == 21106
    assert config.cv_timeout == 5.0
    assert config.queue_size == 8


@pytest.mark.parametrize("raw", [{}, {"host": ""}, {"host": None}])
def test_config_missing_host(raw):
    with pytest.raises(ConfigError, match="host"):
        create_config_from_dict(raw)


@pytest.mark.parametrize(
    "key, value, expected_msg",
    [
        ("port", "abc", "端口格式无效"),
        ("port", 70000, "端口超出范围"),
        ("bind_port", -1, "端口超出范围"),
        ("cv_timeout", "soon", "时间格式无效"),
        ("logout_delay", -0.1, "时间不能为负数"),
        ("queue_size", 0, "必须为正整数"),
    ],
)
def test_config_invalid_values(key, value, expected_msg):
    with pytest.raises(ConfigError, match=expected_msg):
        create_config_from_dict({"host": "z21.local", key: value})


def test_config_is_frozen():
    config = Z21Config(host="z21.local")
    with pytest.raises(AttributeError):
        config.port = 1  # type: ignore[misc]


def test_config_repr():
    assert "z21.local:21105" in repr(Z21Config(host="z21.local"))


def test_load_toml_profile(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[profile.default]\nhost = "10.0.0.1"\n\n'
        '[profile.layout]\nhost = "10.0.0.2"\ncv_timeout = 10.0\n',
        encoding="utf-8",
    )

    assert load_config_from_toml(path).host == "10.0.0.1"
    config = load_config_from_toml(path, profile="layout")
    assert config.host == "10.0.0.2"
    assert config.cv_timeout == 10.0


def test_load_toml_missing_profile(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[profile.default]\nhost = "10.0.0.1"\n', encoding="utf-8")

    with pytest.raises(ConfigError, match="未找到预设"):
        load_config_from_toml(path, profile="other")


def test_load_toml_z21_section(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[z21]\nhost = "10.0.0.3"\nport = 21105\n', encoding="utf-8")

    assert load_config_from_toml(path).host == "10.0.0.3"


def test_load_toml_root(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('host = "10.0.0.4"\n', encoding="utf-8")

    assert load_config_from_toml(path).host == "10.0.0.4"


def test_load_toml_not_found(tmp_path):
    with pytest.raises(ConfigError, match="配置文件未找到"):
        load_config_from_toml(tmp_path / "missing.toml")


def test_load_toml_invalid(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("host = = broken", encoding="utf-8")

    with pytest.raises(ConfigError, match="读取 TOML 失败"):
        load_config_from_toml(path)


def test_load_env(clean_env):
    clean_env.setenv("Z21_HOST", "192.168.0.111")
    clean_env.setenv("Z21_CV_TIMEOUT", "3.5")

    config = load_config_from_env()
    assert config.host == "192.168.0.111"
    assert config.cv_timeout == 3.5


def test_load_env_empty(clean_env):
    with pytest.raises(ConfigError, match="未检测到"):
        load_config_from_env()


def test_load_env_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("Z21_HOST=10.1.1.1\nZ21_PORT=21106\n", encoding="utf-8")

    config = load_config_from_env(env_file)
    assert config.host == "10.1.1.1"
    assert config.port == 21106


def test_load_env_file_does_not_override(clean_env, tmp_path):
    """已存在的环境变量优先于 .env 文件"""
    clean_env.setenv("Z21_HOST", "10.9.9.9")
    env_file = tmp_path / ".env"
    env_file.write_text("Z21_HOST=10.1.1.1\n", encoding="utf-8")

    assert load_config_from_env(env_file).host == "10.9.9.9"


def test_load_env_file_not_found(clean_env, tmp_path):
    with pytest.raises(ConfigError, match=".env 文件未找到"):
        load_config_from_env(tmp_path / ".env")
