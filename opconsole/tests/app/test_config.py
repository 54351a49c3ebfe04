from __future__ import annotations

import pytest

from opconsole.app.config import ConsoleConfig, load_config
from opconsole.core.errors import ConsoleConfigError


def test_defaults_match_remote_layout():
    cfg = ConsoleConfig()
    assert cfg.stream_url == "ws://localhost:8080/ws/logs"
    assert cfg.control_url == "http://localhost:8080/api"
    assert cfg.request_timeout_s == 5.0
    assert cfg.stream_driver == "websocket"


def test_secure_switches_both_channels():
    cfg = ConsoleConfig(host="console.example", secure=True)
    assert cfg.stream_url == "wss://console.example/ws/logs"
    assert cfg.control_url == "https://console.example/api"


def test_load_config_from_yaml(tmp_path):
    p = tmp_path / "console.yaml"
    p.write_text(
        "host: 10.0.0.5:9000\n"
        "secure: true\n"
        "request_timeout_s: 2\n",
        encoding="utf-8",
    )
    cfg = load_config(p)
    assert cfg.host == "10.0.0.5:9000"
    assert cfg.secure is True
    assert cfg.request_timeout_s == 2.0
    assert isinstance(cfg.request_timeout_s, float)
    assert cfg.stream_path == "/ws/logs"  # default kept


def test_empty_yaml_gives_defaults(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("", encoding="utf-8")
    assert load_config(p) == ConsoleConfig()


def test_missing_file(tmp_path):
    with pytest.raises(ConsoleConfigError) as ei:
        load_config(tmp_path / "nope.yaml")
    assert ei.value.code == "console_config_error"
    assert ei.value.hint


def test_invalid_yaml(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("host: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConsoleConfigError):
        load_config(p)


def test_non_mapping_document(tmp_path):
    p = tmp_path / "list.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConsoleConfigError):
        load_config(p)


def test_unknown_key(tmp_path):
    p = tmp_path / "extra.yaml"
    p.write_text("hostname: x\n", encoding="utf-8")
    with pytest.raises(ConsoleConfigError) as ei:
        load_config(p)
    assert ei.value.details["key"] == "hostname"


@pytest.mark.parametrize(
    "text",
    [
        "request_timeout_s: fast\n",
        "request_timeout_s: true\n",
        "secure: 1\n",
        "host: 8080\n",
    ],
)
def test_wrong_types(tmp_path, text):
    p = tmp_path / "types.yaml"
    p.write_text(text, encoding="utf-8")
    with pytest.raises(ConsoleConfigError):
        load_config(p)


@pytest.mark.parametrize("timeout", [0, -1.0])
def test_timeout_must_be_positive(timeout):
    with pytest.raises(ConsoleConfigError):
        ConsoleConfig(request_timeout_s=timeout)


def test_blank_host_rejected():
    with pytest.raises(ConsoleConfigError):
        ConsoleConfig(host="  ")


def test_with_overrides_ignores_none():
    cfg = ConsoleConfig().with_overrides({"host": "h:1", "secure": None, "request_timeout_s": 3})
    assert cfg.host == "h:1"
    assert cfg.secure is False
    assert cfg.request_timeout_s == 3.0
