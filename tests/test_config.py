import pytest
from pydantic import ValidationError

from hostprobe.config import Settings, get_settings


def test_settings_defaults(monkeypatch):
    for name in (
        "HOSTPROBE_ROOT",
        "HOSTPROBE_DETECT_VIRT_COMMAND",
        "HOSTPROBE_SAMPLE_INTERVAL",
        "HOSTPROBE_COMMAND_TIMEOUT",
        "HOSTPROBE_LOG_LEVEL",
        "HOSTPROBE_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()
    assert settings.root_path == "/"
    assert settings.detect_virt_command == ["systemd-detect-virt"]
    assert settings.sample_interval_seconds == 1.0
    assert settings.log_format == "simple"


def test_settings_from_env_parses_values(monkeypatch):
    monkeypatch.setenv("HOSTPROBE_ROOT", "/host")
    monkeypatch.setenv("HOSTPROBE_SAMPLE_INTERVAL", "0.25")
    monkeypatch.setenv("HOSTPROBE_DETECT_VIRT_COMMAND", "/usr/bin/systemd-detect-virt --vm")
    monkeypatch.setenv("HOSTPROBE_LOG_FORMAT", "json")

    settings = Settings.from_env()
    assert settings.root_path == "/host"
    assert settings.sample_interval_seconds == 0.25
    assert settings.detect_virt_command == ["/usr/bin/systemd-detect-virt", "--vm"]
    assert settings.log_format == "json"


def test_empty_detect_virt_command_disables_helper(monkeypatch):
    monkeypatch.setenv("HOSTPROBE_DETECT_VIRT_COMMAND", "")
    assert Settings.from_env().detect_virt_command == []


def test_negative_interval_is_rejected(monkeypatch):
    monkeypatch.setenv("HOSTPROBE_SAMPLE_INTERVAL", "-1")
    with pytest.raises(ValidationError):
        Settings.from_env()


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setenv("HOSTPROBE_ROOT", "/mnt/host")
    s1 = get_settings()
    s2 = get_settings()
    assert s1 is s2
    assert s1.root_path == "/mnt/host"


def test_log_level_is_normalised(monkeypatch):
    monkeypatch.setenv("HOSTPROBE_LOG_LEVEL", "debug")
    assert Settings.from_env().log_level == "DEBUG"


def test_unknown_log_level_is_rejected(monkeypatch):
    monkeypatch.setenv("HOSTPROBE_LOG_LEVEL", "verbose")
    with pytest.raises(ValidationError):
        Settings.from_env()
