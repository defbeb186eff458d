"""Tests for compiler settings."""
import pytest

from circuitflow import CircuitConfigError, CompilerSettings
from circuitflow.config.settings import DEFAULT_PRIORITY, STATIC_MAC_PRIORITY


class TestCompilerSettings:
    """Tests for CompilerSettings."""

    def test_defaults(self):
        """Defaults are the OpenFlow default and the static MAC priority."""
        settings = CompilerSettings()

        assert settings.default_priority == DEFAULT_PRIORITY == 32768
        assert settings.static_mac_priority == STATIC_MAC_PRIORITY == 35000

    def test_out_of_range(self):
        """Priorities must fit in 16 bits."""
        with pytest.raises(CircuitConfigError, match="default_priority"):
            CompilerSettings(default_priority=-1)
        with pytest.raises(CircuitConfigError, match="static_mac_priority"):
            CompilerSettings(static_mac_priority=70000)

    def test_static_mac_must_win(self):
        """Static MAC rules must outrank generic rules."""
        with pytest.raises(CircuitConfigError):
            CompilerSettings(default_priority=40000, static_mac_priority=35000)

    def test_from_env(self, monkeypatch):
        """Environment variables override the defaults."""
        monkeypatch.setenv("CIRCUITFLOW_DEFAULT_PRIORITY", "1000")
        monkeypatch.setenv("CIRCUITFLOW_STATIC_MAC_PRIORITY", "2000")
        settings = CompilerSettings.from_env()

        assert settings.default_priority == 1000
        assert settings.static_mac_priority == 2000

    def test_from_env_unset(self, monkeypatch):
        """Missing variables fall back to the defaults."""
        monkeypatch.delenv("CIRCUITFLOW_DEFAULT_PRIORITY", raising=False)
        monkeypatch.delenv("CIRCUITFLOW_STATIC_MAC_PRIORITY", raising=False)

        assert CompilerSettings.from_env() == CompilerSettings()

    def test_from_env_invalid(self, monkeypatch):
        """Non numeric values are configuration errors."""
        monkeypatch.setenv("CIRCUITFLOW_DEFAULT_PRIORITY", "high")
        with pytest.raises(CircuitConfigError):
            CompilerSettings.from_env()

    def test_from_yaml_nested(self, tmp_path):
        """Settings can live under a compiler key."""
        path = tmp_path / "settings.yaml"
        path.write_text("compiler:\n  default_priority: 100\n  static_mac_priority: 200\n")
        settings = CompilerSettings.from_yaml(path)

        assert settings == CompilerSettings(default_priority=100, static_mac_priority=200)

    def test_from_yaml_flat_partial(self, tmp_path):
        """Top level keys work and missing keys keep their defaults."""
        path = tmp_path / "settings.yaml"
        path.write_text("static_mac_priority: 40000\n")
        settings = CompilerSettings.from_yaml(path)

        assert settings.default_priority == DEFAULT_PRIORITY
        assert settings.static_mac_priority == 40000

    def test_frozen(self):
        """Settings are immutable."""
        with pytest.raises(AttributeError):
            CompilerSettings().default_priority = 1
