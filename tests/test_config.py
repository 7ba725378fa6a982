"""
Tests for settings and the YAML store (actm/config.py).
"""

from unittest.mock import patch

import pytest
import yaml

from actm.config import AppConfig, ConfigStore, ProxyConfig


class TestProxyConfig:
    """Tests for ProxyConfig validation."""

    def test_proxy_url(self):
        """URL combines protocol, host and port."""
        assert ProxyConfig("http", "proxy.local", 8080).url() == "http://proxy.local:8080"

    def test_proxy_invalid_protocol(self):
        """Unsupported protocols are rejected."""
        with pytest.raises(ValueError, match="Invalid proxy protocol"):
            ProxyConfig("ftp", "proxy.local", 21)

    @pytest.mark.parametrize("port", [0, 65536])
    def test_proxy_invalid_port(self, port):
        """Ports outside 1..65535 are rejected."""
        with pytest.raises(ValueError, match="Invalid proxy port"):
            ProxyConfig("http", "proxy.local", port)

    def test_proxy_empty_host(self):
        """Host is required."""
        with pytest.raises(ValueError):
            ProxyConfig("http", "", 8080)


class TestAppConfig:
    """Tests for AppConfig defaults and validation."""

    def test_defaults(self):
        """Defaults match the documented values."""
        config = AppConfig()
        assert config.auto_check_updates is True
        assert config.check_interval == 6
        assert config.auto_startup is False
        assert config.show_notifications is True
        assert config.auto_backup is True
        assert config.proxy is None
        assert config.github_token is None

    @pytest.mark.parametrize("hours", [0, 169])
    def test_invalid_interval(self, hours):
        """Check interval must be 1..168 hours."""
        with pytest.raises(ValueError, match="check_interval"):
            AppConfig(check_interval=hours)

    def test_invalid_toggle(self):
        """Toggles must be booleans."""
        with pytest.raises(ValueError):
            AppConfig(auto_backup="yes")

    def test_from_dict_camel_case(self):
        """Wire names are accepted."""
        config = AppConfig.from_dict({
            "autoBackup": False,
            "checkInterval": 12,
            "proxy": {"protocol": "https", "host": "p", "port": 443},
        })
        assert config.auto_backup is False
        assert config.check_interval == 12
        assert config.proxy == ProxyConfig("https", "p", 443)

    def test_from_dict_unknown_key(self):
        """Unknown keys are rejected."""
        with pytest.raises(ValueError, match="Unknown config key"):
            AppConfig.from_dict({"colour": "blue"})

    def test_to_wire(self):
        """to_wire uses camelCase and omits unset optionals."""
        wire = AppConfig(github_token="t").to_wire()
        assert wire["autoCheckUpdates"] is True
        assert wire["githubToken"] == "t"
        assert "proxy" not in wire


class TestConfigStore:
    """Tests for the persistent store."""

    def test_missing_file_defaults(self, tmp_path):
        """No file means defaults."""
        store = ConfigStore(tmp_path / "config.yml")
        assert store.get_all() == AppConfig()

    def test_env_override(self, tmp_path, monkeypatch):
        """ACTM_CONFIG selects the file."""
        path = tmp_path / "custom.yml"
        monkeypatch.setenv("ACTM_CONFIG", str(path))
        assert ConfigStore().path == path

    def test_set_partial_persists(self, tmp_path):
        """Changes are written and survive reload."""
        path = tmp_path / "nested" / "config.yml"
        store = ConfigStore(path)

        config = store.set_partial({"checkInterval": 24, "auto_backup": False})

        assert config.check_interval == 24
        assert config.auto_backup is False
        assert config.show_notifications is True
        data = yaml.safe_load(path.read_text())
        assert data["check_interval"] == 24
        assert ConfigStore(path).get_all() == config

    def test_set_partial_ignores_none(self, tmp_path):
        """None values leave the field unchanged."""
        store = ConfigStore(tmp_path / "config.yml")
        store.set_partial({"githubToken": "abc"})
        config = store.set_partial({"githubToken": None, "autoStartup": True})
        assert config.github_token == "abc"
        assert config.auto_startup is True

    def test_set_partial_invalid_not_written(self, tmp_path):
        """Invalid values raise and nothing is written."""
        path = tmp_path / "config.yml"
        store = ConfigStore(path)
        with pytest.raises(ValueError):
            store.set_partial({"checkInterval": 500})
        assert not path.exists()
        assert store.get_all() == AppConfig()

    def test_set_partial_write_failure_keeps_config(self, tmp_path):
        """A failed write leaves the stored config unchanged."""
        store = ConfigStore(tmp_path / "config.yml")
        store.set_partial({"autoBackup": False})

        with patch.object(ConfigStore, "_save", side_effect=OSError("read-only")):
            with pytest.raises(OSError):
                store.set_partial({"autoBackup": True, "checkInterval": 12})

        assert store.get_all().auto_backup is False
        assert store.get_all().check_interval == AppConfig().check_interval

    def test_set_partial_proxy(self, tmp_path):
        """Proxy mappings are decoded and persisted."""
        path = tmp_path / "config.yml"
        ConfigStore(path).set_partial({"proxy": {"protocol": "http", "host": "p", "port": 3128}})
        assert ConfigStore(path).get_all().proxy == ProxyConfig("http", "p", 3128)

    def test_invalid_yaml_defaults(self, tmp_path):
        """Unparseable files fall back to defaults."""
        path = tmp_path / "config.yml"
        path.write_text("check_interval: [unclosed")
        assert ConfigStore(path).get_all() == AppConfig()

    def test_invalid_values_defaults(self, tmp_path):
        """Files with invalid values fall back to defaults."""
        path = tmp_path / "config.yml"
        path.write_text("check_interval: 0\n")
        assert ConfigStore(path).get_all() == AppConfig()

    def test_get_key(self, tmp_path):
        """Single values by wire or field name."""
        store = ConfigStore(tmp_path / "config.yml")
        assert store.get("checkInterval") == 6
        assert store.get("auto_backup") is True
        with pytest.raises(ValueError):
            store.get("nope")

    def test_reset(self, tmp_path):
        """reset restores defaults and removes the file."""
        path = tmp_path / "config.yml"
        store = ConfigStore(path)
        store.set_partial({"autoStartup": True})
        assert store.reset() == AppConfig()
        assert not path.exists()
