"""Tests for configuration loading."""

import pytest

from printlink.connectors.tcp import TcpPrinterConnector
from printlink.core.config import ConfigManager
from printlink.types.printers import Endpoint


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "PRINTLINK_PORT",
        "PRINTLINK_CONNECT_TIMEOUT",
        "PRINTLINK_DISCOVERY_PORT",
        "PRINTLINK_DISCOVERY_TIMEOUT",
        "PRINTLINK_PROBE_ENABLED",
        "PRINTLINK_INTERFACE",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_config_file(tmp_path):
    manager = ConfigManager(str(tmp_path))
    manager.load()

    assert manager.get_connector_config() == {
        "port": 9100,
        "connect_timeout": 5.0,
        "discovery_port": 9100,
        "discovery_timeout": 4.0,
        "max_concurrency": 254,
        "interface": None,
        "probe_enabled": True,
        "probe_interval": 3.0,
        "probe_timeout": 7.0,
        "probe_privileged": False,
    }
    assert manager.get_log_level() == "INFO"


def test_yaml_values_override_defaults(tmp_path):
    (tmp_path / "printlink.yaml").write_text(
        "system:\n"
        "  log_level: debug\n"
        "discovery:\n"
        "  timeout: 1.5\n"
        "  max_concurrency: 32\n"
        "connection:\n"
        "  port: 515\n"
        "probe:\n"
        "  enabled: false\n"
    )
    manager = ConfigManager(str(tmp_path))
    manager.load()
    config = manager.get_connector_config()

    assert config["discovery_timeout"] == 1.5
    assert config["max_concurrency"] == 32
    assert config["port"] == 515
    assert config["probe_enabled"] is False
    assert config["probe_interval"] == 3.0
    assert manager.get_log_level() == "DEBUG"


def test_example_file_used_as_fallback(tmp_path):
    (tmp_path / "printlink.yaml.example").write_text("connection:\n  timeout: 2\n")
    manager = ConfigManager(str(tmp_path))
    manager.load()

    assert manager.get_connector_config()["connect_timeout"] == 2.0


def test_env_interpolation_and_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("PRINTER_NIC", "eth1")
    monkeypatch.setenv("PRINTLINK_PORT", "9101")
    monkeypatch.setenv("PRINTLINK_PROBE_ENABLED", "no")
    (tmp_path / "printlink.yaml").write_text("discovery:\n  interface: ${PRINTER_NIC}\n")

    manager = ConfigManager(str(tmp_path))
    manager.load()
    config = manager.get_connector_config()

    assert config["interface"] == "eth1"
    assert config["port"] == 9101
    assert config["probe_enabled"] is False


def test_non_mapping_config_rejected(tmp_path):
    (tmp_path / "printlink.yaml").write_text("- just\n- a list\n")

    with pytest.raises(ValueError):
        ConfigManager(str(tmp_path)).load()


class RecordingScanner:
    def __init__(self):
        self.calls = []

    async def scan(self, prefix, port, timeout=None):
        self.calls.append((prefix, port))
        yield Endpoint(address=f"{prefix}.20", port=port)


async def test_discovery_port_drives_scan(tmp_path):
    (tmp_path / "printlink.yaml").write_text("discovery:\n  port: 515\n")
    manager = ConfigManager(str(tmp_path))
    manager.load()
    config = manager.get_connector_config()

    assert config["discovery_port"] == 515
    assert config["port"] == 9100

    scanner = RecordingScanner()
    connector = TcpPrinterConnector(config, scanner=scanner, address_provider=lambda: "192.168.7.3")

    printers = await connector.discover_printers()

    assert [printer.name for printer in printers] == ["192.168.7.20:515"]
    assert scanner.calls == [("192.168.7", 515)]
    assert connector.port == 9100


def test_discovery_port_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("PRINTLINK_DISCOVERY_PORT", "631")
    manager = ConfigManager(str(tmp_path))
    manager.load()

    assert manager.get_connector_config()["discovery_port"] == 631
