"""Configuration management."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from printlink.types.printers import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_PORT,
)


logger = logging.getLogger(__name__)

CONFIG_FILE = "printlink.yaml"

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "system": {"log_level": "INFO"},
    "discovery": {
        "port": DEFAULT_PORT,
        "timeout": DEFAULT_DISCOVERY_TIMEOUT,
        "max_concurrency": 254,
        "interface": None,
    },
    "connection": {
        "port": DEFAULT_PORT,
        "timeout": DEFAULT_CONNECT_TIMEOUT,
    },
    "probe": {
        "enabled": True,
        "interval": 3.0,
        "timeout": 7.0,
        "privileged": False,
    },
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ConfigManager:
    """
    Configuration manager for printlink.

    Supports:
    - YAML configuration file (config/printlink.yaml)
    - Environment variable interpolation (${VAR_NAME})
    - Environment overrides for the common settings
    - Built-in defaults when no file is present
    """

    def __init__(self, config_dir: str = "config"):
        self.config_dir = Path(config_dir)
        self.config: Dict[str, Any] = {}

        # Load environment variables
        load_dotenv()

    def load(self) -> None:
        """Load the configuration file, merged over the defaults."""
        raw_config: Dict[str, Any] = {}
        config_path = self._find_config_file()

        if config_path is None:
            logger.debug(f"No {CONFIG_FILE} in {self.config_dir}, using defaults")
        else:
            with open(config_path) as f:
                raw_config = yaml.safe_load(f) or {}
            logger.debug(f"Loaded configuration from {config_path}")

        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration in {config_path} must be a mapping")

        merged = {section: dict(values) for section, values in DEFAULTS.items()}
        for section, values in raw_config.items():
            if isinstance(values, dict):
                merged.setdefault(section, {}).update(values)
            else:
                merged[section] = values

        # Interpolate environment variables
        self.config = self._interpolate_env_vars(merged)

    def _find_config_file(self) -> Optional[Path]:
        config_path = self.config_dir / CONFIG_FILE
        if config_path.exists():
            return config_path

        # Try example file
        example_path = self.config_dir / f"{CONFIG_FILE}.example"
        if example_path.exists():
            return example_path

        return None

    def _interpolate_env_vars(self, config: Any) -> Any:
        """
        Recursively interpolate environment variables in config.

        Supports ${VAR_NAME} syntax.
        """
        if isinstance(config, dict):
            return {k: self._interpolate_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._interpolate_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._interpolate_string(config)
        else:
            return config

    @staticmethod
    def _interpolate_string(value: str) -> str:
        """Interpolate environment variables in a string."""
        pattern = re.compile(r'\$\{([^}]+)\}')

        def replacer(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))

        return pattern.sub(replacer, value)

    def section(self, name: str) -> Dict[str, Any]:
        """Get one configuration section."""
        if not self.config:
            self.load()
        return self.config.get(name) or {}

    def get_connector_config(self) -> Dict[str, Any]:
        """
        Get the flat settings dict consumed by TcpPrinterConnector.

        Environment variables take precedence over the file.
        """
        discovery = self.section("discovery")
        connection = self.section("connection")
        probe = self.section("probe")

        return {
            "port": int(os.getenv("PRINTLINK_PORT", connection.get("port", DEFAULT_PORT))),
            "connect_timeout": float(
                os.getenv("PRINTLINK_CONNECT_TIMEOUT", connection.get("timeout", DEFAULT_CONNECT_TIMEOUT))
            ),
            "discovery_port": int(os.getenv("PRINTLINK_DISCOVERY_PORT", discovery.get("port", DEFAULT_PORT))),
            "discovery_timeout": float(
                os.getenv("PRINTLINK_DISCOVERY_TIMEOUT", discovery.get("timeout", DEFAULT_DISCOVERY_TIMEOUT))
            ),
            "max_concurrency": int(discovery.get("max_concurrency", 254)),
            "interface": os.getenv("PRINTLINK_INTERFACE", discovery.get("interface")) or None,
            "probe_enabled": self._as_bool(os.getenv("PRINTLINK_PROBE_ENABLED", probe.get("enabled", True))),
            "probe_interval": float(probe.get("interval", 3.0)),
            "probe_timeout": float(probe.get("timeout", 7.0)),
            "probe_privileged": self._as_bool(probe.get("privileged", False)),
        }

    def get_log_level(self) -> str:
        """Get log level from config or environment."""
        return os.getenv(
            "LOG_LEVEL",
            self.section("system").get("log_level", "INFO")
        ).upper()

    @staticmethod
    def _as_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUE_VALUES
