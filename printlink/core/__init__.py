"""Core components for printlink."""

from .config import ConfigManager
from .errors import ConnectorError
from .status import StatusStream, StatusSubscription

__all__ = ["ConfigManager", "ConnectorError", "StatusStream", "StatusSubscription"]
