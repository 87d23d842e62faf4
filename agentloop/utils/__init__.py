"""
Utilities Module
================

Common utilities shared across the application:
- logger: Context-tagged logging to stderr
- config: Centralized configuration management
"""

from agentloop.utils.logger import Logger, logger
from agentloop.utils.config import get_config, Config

__all__ = ["Logger", "logger", "get_config", "Config"]
