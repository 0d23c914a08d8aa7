"""
System configuration package.

Provides consolidated system-level configuration and logging for all services.

Exports:
    - LoggerFactory: Factory for creating configured loggers
    - LoggingConfig: Logging configuration model
    - SystemConfig: Complete system configuration dataclass
    - get_system_config: Get cached system config
    - reload_system_config: Force reload system config
"""

from tradejournal.system.config import SystemConfig, get_system_config, reload_system_config
from tradejournal.system.log_system import LoggerFactory, LoggingConfig

__all__ = [
    "SystemConfig",
    "get_system_config",
    "reload_system_config",
    "LoggerFactory",
    "LoggingConfig",
]
