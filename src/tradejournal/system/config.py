"""
System configuration for TradeJournal.

One configuration object for the whole engine: journal policy defaults,
cache sizing, import pipeline tuning and logging. Values come from a YAML
file merged over built-in defaults, with ${VAR} environment substitution.

Lookup order for the config file:
    1. Explicit path passed to SystemConfig.load()
    2. TRADEJOURNAL_CONFIG environment variable
    3. ./config/system.yaml
    4. Built-in defaults (no file needed)

Usage:
    >>> from tradejournal.system import get_system_config
    >>> config = get_system_config()
    >>> config.journal.starting_balance
    Decimal('10000')
"""

import os
import re
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import yaml

from tradejournal.errors import ConfigLoadError
from tradejournal.system import log_system

CONFIG_ENV_VAR = "TRADEJOURNAL_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/system.yaml")

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass
class JournalSettings:
    """Journal store policy defaults."""

    starting_balance: Decimal = Decimal("10000")
    batch_threshold: int = 500
    batch_size: int = 1000
    default_scope: str = "global"


@dataclass
class CacheSettings:
    """Cache section (converted to services.cache.CacheConfig)."""

    enabled: bool = True
    ttl_seconds: float = 300.0
    max_size: int = 10_000
    eviction_fraction: float = 0.2

    def to_cache_config(self):
        """Convert to the pydantic model consumed by TradeCache."""
        from tradejournal.services.cache.config import CacheConfig

        return CacheConfig(**asdict(self))


@dataclass
class ImportSettings:
    """Import pipeline section (converted to services.importing.ImportConfig)."""

    validation_batch_size: int = 1000
    chunk_size: Optional[int] = None
    min_chunk_size: int = 100
    max_chunk_size: int = 5000
    max_memory_mb: int = 100
    deduplicate: bool = True
    max_concurrent_chunks: int = 1
    job_retention_minutes: int = 30
    history_limit: int = 100
    history_trim_to: int = 50

    def to_import_config(self):
        """Convert to the pydantic model consumed by ImportPipeline."""
        from tradejournal.services.importing.config import ImportConfig

        return ImportConfig(**asdict(self))


@dataclass
class LoggingConfig:
    """Logging section of the system config (converted to log_system.LoggingConfig)."""

    level: str = "INFO"
    format: str = "console"
    timestamp_format: str = "compact"
    enable_file: bool = True
    file_path: str = "logs/tradejournal.log"
    file_level: str = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3
    console_width: int = 0

    def to_logger_config(self) -> log_system.LoggingConfig:
        """Convert to the pydantic model consumed by LoggerFactory."""
        return log_system.LoggingConfig(
            level=self.level,  # type: ignore[arg-type]
            format=self.format,  # type: ignore[arg-type]
            timestamp_format=self.timestamp_format,  # type: ignore[arg-type]
            enable_file=self.enable_file,
            file_path=Path(self.file_path),
            file_level=self.file_level,  # type: ignore[arg-type]
            file_rotation=self.file_rotation,
            max_file_size_mb=self.max_file_size_mb,
            backup_count=self.backup_count,
            console_width=self.console_width,
        )


@dataclass
class SystemConfig:
    """Complete system configuration."""

    journal: JournalSettings = field(default_factory=JournalSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    importing: ImportSettings = field(default_factory=ImportSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "SystemConfig":
        """
        Load configuration from YAML, merged over defaults.

        Args:
            path: Explicit config file. Missing files fall back to defaults.

        Raises:
            ConfigLoadError: If the file exists but is not valid YAML or has bad values
        """
        config_path = cls._resolve_path(path)
        if config_path is None or not config_path.exists():
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigLoadError(f"Config root must be a mapping: {config_path}")

        try:
            return cls._from_dict(_substitute_env_vars(raw))
        except (TypeError, ValueError) as e:
            raise ConfigLoadError(f"Invalid configuration in {config_path}: {e}") from e

    @staticmethod
    def _resolve_path(path: Optional[Path]) -> Optional[Path]:
        if path is not None:
            return Path(path)
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path)
        return DEFAULT_CONFIG_PATH

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "SystemConfig":
        """Build config from a (partial) dictionary, defaults fill the gaps."""
        merged = _deep_merge(_defaults_dict(), data)

        journal = dict(merged["journal"])
        journal["starting_balance"] = Decimal(str(journal["starting_balance"]))

        return cls(
            journal=JournalSettings(**journal),
            cache=CacheSettings(**merged["cache"]),
            importing=ImportSettings(**merged["importing"]),
            logging=LoggingConfig(**merged["logging"]),
        )


def _defaults_dict() -> dict[str, Any]:
    return {
        "journal": asdict(JournalSettings()),
        "cache": asdict(CacheSettings()),
        "importing": asdict(ImportSettings()),
        "logging": asdict(LoggingConfig()),
    }


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base; override wins on conflicts."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _substitute_env_vars(value: Any) -> Any:
    """Replace ${VAR} placeholders in strings; undefined variables are left as-is."""
    if isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(v) for v in value]
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    return value


_system_config: Optional[SystemConfig] = None


def get_system_config(path: Optional[Path] = None) -> SystemConfig:
    """
    Get the cached system configuration.

    Passing an explicit path always loads (and caches) that file.
    """
    global _system_config
    if path is not None:
        _system_config = SystemConfig.load(path)
    elif _system_config is None:
        _system_config = SystemConfig.load()
    return _system_config


def reload_system_config(path: Optional[Path] = None) -> SystemConfig:
    """Force a reload of the system configuration."""
    global _system_config
    _system_config = SystemConfig.load(path)
    return _system_config
