"""Centralized logging configuration for TradeJournal."""

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Literal

import structlog
from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_LOG_FILE = Path("logs/tradejournal.log")


class LoggingConfig(BaseModel):
    """Configuration for logging system.

    Logging Levels Guide:

    INFO (Default - User-Facing):
    - Import started/completed with totals
    - Journal snapshot recomputed (summary)
    - Verification mismatches

    DEBUG (Developer Mode):
    - Cache hits/misses and evictions
    - EventBus subscriptions
    - Per-chunk persistence details

    WARNING:
    - Chunk failures (import continues)
    - Cache errors (ignored)
    - Rejected position sizing inputs

    ERROR:
    - Fatal import failures
    - Subscriber callback failures

    Timestamp Format Options:
    - "iso": 2025-10-22T20:50:07.288824Z (full ISO format)
    - "compact": 251022-205007.28 (YYMMDD-HHMMSS.ms) - recommended
    - "time": 20:50:07.28 (time only, good for same-day logs)
    - "short": 1022T205007 (MMDDTHHMMSS, very compact)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Minimum log level (INFO=user-friendly, DEBUG=verbose, WARNING=issues only)",
    )
    format: Literal["console", "json"] = Field(
        default="console",
        description="Output format: console, or json",
    )
    timestamp_format: Literal["iso", "compact", "time", "short"] = Field(
        default="compact",
        description="Timestamp format for console output",
    )
    enable_file: bool = Field(
        default=True,
        description="Enable logging to file (WARNING and above by default)",
    )
    file_path: Path | None = Field(
        default=None,
        description="Path to log file (uses logs/tradejournal.log if None)",
    )
    file_level: LogLevel = Field(
        default="WARNING",
        description="Minimum log level for file output",
    )
    file_rotation: bool = Field(
        default=True,
        description="Enable log file rotation (when file gets too large)",
    )
    max_file_size_mb: int = Field(
        default=10,
        description="Maximum log file size in MB before rotation",
    )
    backup_count: int = Field(
        default=3,
        description="Number of rotated log files to keep",
    )
    console_width: int = Field(
        default=0,
        description="Maximum console line width (0 = no limit)",
    )


class LoggerFactory:
    """
    Factory for creating and configuring structured loggers.

    Provides centralized configuration for all TradeJournal logging.
    Call configure() once at application startup, then use get_logger()
    to get configured logger instances throughout the codebase.

    Example:
        # At startup
        config = LoggingConfig(level="DEBUG", enable_file=True, file_path=Path("journal.log"))
        LoggerFactory.configure(config)

        # In modules
        logger = LoggerFactory.get_logger()
        logger.info("import.completed", job_id=job.id, succeeded=1200)
    """

    _config: LoggingConfig | None = None
    _configured: bool = False

    @classmethod
    def configure(cls, config: LoggingConfig | None = None) -> None:
        """
        Configure the logging system.

        Should be called once at application startup before any logging occurs.

        Args:
            config: LoggingConfig instance. If None, uses default configuration.
        """
        if config is None:
            config = LoggingConfig()

        cls._config = config

        processors = cls._build_common_processors(config.timestamp_format)

        console_handler = logging.StreamHandler(stream=sys.stdout)
        console_handler.setLevel(getattr(logging, config.level))
        console_processor: Any
        if config.format == "console":
            console_processor = cls._custom_console_renderer()
        else:
            console_processor = structlog.processors.JSONRenderer()
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=console_processor,
                foreign_pre_chain=processors,
            )
        )

        handlers: list[logging.Handler] = [console_handler]
        root_level = getattr(logging, config.level)

        if config.enable_file:
            if config.file_path is None:
                config.file_path = DEFAULT_LOG_FILE

            file_handler = cls._configure_file_logging(config, processors)
            handlers.append(file_handler)
            root_level = min(root_level, getattr(logging, config.file_level))

        logging.basicConfig(level=root_level, handlers=handlers, force=True)

        configured_processors = list(processors)
        if config.format == "console":
            configured_processors.extend(
                [
                    structlog.dev.set_exc_info,
                    structlog.processors.ExceptionRenderer(
                        structlog.dev.plain_traceback,  # type: ignore[arg-type]
                    ),
                ]
            )
        else:
            configured_processors.append(structlog.processors.format_exc_info)
        configured_processors.append(structlog.stdlib.ProcessorFormatter.wrap_for_formatter)

        structlog.configure(
            processors=configured_processors,
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        cls._configured = True

    @classmethod
    def _build_common_processors(cls, timestamp_format: str) -> list[Any]:
        """Processors shared by both structlog and stdlib handlers before rendering."""
        return [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            cls._get_timestamper(timestamp_format),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
        ]

    @staticmethod
    def _get_timestamper(fmt: str) -> Any:
        """Get appropriate timestamper based on format with milliseconds.

        Uses 'log_timestamp' key to avoid conflicts with domain fields
        that use 'timestamp' (e.g. StoreUpdate.timestamp).
        """

        def add_timestamp_processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
            now = datetime.now(timezone.utc)
            ms = now.microsecond // 10000

            if fmt == "compact":
                event_dict["log_timestamp"] = now.strftime(f"%y%m%d-%H%M%S.{ms:02d}")
            elif fmt == "time":
                event_dict["log_timestamp"] = now.strftime(f"%H:%M:%S.{ms:02d}")
            elif fmt == "short":
                event_dict["log_timestamp"] = now.strftime("%m%dT%H%M%S")
            else:
                event_dict["log_timestamp"] = now.isoformat()

            return event_dict

        return add_timestamp_processor

    @staticmethod
    def _custom_console_renderer() -> Callable[[Any, str, dict[str, Any]], str]:
        """Console renderer with domain-aware formatting and file:line info."""

        def renderer(logger: Any, name: str, event_dict: dict[str, Any]) -> str:
            timestamp = event_dict.pop("log_timestamp", "")
            level = event_dict.pop("level", "info").upper()
            event = event_dict.pop("event", "")
            filename = event_dict.pop("filename", "")
            lineno = event_dict.pop("lineno", "")
            logger_name = event_dict.pop("logger", "")

            formatted = _SystemLogFormatters.format_system_log(event, event_dict, level, timestamp)
            if formatted:
                return formatted

            # Fallback formatting for anything without a domain prefix
            colors = {
                "DEBUG": "\033[36m",
                "INFO": "\033[32m",
                "WARNING": "\033[33m",
                "ERROR": "\033[31m",
                "CRITICAL": "\033[35m",
            }
            reset = "\033[0m"
            gray = "\033[90m"

            level_str = f"[{colors.get(level, '')}{level.lower()}{reset}]"
            context_str = " ".join(f"{k}={v}" for k, v in sorted(event_dict.items()) if not k.startswith("_"))

            location = ""
            if filename and lineno:
                module_file = Path(filename).stem
                if logger_name and logger_name != "tradejournal":
                    location = f"{gray}({logger_name}.{module_file}:{lineno}){reset}"
                else:
                    location = f"{gray}({module_file}:{lineno}){reset}"

            parts = [timestamp, level_str, event]
            if context_str:
                parts.append(f"{gray}|{reset} {context_str}")
            if location:
                parts.append(location)

            return " ".join(parts)

        return renderer

    @classmethod
    def _configure_file_logging(cls, config: LoggingConfig, pre_chain: list[Any]) -> logging.Handler:
        """Configure file output for logging."""
        file_path = config.file_path
        assert file_path is not None  # Already defaulted in configure()

        file_path.parent.mkdir(parents=True, exist_ok=True)

        handler: logging.Handler
        if config.file_rotation:
            handler = RotatingFileHandler(
                filename=str(file_path),
                maxBytes=config.max_file_size_mb * 1024 * 1024,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        else:
            handler = logging.FileHandler(
                filename=str(file_path),
                encoding="utf-8",
            )

        handler.setLevel(getattr(logging, config.file_level))

        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=pre_chain,
            )
        )

        return handler

    @classmethod
    def get_logger(cls, name: str | None = None):
        """
        Get a configured logger instance.

        Args:
            name: Optional logger name. If None, uses the calling module's __name__.

        Returns:
            Configured structlog BoundLogger instance.
        """
        if not cls._configured:
            cls.configure()

        if name is None:
            import inspect

            frame = inspect.currentframe()
            if frame and frame.f_back:
                name = frame.f_back.f_globals.get("__name__", "tradejournal")
            else:
                name = "tradejournal"

        return structlog.get_logger(name)

    @classmethod
    def get_config(cls) -> LoggingConfig:
        """Get current logging configuration."""
        if cls._config is None:
            return LoggingConfig()
        return cls._config

    @classmethod
    def is_configured(cls) -> bool:
        """Check if logging has been configured."""
        return cls._configured

    @classmethod
    def reset(cls) -> None:
        """Reset logging configuration (mainly for testing)."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            try:
                handler.close()
            except Exception:
                pass
        root_logger.handlers.clear()
        root_logger.setLevel(logging.NOTSET)
        cls._config = None
        cls._configured = False
        structlog.reset_defaults()


class _SystemLogFormatters:
    """Rich-style ANSI formatters for domain logs."""

    CYAN = "\033[36m"
    MAGENTA = "\033[35m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    DIM = "\033[2m"
    BOLD = "\033[1m"
    RESET = "\033[0m"

    LEVEL_COLORS = {
        "DEBUG": CYAN,
        "INFO": GREEN,
        "WARNING": YELLOW,
        "ERROR": RED,
        "CRITICAL": MAGENTA,
    }

    HIDDEN_KEYS = ("log_timestamp", "level", "event", "filename", "lineno", "logger")

    @classmethod
    def format_system_log(cls, event: str, event_dict: dict[str, Any], level: str, timestamp: str) -> str | None:
        """
        Format a log line based on its event prefix.

        Returns formatted string, or None to use fallback formatting.
        """
        if not event or "." not in event:
            return None

        level_color = cls.LEVEL_COLORS.get(level, cls.RESET)

        if event.startswith("import."):
            return cls._format_import_log(event, event_dict, level_color, timestamp)
        if event.startswith("journal."):
            return cls._format_journal_log(event, event_dict, level_color, timestamp)
        return cls._format_generic_log(event, event_dict, level_color, timestamp)

    @classmethod
    def _format_import_log(cls, event: str, event_dict: dict[str, Any], color: str, timestamp: str) -> str:
        """Format import pipeline logs."""
        msg = event.replace("import.", "").replace("_", " ").title()

        parts = [
            f"{cls.DIM}{timestamp}{cls.RESET}",
            f"{color}Import{cls.RESET}",
            f"{cls.BOLD}{msg}{cls.RESET}",
        ]

        if "job_id" in event_dict:
            parts.append(f"{cls.MAGENTA}{str(event_dict.pop('job_id'))[:8]}{cls.RESET}")
        if "chunk" in event_dict:
            parts.append(f"Chunk: {cls.YELLOW}{event_dict.pop('chunk')}{cls.RESET}")
        if "succeeded" in event_dict:
            parts.append(f"OK: {cls.GREEN}{cls._fmt(event_dict.pop('succeeded'))}{cls.RESET}")
        if "failed" in event_dict:
            parts.append(f"Failed: {cls.RED}{cls._fmt(event_dict.pop('failed'))}{cls.RESET}")
        if "duplicate" in event_dict:
            parts.append(f"Duplicate: {cls.YELLOW}{cls._fmt(event_dict.pop('duplicate'))}{cls.RESET}")

        parts.extend(cls._context_parts(event_dict))
        return " | ".join(parts)

    @classmethod
    def _format_journal_log(cls, event: str, event_dict: dict[str, Any], color: str, timestamp: str) -> str:
        """Format journal store logs."""
        msg = event.replace("journal.", "").replace("_", " ").title()

        parts = [
            f"{cls.DIM}{timestamp}{cls.RESET}",
            f"{color}Journal{cls.RESET}",
            f"{cls.BOLD}{msg}{cls.RESET}",
        ]

        if "trade_count" in event_dict:
            parts.append(f"Trades: {cls.YELLOW}{cls._fmt(event_dict.pop('trade_count'))}{cls.RESET}")
        if "cache_hit" in event_dict:
            hit = event_dict.pop("cache_hit")
            parts.append(f"{cls.GREEN}cache hit{cls.RESET}" if hit else f"{cls.DIM}cache miss{cls.RESET}")

        parts.extend(cls._context_parts(event_dict))
        return " | ".join(parts)

    @classmethod
    def _format_generic_log(cls, event: str, event_dict: dict[str, Any], color: str, timestamp: str) -> str:
        """Generic format for any other dotted event."""
        component, _, action = event.partition(".")
        parts = [
            f"{cls.DIM}{timestamp}{cls.RESET}",
            f"{color}{component.replace('_', ' ').title()}{cls.RESET}",
            f"{cls.BOLD}{action.replace('_', ' ').replace('.', ' ').title()}{cls.RESET}",
        ]
        parts.extend(cls._context_parts(event_dict))
        return " | ".join(parts)

    @staticmethod
    def _fmt(value: Any) -> str:
        return f"{value:,}" if isinstance(value, int) else str(value)

    @classmethod
    def _context_parts(cls, event_dict: dict[str, Any]) -> list[str]:
        context = [
            f"{key}={cls.CYAN}{value}{cls.RESET}"
            for key, value in sorted(event_dict.items())
            if not key.startswith("_") and key not in cls.HIDDEN_KEYS
        ]
        return [" ".join(context)] if context else []
