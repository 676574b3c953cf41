import json
import logging
import sys
from pathlib import Path
from typing import Any, cast

from loguru import logger
from loguru._defaults import LOGURU_FORMAT

from cryptoexchange.config import GeneralSettings, Settings

REDACTED = "***REDACTED***"

# Keys of `extra` data that must never reach a sink, compared case-insensitively.
SENSITIVE_KEYS = frozenset(
    {
        "key",
        "secret",
        "sign",
        "api_key",
        "api_secret",
        "password",
        "token",
        "x-bfx-apikey",
        "x-bfx-signature",
        "x-bfx-payload",
    }
)


class InterceptHandler(logging.Handler):
    """A custom logging handler to intercept standard logging messages.

    This handler redirects standard logging messages (e.g. from httpx and
    httpcore) to Loguru.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """Emits a log record to the Loguru logger.

        Args:
            record: The log record to emit.
        """
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = cast(Any, frame.f_back)
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def redact(data: dict[str, Any]) -> dict[str, Any]:
    """Returns a copy of `data` with sensitive values masked, recursing into dicts."""
    clean: dict[str, Any] = {}
    for key, value in data.items():
        if str(key).lower() in SENSITIVE_KEYS and isinstance(value, str):
            clean[key] = REDACTED
        elif isinstance(value, dict):
            clean[key] = redact(value)
        else:
            clean[key] = value
    return clean


def _sensitive_data_filter(record: dict[str, Any]) -> bool:
    """Redacts sensitive values in the record's 'extra' data before any sink sees it."""
    record["extra"].update(redact(record["extra"]))
    return True


def _json_formatter(record: dict[str, Any]) -> str:
    """Custom formatter to structure log records as JSON."""
    log_object = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "source": {
            "name": record["name"],
            "file": f"{record['file'].name}:{record['line']}",
            "function": record["function"],
        },
        "extra": record["extra"],
    }
    # Loguru treats the returned string as a format template.
    record["extra"]["_json"] = json.dumps(log_object, default=str)
    return "{extra[_json]}\n"


def setup_logging(
    console_level: str | None = None,
    file_level: str | None = None,
    log_dir: Path | None = None,
    settings: GeneralSettings | None = None,
) -> None:
    """Configures the Loguru logger for applications using the library.

    The library itself only emits records; calling this is optional. It
    removes any default handlers, sets up a console sink with a readable
    format, and an optional rotating file sink with structured JSON output.
    It also intercepts standard library logging.

    Arguments left as None are taken from `settings`, which defaults to the
    `[general]` section of the loaded config file.

    Args:
        console_level: The minimum log level for console output.
        file_level: The minimum log level for file output.
        log_dir: Directory to store log files. If neither this nor
            `log_directory` is set, file logging is disabled.
        settings: Logging defaults to use instead of the config file.
    """
    general = settings or Settings.get_instance().general
    console_level = console_level or general.log_level_console
    file_level = file_level or general.log_level_file
    if log_dir is None and general.log_directory:
        log_dir = Path(general.log_directory).expanduser()

    # 1. Remove default handlers
    logger.remove()
    logger.add(
        sys.stderr,
        level=console_level.upper(),
        format=LOGURU_FORMAT,
        colorize=True,
        filter=_sensitive_data_filter,
    )

    # 2. Configure file sink if a directory is provided
    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "cryptoexchange_{time:YYYY-MM-DD}.log",
            level=file_level.upper(),
            format=_json_formatter,
            rotation="00:00",  # New file at midnight
            retention="7 days",
            compression="zip",
            filter=_sensitive_data_filter,
            enqueue=True,  # Make logging calls non-blocking
            backtrace=False,  # Keep log files clean
            diagnose=False,
        )

    # 3. Intercept standard logging messages
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logger.info("Logging configured successfully.")
