import logging
import logging.config
import os
from datetime import datetime
from logging import Logger

from pytz import timezone

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# chatty libraries that only log at debug level
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

ANSI_RESET = "\033[0m"
ANSI_COLORS: dict[str, str] = {
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
}

LEVEL_MARKERS: dict[int, str] = {
    logging.WARNING: "⚠️ ",
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
}


def resolve_level() -> int:
    """Map LOG_LEVEL to a logging level, falling back to INFO for unknown names."""
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "info").upper())
    return level if isinstance(level, int) else logging.INFO


class TimezoneFormatter(logging.Formatter):
    """Renders timestamps in the configured zone and prefixes warnings and errors."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, self.tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # broken %-args in a third-party record
            message = f"{record.msg} {record.args}"
        record.msg = LEVEL_MARKERS.get(record.levelno, "") + message
        record.args = ()
        return super().format(record)


class ConsoleFormatter(TimezoneFormatter):
    """Wraps a line in the ANSI color named by the record's ``color`` attribute."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = ANSI_COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Logger facade accepting ``color=`` on every log call.

    Example::

        logger.info("Lease %s granted for store %s", lease_id, store_id, color="green")

    The color only reaches the console handler; the log file stays plain.
    Anything else (``setLevel``, ``handlers`` ...) is delegated to the wrapped logger.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        kwargs.setdefault("stacklevel", 2)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        self.log(logging.DEBUG, msg, *args, stacklevel=3, **kwargs)

    def info(self, msg, *args, **kwargs):
        self.log(logging.INFO, msg, *args, stacklevel=3, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self.log(logging.WARNING, msg, *args, stacklevel=3, **kwargs)

    def error(self, msg, *args, **kwargs):
        self.log(logging.ERROR, msg, *args, stacklevel=3, **kwargs)

    def critical(self, msg, *args, **kwargs):
        self.log(logging.CRITICAL, msg, *args, stacklevel=3, **kwargs)

    def exception(self, msg, *args, **kwargs):
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, stacklevel=3, **kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def setup_logging() -> ColorLogger:
    """Configure the console and file handlers and return the application logger.

    Records go to stdout and to ``{ROOT_DIR}/logs/app.log`` (ROOT_DIR defaults to
    the working directory). Timestamps use the TIMEZONE zone, Europe/Berlin by default.
    """
    level = resolve_level()
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)

    def formatter(cls) -> dict:
        return {"()": cls, "format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": formatter(TimezoneFormatter),
            "console": formatter(ConsoleFormatter),
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "plain",
                "level": level,
                "filename": os.path.join(log_dir, "app.log"),
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    })

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger("commerce_rag_bridge"))
