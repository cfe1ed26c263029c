from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

# Supported ANSI color names for the color= parameter
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
}


class PdfParserFilter(logging.Filter):
    """Drop the per-object warnings PyPDF2 emits for slightly malformed PDFs.

    They are noise for every scanned upload; real parse failures surface as
    ParseFailureError instead.
    """

    def filter(self, record):
        if record.name.startswith("PyPDF2") and record.levelno < logging.ERROR:
            return debug_mode
        return True


class TimezoneFormatter(logging.Formatter):
    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # broken format arguments, keep the raw template
            message = str(record.msg)

        if record.levelno >= logging.ERROR:
            message = "⛔ " + message
        elif record.levelno == logging.WARNING:
            message = "⚠️ " + message

        # format a copy so the file handler still sees the untouched record
        record = logging.makeLogRecord({**record.__dict__, "msg": message, "args": ()})
        return super().format(record)


class ColoredFormatter(TimezoneFormatter):
    """Console formatter that colors a line when the record carries ``color``.

    The attribute is set by passing ``color=<name>`` to :class:`ColorLogger`
    methods. Supported names: cyan, green, yellow, red, magenta, blue.
    """

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger:
    """Thin wrapper around :class:`logging.Logger` adding an optional ``color=`` keyword.

    Usage::

        logger.info("Document %s indexed", doc_id, color="green")

    Colors only apply to the console handler; the file handler writes plain text.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _with_color(self, kwargs: dict, color: str | None) -> dict:
        if color is None:
            return kwargs
        extra = dict(kwargs.get("extra") or {})
        extra["color"] = color
        return {**kwargs, "extra": extra}

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.debug(msg, *args, **self._with_color(kwargs, color))

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.info(msg, *args, **self._with_color(kwargs, color))

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.warning(msg, *args, **self._with_color(kwargs, color))

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.error(msg, *args, **self._with_color(kwargs, color))

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.exception(msg, *args, **self._with_color(kwargs, color))

    def __getattr__(self, name):
        """Delegate everything else (setLevel, handlers, ...) to the wrapped logger."""
        return getattr(self._logger, name)


def setup_logging(name: str = "docchat_bridge", log_dir: str | None = None) -> ColorLogger:
    """Configure console and file logging and return the application logger.

    Args:
        name (str): Name of the returned logger.
        log_dir (str | None): Directory for app.log. Defaults to $ROOT_DIR/logs,
            or ./logs when ROOT_DIR is not set.

    Returns:
        ColorLogger: The wrapped application logger.
    """
    if log_dir is None:
        log_dir = os.path.join(os.environ.get("ROOT_DIR", os.getcwd()), "logs")
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    os.makedirs(log_dir, exist_ok=True)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "pdf_parser": {"()": PdfParserFilter},
        },
        "formatters": {
            "standard": {
                "()": TimezoneFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
            "colored": {
                "()": ColoredFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "filters": ["pdf_parser"],
                "level": loglevel,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "standard",
                "filters": ["pdf_parser"],
                "level": loglevel,
                "filename": os.path.join(log_dir, "app.log"),
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": loglevel,
        },
    }

    logging.config.dictConfig(logging_config)

    # httpx logs every request at INFO, which drowns the streaming endpoint
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger(name))
