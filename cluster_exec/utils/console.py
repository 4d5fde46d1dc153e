"""Console logging setup with a colourful formatter."""

import logging
import re
import sys
from datetime import datetime
from pathlib import Path

# Between DEBUG and INFO: per-command detail an operator asks for with -v.
VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "VERBOSE": COLORS["cyan"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

COMPONENT_COLORS = {
    "cluster_exec.services.executors": COLORS["bright_magenta"],
    "cluster_exec.services.cluster": COLORS["bright_cyan"],
    "cluster_exec.services.pool": COLORS["magenta"],
    "cluster_exec.services.aggregator": COLORS["bright_blue"],
    "cluster_exec.config": COLORS["green"],
    "default": COLORS["white"],
}

PACKAGE_LOGGER = "cluster_exec"

_log_file_path: Path | None = None


class ColorfulFormatter(logging.Formatter):
    """Log formatter with timestamps, level colours and component highlighting."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        return f"{dt.strftime('%Y%m%d:%H:%M:%S')}.{int(record.msecs):03d}"

    def _format_level(self, record: logging.LogRecord) -> str:
        level = record.levelname
        color = LEVEL_COLORS.get(level, COLORS["white"])
        return self._colorize(f"{level:<8}", color)

    def _format_component(self, record: logging.LogRecord) -> str:
        name = record.name
        if name.startswith(PACKAGE_LOGGER + "."):
            name = name[len(PACKAGE_LOGGER) + 1 :]
        color = self._get_component_color(record.name)
        return self._colorize(f"{name:<20}", color)

    def _highlight_message(self, message: str) -> str:
        """Highlight user@host targets and segment numbers."""
        if not self.use_colors:
            return message
        message = re.sub(
            r"(\w+@[\w.\-]+)",
            f"{COLORS['bright_magenta']}\\1{COLORS['reset']}",
            message,
        )
        message = re.sub(
            r"(segment -?\d+)",
            f"{COLORS['bright_yellow']}\\1{COLORS['reset']}",
            message,
        )
        return message

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with colors and a timestamp."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._format_level(record)
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())
        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    level: str = "INFO",
    use_colors: bool = True,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Configure the cluster_exec package logger.

    Adds a stderr handler (colours only on a TTY) and, if ``log_file`` is
    given, a plain-text file handler that records everything down to DEBUG.
    Safe to call more than once; existing handlers are replaced.

    Returns:
        The configured package logger.
    """
    global _log_file_path

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    level_name = level.upper()
    level_value = VERBOSE if level_name == "VERBOSE" else getattr(logging, level_name, logging.INFO)

    if not sys.stderr.isatty():
        use_colors = False

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(level_value)
    stream_handler.setFormatter(ColorfulFormatter(use_colors=use_colors))
    package_logger.addHandler(stream_handler)

    _log_file_path = None
    if log_file:
        _log_file_path = Path(log_file).expanduser()
        _log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(_log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(ColorfulFormatter(use_colors=False))
        package_logger.addHandler(file_handler)
        package_logger.setLevel(logging.DEBUG)
    else:
        package_logger.setLevel(level_value)

    package_logger.propagate = False

    lg = logging.getLogger("asyncssh")
    lg.setLevel(logging.WARNING)

    return package_logger


def get_log_file_path() -> str:
    """Return where the full log is written, for "see log" hints."""
    if _log_file_path is None:
        return "the log output"
    return str(_log_file_path)
