"""
Bitfrost Logging

One process-wide logging setup shared by every client module. The first
``get_logger`` call installs handlers on the ``bitfrost`` package logger,
never on the root logger: a rich console (or a plain stream when
highlighting is off) and, when enabled, a rotating file. A host that has
already configured the root logger keeps receiving package records through
its own handlers instead. Every installed handler formats through
``TerminalSafeFormatter`` with UTC timestamps.

Usage:
    >>> from bitfrost.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Registry refreshed")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_DATE_FORMAT,
    LOG_FILE_OUTPUT,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_FILE_SIZE,
)


LOG_FILE_PATH = Path.cwd() / "logs" / "bitfrost.log"
PACKAGE_LOGGER = "bitfrost"

# Transport libraries log every request at INFO
_QUIET_LIBRARIES = ("httpx", "httpcore")

_DATE_DIRECTIVE = re.compile(r"%(?:%|[-_0^#]*[EO]?[aAbBcdfGHIjmMpSuUVwWxXyYzZ])")
_DATE_FILLER = re.compile(r"[\d\s:/.,+\-TZ]*")

_THEME = Theme({
    "bitfrost.chain": "bold cyan",
    "bitfrost.correlation": "dim magenta",
    "bitfrost.decision_allow": "bold green",
    "bitfrost.decision_deny": "bold red",
    "bitfrost.level_critical": "bold red reverse",
    "bitfrost.level_debug": "dim",
    "bitfrost.level_error": "bold red",
    "bitfrost.level_info": "green",
    "bitfrost.level_warning": "bold yellow",
    "bitfrost.logger_name": "magenta",
    "bitfrost.timestamp": "cyan",
    "bitfrost.tx_hash": "yellow",
    "bitfrost.url": "underline cyan",
})


def _fallback_notice(what: str, reason: object) -> None:
    # Logging is not set up yet; write the notice directly
    sys.stderr.write(f"bitfrost.logger: {what} rejected ({reason}); using the default\n")


class LogManager:
    """
    Process-wide logging setup.

    ``LogManager()`` always returns the same object; ``configure`` runs its
    body once, however many threads call it.
    """

    _instance: Optional["LogManager"] = None
    _instance_lock = threading.Lock()
    _configure_lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        with cls._instance_lock:
            if cls._instance is None:
                manager = super().__new__(cls)
                manager._configured = False
                cls._instance = manager
        return cls._instance

    @property
    def is_configured(self) -> bool:
        return self._configured

    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """Return ``log_format`` if a record formats cleanly with it, else the default."""
        if not log_format:
            return str(LOG_FORMAT.default())
        log_format = str(log_format)
        try:
            probe = logging.Formatter(log_format).format(logging.makeLogRecord({"msg": "probe"}))
        except (ValueError, KeyError, TypeError) as e:
            _fallback_notice(f"log format {log_format!r}", e)
            return str(LOG_FORMAT.default())
        if "%(" in probe:
            _fallback_notice(f"log format {log_format!r}", "unexpanded field")
            return str(LOG_FORMAT.default())
        return log_format

    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """
        Accept a strftime pattern made of directives and separators only.

        At least one directive is required; anything else falls back to the
        default date format.
        """
        if not date_format:
            return str(LOG_DATE_FORMAT.default())
        date_format = str(date_format)
        leftover = _DATE_DIRECTIVE.sub("", date_format)
        if not _DATE_DIRECTIVE.search(date_format) or not _DATE_FILLER.fullmatch(leftover):
            _fallback_notice(f"date format {date_format!r}", "not a strftime pattern")
            return str(LOG_DATE_FORMAT.default())
        return date_format

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Install handlers on the ``bitfrost`` logger. Later calls are no-ops.

        The root logger is never modified. When the host application has
        already configured it, no handlers are added and package records
        propagate to the host's handlers.

        Args:
            log_level: Level name; ``LOG_LEVEL`` when omitted
            log_file: Rotating file path; ``logs/bitfrost.log`` when omitted
            console_output: Attach a console handler
            file_output: Attach a rotating file handler; ``LOG_FILE_OUTPUT`` when omitted
        """
        with self._configure_lock:
            if self._configured:
                return

            level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)
            formatter = self._formatter()
            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)
            handlers = []
            package = logging.getLogger(PACKAGE_LOGGER)
            # A configured root means the host routes records; ours propagate to it
            if not logging.getLogger().handlers:
                package.setLevel(level)
                if console_output:
                    handlers.append(self._console_handler())
                if file_output:
                    handlers.append(self._file_handler(log_file or LOG_FILE_PATH))
            for handler in handlers:
                handler.setLevel(level)
                handler.setFormatter(formatter)
                package.addHandler(handler)

            for name in _QUIET_LIBRARIES:
                logging.getLogger(name).setLevel(logging.WARNING)

            self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)

    def _formatter(self) -> "TerminalSafeFormatter":
        formatter = TerminalSafeFormatter(
            fmt=self.validate_log_format(LOG_FORMAT),
            datefmt=self.validate_date_format(LOG_DATE_FORMAT) + " UTC",
        )
        formatter.converter = time.gmtime
        return formatter

    @staticmethod
    def _console_handler() -> logging.Handler:
        if not LOG_CONSOLE_HIGHLIGHTING:
            return logging.StreamHandler(sys.stderr)
        return RichHandler(
            console=Console(theme=_THEME, highlight=False, stderr=True),
            highlighter=BitfrostLogHighlighter(),
            rich_tracebacks=True,
            show_time=False,
            show_level=False,
            show_path=False,
            markup=False,
            keywords=[],
        )

    @staticmethod
    def _file_handler(path: Path) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            str(path),
            maxBytes=LOG_MAX_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that drops ANSI escapes and control characters.

    Gateway responses (denial reasons, addresses, raw logs) end up in log
    lines verbatim; tabs and newlines survive, everything else non-printable
    does not.
    """

    _unsafe_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"      # CSI sequences
        r"|\x1b[@-Z\\-_]"               # two-byte escapes
        r"|[\x00-\x08\x0b-\x1f\x7f]"
    )

    @classmethod
    def sanitize(cls, text: str) -> str:
        return cls._unsafe_re.sub("", text) if text else text

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class BitfrostLogHighlighter(RegexHighlighter):
    """Colors bridge decisions, chain ids, correlation ids and tx hashes."""

    base_style = "bitfrost."
    highlights = [
        r"(?P<timestamp>^\S+ UTC)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"\b(?:DEBUG|INFO|WARNING|ERROR|CRITICAL) - (?P<logger_name>[\w.]+) - ",
        r"(?P<decision_allow>\ballowed=True\b)",
        r"(?P<decision_deny>\ballowed=False\b)",
        r"(?P<chain>\bchain=\S+)",
        r"(?P<correlation>\bcid=[0-9a-f\-]{8,}\b)",
        r"(?P<tx_hash>\b(?:0x)?[0-9A-Fa-f]{64}\b)",
        r"(?P<url>https?://\S+)",
    ]


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, configuring the process-wide setup on first use."""
    return _manager.get_logger(name)
