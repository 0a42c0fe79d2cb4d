"""
Logging configuration — one call from the CLI group sets up the process.

Every module logs through ``logging.getLogger(__name__)``. Records carry
the operation id of the workflow run in progress (``%(run_id)s``), so a
log file can be matched against the audit ledger.

Console level, first match wins:
    --debug > -v > -q > SLACKOPS_LOG_LEVEL > WARNING

File output: SLACKOPS_LOG_FILE, at SLACKOPS_LOG_FILE_LEVEL (defaults to
the console level).
"""

from __future__ import annotations

import logging
import os
import sys

LEVEL_ENV_VAR = "SLACKOPS_LOG_LEVEL"
FILE_ENV_VAR = "SLACKOPS_LOG_FILE"
FILE_LEVEL_ENV_VAR = "SLACKOPS_LOG_FILE_LEVEL"

NO_RUN = "-"

# Console formats keyed by the most verbose level they serve.
_CONSOLE_FORMATS = (
    (logging.DEBUG, "%(asctime)s %(levelname)-7s %(run_id)s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s %(run_id)s %(name)s: %(message)s", "%H:%M:%S"),
)
_CONSOLE_PLAIN = "%(message)s"

_FILE_FORMAT = "%(asctime)s %(levelname)-7s %(run_id)s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# asyncio reports slow callbacks at DEBUG
_NOISY_LOGGERS = ("asyncio",)

_current_run = NO_RUN
_installed: list[logging.Handler] = []


def bind_run(operation_id: str | None) -> None:
    """Stamp subsequent records with ``operation_id`` (None clears it)."""
    global _current_run
    _current_run = operation_id or NO_RUN


def current_run() -> str:
    return _current_run


class RunIdFilter(logging.Filter):
    """Adds ``record.run_id`` for the formats above."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _current_run
        return True


def resolve_level(*, debug: bool = False, verbose: bool = False, quiet: bool = False) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    if quiet:
        return logging.ERROR
    return level_from_name(os.environ.get(LEVEL_ENV_VAR))


def level_from_name(name: str | None, default: int = logging.WARNING) -> int:
    """``"debug"`` → ``logging.DEBUG``; unknown or empty names give ``default``."""
    if not name:
        return default
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else default


def setup_logging(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> int:
    """Install the console (and optional file) handler on the root logger.

    ``log_file`` / ``log_file_level`` default to the environment. Returns
    the console level.
    """
    level = resolve_level(debug=debug, verbose=verbose, quiet=quiet)
    log_file = log_file or os.environ.get(FILE_ENV_VAR)
    log_file_level = log_file_level or os.environ.get(FILE_LEVEL_ENV_VAR)

    fmt, datefmt = _CONSOLE_PLAIN, None
    for threshold, tier_fmt, tier_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = tier_fmt, tier_datefmt
            break

    run_filter = RunIdFilter()
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    console.addFilter(run_filter)

    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)
    _installed.append(console)

    root_level = level
    if log_file:
        file_level = level_from_name(log_file_level, default=level)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        file_handler.addFilter(run_filter)
        root.addHandler(file_handler)
        _installed.append(file_handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if not debug:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False
    return level
