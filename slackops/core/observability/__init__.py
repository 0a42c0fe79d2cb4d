"""Observability — logging setup and the command output log."""

from slackops.core.observability.logging_config import setup_logging  # noqa: F401
from slackops.core.observability.output_log import OutputLine, OutputLog  # noqa: F401
