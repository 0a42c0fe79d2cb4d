"""Reporting — end-of-run summaries."""

from slackops.core.reporting.summary import (  # noqa: F401
    RunSummary,
    SummaryRow,
    build_summary,
    step_symbol,
)
