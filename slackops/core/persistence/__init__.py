"""Persistence — the audit ledger of finished runs."""

from slackops.core.persistence.audit import (  # noqa: F401
    AuditEntry,
    AuditWriter,
    generate_operation_id,
)
