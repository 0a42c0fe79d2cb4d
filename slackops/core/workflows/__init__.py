"""
Workflow definitions — the data the generic engine runs.

    from slackops.core.workflows import build_definition
    definition = build_definition("upgrade", settings)
"""

from __future__ import annotations

from collections.abc import Callable

from slackops.core.config.loader import ConsoleSettings
from slackops.core.models.workflow import WorkflowDefinition
from slackops.core.workflows.sbotools import build_sbotools
from slackops.core.workflows.upgrade import build_upgrade

WORKFLOWS: dict[str, Callable[[ConsoleSettings | None], WorkflowDefinition]] = {
    "upgrade": build_upgrade,
    "sbotools": build_sbotools,
}


def build_definition(key: str, settings: ConsoleSettings | None = None) -> WorkflowDefinition:
    """Build the named workflow definition.

    Raises:
        KeyError: Unknown workflow key.
    """
    try:
        builder = WORKFLOWS[key]
    except KeyError:
        raise KeyError(f"Unknown workflow '{key}' (known: {', '.join(WORKFLOWS)})") from None
    return builder(settings)
