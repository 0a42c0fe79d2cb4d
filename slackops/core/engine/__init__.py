"""Engine — the workflow state machine, its gate, guard and drive loop."""

from slackops.core.engine.gate import (  # noqa: F401
    GateKey,
    GateVerdict,
    gate_prompt,
    resolve_gate_key,
)
from slackops.core.engine.guard import SessionBusyError, SessionGuard  # noqa: F401
from slackops.core.engine.runner import WorkflowRunner, drive  # noqa: F401
from slackops.core.engine.workflow import WorkflowEngine  # noqa: F401
