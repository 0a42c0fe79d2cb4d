"""
Domain models — actions, results and workflow state.

All models are re-exported here for convenient access:

    from slackops.core.models import ProgramAction, ActionResult, Step, RunOutcome
"""

from slackops.core.models.action import (
    Action,
    ActionResult,
    DownloadAction,
    ProgramAction,
    StdinProgramAction,
)
from slackops.core.models.workflow import (
    AwaitingGate,
    Complete,
    EnvironmentClass,
    GateBehavior,
    GateMode,
    Halted,
    Idle,
    RunOutcome,
    Running,
    Step,
    StepSpec,
    StepStatus,
    WorkflowDefinition,
    WorkflowState,
    WorkflowStateError,
)

__all__ = [
    # action.py
    "Action",
    "ActionResult",
    "DownloadAction",
    "ProgramAction",
    "StdinProgramAction",
    # workflow.py
    "AwaitingGate",
    "Complete",
    "EnvironmentClass",
    "GateBehavior",
    "GateMode",
    "Halted",
    "Idle",
    "RunOutcome",
    "Running",
    "Step",
    "StepSpec",
    "StepStatus",
    "WorkflowDefinition",
    "WorkflowState",
    "WorkflowStateError",
]
