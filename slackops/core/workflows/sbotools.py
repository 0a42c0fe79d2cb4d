"""
sbotools bootstrap — install sbopkg, then use it to install sbotools.

No gate and no risk scan: every step simply has to succeed.
"""

from __future__ import annotations

from slackops.core.config.loader import ConsoleSettings
from slackops.core.models.action import DownloadAction, ProgramAction
from slackops.core.models.workflow import StepSpec, WorkflowDefinition

KEY = "sbotools"

COMPLETION_NOTE = "All steps completed successfully!"


def build_sbotools(settings: ConsoleSettings | None = None) -> WorkflowDefinition:
    """Definition of the sbotools bootstrap for the given settings."""
    settings = settings or ConsoleSettings()
    package = settings.sbopkg_path

    return WorkflowDefinition(
        key=KEY,
        title="sbotools Setup",
        summary_title="sbotools Setup Complete",
        steps=[
            StepSpec(
                name="Download sbopkg",
                action=DownloadAction(url=settings.sbopkg_url, destination=package),
            ),
            StepSpec(
                name="Install sbopkg",
                action=ProgramAction(program="installpkg", args=[package]),
            ),
            StepSpec(
                name="Sync sbopkg repository",
                action=ProgramAction(program="sbopkg", args=["-r"]),
            ),
            StepSpec(
                name="Install sbotools",
                action=ProgramAction(program="sbopkg", args=["-i", "sbotools"]),
            ),
            StepSpec(
                name="Configure sbotools repository",
                action=ProgramAction(program="sboconfig", args=["-r", settings.sbo_repo_url]),
            ),
            StepSpec(
                name="Fetch SlackBuilds snapshot",
                action=ProgramAction(program="sbosnap", args=["fetch"]),
            ),
        ],
        completion_note=COMPLETION_NOTE,
    )
