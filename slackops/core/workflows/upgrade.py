"""
System upgrade workflow — slackpkg update through bootloader refresh.

    0  Update package list        slackpkg update
    1  Install new packages       slackpkg install-new
    2  Upgrade all packages       slackpkg upgrade-all   (risk scan)
    3  Clean system               slackpkg clean-system
    4  Update bootloader (lilo)   lilo                   (gate)

If step 2 touched a kernel package, skipping step 4 leaves a LILO
system unbootable; the gate becomes mandatory in that case.
"""

from __future__ import annotations

from slackops.core.config.loader import ConsoleSettings
from slackops.core.models.action import ProgramAction
from slackops.core.models.workflow import EnvironmentClass, StepSpec, WorkflowDefinition

KEY = "upgrade"

RISK_STEP = 2
GATE_STEP = 4

GRUB_NOTE = (
    "GRUB detected - skipping LILO. "
    "Run 'grub-mkconfig -o /boot/grub/grub.cfg' if kernel was updated."
)
UNKNOWN_NOTE = (
    "WARNING: No bootloader configuration found. "
    "Update your bootloader manually if needed."
)
KERNEL_NOTE = "*** KERNEL PACKAGES DETECTED - Bootloader update will be required ***"


def _slackpkg(subcommand: str) -> ProgramAction:
    return ProgramAction(program="slackpkg", args=[subcommand])


def build_upgrade(settings: ConsoleSettings | None = None) -> WorkflowDefinition:
    """Definition of the full system upgrade."""
    return WorkflowDefinition(
        key=KEY,
        title="System Update",
        summary_title="Update Complete",
        steps=[
            StepSpec(name="Update package list", action=_slackpkg("update")),
            StepSpec(name="Install new packages", action=_slackpkg("install-new")),
            StepSpec(name="Upgrade all packages", action=_slackpkg("upgrade-all")),
            StepSpec(name="Clean system", action=_slackpkg("clean-system")),
            StepSpec(name="Update bootloader (lilo)", action=ProgramAction(program="lilo")),
        ],
        gate_index=GATE_STEP,
        risk_index=RISK_STEP,
        gate_notes={
            EnvironmentClass.GRUB: GRUB_NOTE,
            EnvironmentClass.UNKNOWN: UNKNOWN_NOTE,
        },
        risk_note=KERNEL_NOTE,
    )
