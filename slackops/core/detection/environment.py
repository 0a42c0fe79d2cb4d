"""
Environment classification — which bootloader manages this system.

Read-only existence probes against a handful of well-known paths.
File contents are never read here; locating the selected boot entry
is a separate concern.
"""

from __future__ import annotations

import logging
from pathlib import Path

from slackops.core.models.workflow import EnvironmentClass

logger = logging.getLogger(__name__)


BOOTLOADER_MARKERS: tuple[tuple[EnvironmentClass, tuple[str, ...]], ...] = (
    (EnvironmentClass.LILO, ("etc/lilo.conf",)),
    (
        EnvironmentClass.GRUB,
        ("boot/grub/grub.cfg", "boot/grub2/grub.cfg", "etc/default/grub"),
    ),
)
"""Markers in priority order (first recognised class wins).

Paths are relative to the system root so the probe can target a
mounted tree (chroot install, tests).
"""


def classify_environment(root: str | Path = "/") -> EnvironmentClass:
    """Classify the bootloader of the system mounted at ``root``.

    Slackware installs LILO by default, so it is checked first: a
    system carrying both a lilo.conf and GRUB files is treated as LILO.

    Returns:
        ``EnvironmentClass.LILO`` | ``GRUB`` | ``UNKNOWN``
    """
    base = Path(root)
    for env_class, markers in BOOTLOADER_MARKERS:
        for marker in markers:
            if (base / marker).exists():
                logger.debug("Bootloader marker %s → %s", marker, env_class)
                return env_class
    logger.debug("No bootloader marker under %s", base)
    return EnvironmentClass.UNKNOWN
