"""
System probes — Slackware release and privilege level.

Read-only. Used by the CLI header and the root check before running
any workflow.
"""

from __future__ import annotations

import logging
import os
from enum import StrEnum
from pathlib import Path

logger = logging.getLogger(__name__)

VERSION_FILE = "etc/slackware-version"


class SlackwareRelease(StrEnum):
    CURRENT = "current"
    V15_0 = "15.0"
    V14_2 = "14.2"
    V14_1 = "14.1"
    UNKNOWN = "unknown"

    @property
    def mirror_path(self) -> str:
        """Mirror directory for this release (current for unknown)."""
        if self in (SlackwareRelease.CURRENT, SlackwareRelease.UNKNOWN):
            return "slackware64-current"
        return f"slackware64-{self.value}"

    @property
    def display_name(self) -> str:
        if self is SlackwareRelease.CURRENT:
            return "Slackware64 Current"
        if self is SlackwareRelease.UNKNOWN:
            return "Slackware (unknown release)"
        return f"Slackware64 {self.value}"


def parse_release(text: str) -> SlackwareRelease:
    """Map the contents of /etc/slackware-version to a release."""
    lowered = text.strip().lower()
    if "current" in lowered:
        return SlackwareRelease.CURRENT
    for release in (SlackwareRelease.V15_0, SlackwareRelease.V14_2, SlackwareRelease.V14_1):
        if release.value in lowered:
            return release
    return SlackwareRelease.UNKNOWN


def detect_release(root: str | Path = "/") -> tuple[SlackwareRelease, str]:
    """Detect the installed release.

    Returns:
        ``(release, raw_text)``. ``raw_text`` is empty when the version
        file is missing or unreadable; the release is then ``UNKNOWN``.
    """
    path = Path(root) / VERSION_FILE
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.info("%s not found — not a Slackware system?", path)
        return SlackwareRelease.UNKNOWN, ""
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return SlackwareRelease.UNKNOWN, ""
    return parse_release(raw), raw


def is_root() -> bool:
    """Whether the process runs with effective UID 0."""
    return os.geteuid() == 0
