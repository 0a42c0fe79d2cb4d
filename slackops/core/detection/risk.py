"""
Risk detection (pure).

Scan captured command output for packages whose change makes the
bootloader update mandatory. No I/O, no subprocess, no imports beyond
stdlib.

The scan must always see the complete output of the action. Display
buffers keep only a prefix or tail, and a kernel package can appear
anywhere in an upgrade transcript.
"""

from __future__ import annotations

from collections.abc import Iterable

KERNEL_PACKAGE_PATTERNS: tuple[str, ...] = (
    "kernel-generic",
    "kernel-huge",
    "kernel-modules",
    "kernel-source",
    "kernel-headers",
    "kernel-firmware",
)
"""Package name fragments that signal a kernel change."""


def matched_risk_markers(
    output: str,
    patterns: Iterable[str] = KERNEL_PACKAGE_PATTERNS,
) -> list[str]:
    """Return the patterns found in ``output``, in pattern order."""
    return [p for p in patterns if p and p in output]


def detect_risk(
    output: str,
    patterns: Iterable[str] = KERNEL_PACKAGE_PATTERNS,
) -> bool:
    """True if any risk pattern occurs as a substring of ``output``."""
    return any(p and p in output for p in patterns)
