"""
Confirmation gate protocol — the sub-state machine at the gate step.

Two modes:

    optional   [Y] run the step, [N]/[Esc] skip it
    mandatory  [Y] run the step, or type the bypass keyword to skip

In mandatory mode the keyword is matched incrementally and
case-insensitively. A wrong character throws away everything typed so
far; backspace removes one character; escape clears the buffer without
resolving anything.

``resolve_gate_key()`` is pure: the engine owns the state and applies
the returned decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from slackops.core.models.workflow import GateMode

AFFIRM_KEYS = frozenset({"y", "Y"})
NEGATIVE_KEYS = frozenset({"n", "N"})


class KeyKind(StrEnum):
    CHAR = "char"
    BACKSPACE = "backspace"
    ESCAPE = "escape"
    ENTER = "enter"
    OTHER = "other"


@dataclass(frozen=True)
class GateKey:
    """One keyboard event routed to the gate."""

    kind: KeyKind
    char: str = ""

    @classmethod
    def char_key(cls, char: str) -> GateKey:
        return cls(KeyKind.CHAR, char)

    @classmethod
    def backspace(cls) -> GateKey:
        return cls(KeyKind.BACKSPACE)

    @classmethod
    def escape(cls) -> GateKey:
        return cls(KeyKind.ESCAPE)

    @classmethod
    def from_terminal(cls, raw: str) -> GateKey:
        """Translate what a terminal read (e.g. ``click.getchar()``) returned."""
        if raw in ("\x7f", "\x08"):
            return cls(KeyKind.BACKSPACE)
        if raw == "\x1b":
            return cls(KeyKind.ESCAPE)
        if raw in ("\r", "\n", "\r\n"):
            return cls(KeyKind.ENTER)
        if len(raw) == 1 and raw.isprintable():
            return cls(KeyKind.CHAR, raw)
        return cls(KeyKind.OTHER)


class GateVerdict(StrEnum):
    PENDING = "pending"
    AFFIRM = "affirm"
    DECLINE = "decline"


@dataclass(frozen=True)
class GateDecision:
    verdict: GateVerdict
    buffer: str = ""


def resolve_gate_key(
    mode: GateMode,
    buffer: str,
    key: GateKey,
    keyword: str = "SKIP",
) -> GateDecision:
    """Apply one key to the gate and return the verdict plus new buffer."""
    if key.kind is KeyKind.CHAR and key.char in AFFIRM_KEYS:
        return GateDecision(GateVerdict.AFFIRM)

    if mode is GateMode.OPTIONAL:
        if key.kind is KeyKind.ESCAPE or (
            key.kind is KeyKind.CHAR and key.char in NEGATIVE_KEYS
        ):
            return GateDecision(GateVerdict.DECLINE)
        return GateDecision(GateVerdict.PENDING, buffer)

    # Mandatory
    if key.kind is KeyKind.BACKSPACE:
        return GateDecision(GateVerdict.PENDING, buffer[:-1])
    if key.kind is KeyKind.ESCAPE:
        return GateDecision(GateVerdict.PENDING, "")
    if key.kind is not KeyKind.CHAR:
        return GateDecision(GateVerdict.PENDING, buffer)

    typed = key.char.upper()
    position = len(buffer)
    if position < len(keyword) and typed == keyword[position]:
        buffer += typed
        if buffer == keyword:
            return GateDecision(GateVerdict.DECLINE, buffer)
        return GateDecision(GateVerdict.PENDING, buffer)
    return GateDecision(GateVerdict.PENDING, "")


# ── Presentation helpers ────────────────────────────────────────────


def masked_input(buffer: str, keyword: str = "SKIP") -> str:
    """``"**__"`` style progress display for the bypass keyword."""
    return "*" * len(buffer) + "_" * max(len(keyword) - len(buffer), 0)


def gate_prompt(
    mode: GateMode,
    *,
    step_name: str,
    command: str,
    buffer: str = "",
    keyword: str = "SKIP",
) -> list[str]:
    """Dialog text for the host to show while the gate is pending."""
    if mode is GateMode.MANDATORY:
        return [
            "!! KERNEL UPDATED - BOOTLOADER REQUIRED !!",
            "",
            "Your kernel was updated.",
            "You MUST update the bootloader or your",
            "system will NOT boot after reboot!",
            "",
            f"[Y] {step_name} now (Recommended)",
            f"Type {keyword} to bypass at your own risk",
            "",
            f"Input: {masked_input(buffer, keyword)}",
            "[Backspace] to correct",
        ]
    return [
        f"{step_name}?",
        "",
        f"Run '{command}' to update the bootloader?",
        "No kernel changes detected - safe to skip.",
        "",
        "[Y] Yes - run this step",
        "[N] No - skip this step",
    ]


def gate_key_hints(mode: GateMode, keyword: str = "SKIP") -> list[tuple[str, str]]:
    if mode is GateMode.MANDATORY:
        return [("Y", "Update"), (f"Type {keyword}", "Bypass")]
    return [("Y", "Yes"), ("N", "No")]
