"""
Tests for the confirmation gate protocol (pure functions).
"""

import pytest

from slackops.core.engine.gate import (
    GateKey,
    GateVerdict,
    KeyKind,
    gate_key_hints,
    gate_prompt,
    masked_input,
    resolve_gate_key,
)
from slackops.core.models.workflow import GateMode

OPTIONAL = GateMode.OPTIONAL
MANDATORY = GateMode.MANDATORY


class TestFromTerminal:
    @pytest.mark.parametrize(
        "raw,kind",
        [
            ("\x7f", KeyKind.BACKSPACE),
            ("\x08", KeyKind.BACKSPACE),
            ("\x1b", KeyKind.ESCAPE),
            ("\r", KeyKind.ENTER),
            ("\n", KeyKind.ENTER),
            ("s", KeyKind.CHAR),
            ("\x1b[A", KeyKind.OTHER),
            ("\x03", KeyKind.OTHER),
        ],
    )
    def test_translation(self, raw: str, kind: KeyKind):
        assert GateKey.from_terminal(raw).kind is kind

    def test_char_kept(self):
        assert GateKey.from_terminal("k").char == "k"


class TestOptionalMode:
    @pytest.mark.parametrize("char", ["y", "Y"])
    def test_affirm(self, char: str):
        assert resolve_gate_key(OPTIONAL, "", GateKey.char_key(char)).verdict is GateVerdict.AFFIRM

    @pytest.mark.parametrize("key", [GateKey.char_key("n"), GateKey.char_key("N"), GateKey.escape()])
    def test_decline(self, key: GateKey):
        assert resolve_gate_key(OPTIONAL, "", key).verdict is GateVerdict.DECLINE

    def test_enter_is_not_an_answer(self):
        decision = resolve_gate_key(OPTIONAL, "", GateKey(KeyKind.ENTER))
        assert decision.verdict is GateVerdict.PENDING


class TestMandatoryMode:
    def _feed(self, chars: str, buffer: str = "") -> tuple[GateVerdict, str]:
        verdict = GateVerdict.PENDING
        for c in chars:
            decision = resolve_gate_key(MANDATORY, buffer, GateKey.char_key(c))
            verdict, buffer = decision.verdict, decision.buffer
        return verdict, buffer

    def test_case_insensitive_keyword(self):
        assert self._feed("sKiP")[0] is GateVerdict.DECLINE

    def test_partial_keyword_pending(self):
        assert self._feed("SKI") == (GateVerdict.PENDING, "SKI")

    def test_mismatch_clears(self):
        assert self._feed("SKX") == (GateVerdict.PENDING, "")

    def test_wrong_first_char(self):
        assert self._feed("K") == (GateVerdict.PENDING, "")

    def test_n_is_just_a_mismatch(self):
        assert self._feed("SN") == (GateVerdict.PENDING, "")

    def test_affirm_regardless_of_buffer(self):
        decision = resolve_gate_key(MANDATORY, "SKI", GateKey.char_key("Y"))
        assert decision.verdict is GateVerdict.AFFIRM

    def test_backspace_pops(self):
        decision = resolve_gate_key(MANDATORY, "SKI", GateKey.backspace())
        assert decision.buffer == "SK"
        assert resolve_gate_key(MANDATORY, "", GateKey.backspace()).buffer == ""

    def test_escape_clears_without_resolving(self):
        decision = resolve_gate_key(MANDATORY, "SK", GateKey.escape())
        assert decision.verdict is GateVerdict.PENDING
        assert decision.buffer == ""

    def test_enter_keeps_buffer(self):
        decision = resolve_gate_key(MANDATORY, "SK", GateKey(KeyKind.ENTER))
        assert decision.verdict is GateVerdict.PENDING
        assert decision.buffer == "SK"

    def test_custom_keyword(self):
        verdict = GateVerdict.PENDING
        buffer = ""
        for c in "abort":
            decision = resolve_gate_key(MANDATORY, buffer, GateKey.char_key(c), "ABORT")
            verdict, buffer = decision.verdict, decision.buffer
        assert verdict is GateVerdict.DECLINE


class TestPresentation:
    def test_masked_input(self):
        assert masked_input("") == "____"
        assert masked_input("SK") == "**__"
        assert masked_input("SKIP") == "****"

    def test_mandatory_prompt(self):
        lines = gate_prompt(MANDATORY, step_name="Update bootloader (lilo)", command="lilo", buffer="S")
        assert lines[0] == "!! KERNEL UPDATED - BOOTLOADER REQUIRED !!"
        assert "Type SKIP to bypass at your own risk" in lines
        assert "Input: *___" in lines

    def test_optional_prompt_mentions_command(self):
        lines = gate_prompt(OPTIONAL, step_name="Update bootloader (lilo)", command="lilo")
        assert "Run 'lilo' to update the bootloader?" in lines
        assert "[N] No - skip this step" in lines

    def test_key_hints(self):
        assert gate_key_hints(OPTIONAL) == [("Y", "Yes"), ("N", "No")]
        assert gate_key_hints(MANDATORY)[1] == ("Type SKIP", "Bypass")
