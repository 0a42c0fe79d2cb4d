"""
Tests for the shipped workflow definitions.
"""

import pytest

from slackops.core.config.loader import ConsoleSettings
from slackops.core.models.action import DownloadAction
from slackops.core.workflows import WORKFLOWS, build_definition


class TestUpgradeDefinition:
    def test_steps_and_commands(self):
        definition = build_definition("upgrade")
        assert [(s.name, s.action.describe()) for s in definition.steps] == [
            ("Update package list", "slackpkg update"),
            ("Install new packages", "slackpkg install-new"),
            ("Upgrade all packages", "slackpkg upgrade-all"),
            ("Clean system", "slackpkg clean-system"),
            ("Update bootloader (lilo)", "lilo"),
        ]
        assert definition.risk_index == 2
        assert definition.gate_index == 4
        assert definition.bypass_keyword == "SKIP"


class TestSbotoolsDefinition:
    def test_default_steps(self):
        definition = build_definition("sbotools")
        assert definition.gate_index is None
        assert definition.risk_index is None
        commands = [s.action.describe() for s in definition.steps]
        assert commands[1:] == [
            "installpkg /tmp/sbopkg-0.38.2-noarch-1_wsr.tgz",
            "sbopkg -r",
            "sbopkg -i sbotools",
            "sboconfig -r https://gitlab.com/SlackBuilds.org/slackbuilds.git",
            "sbosnap fetch",
        ]

    def test_download_follows_settings(self):
        settings = ConsoleSettings(
            download_dir="/var/cache/slackops",
            sbopkg_url="https://mirror.example/sbopkg-0.38.3-noarch-1_wsr.tgz",
        )
        definition = build_definition("sbotools", settings)
        download = definition.steps[0].action
        assert isinstance(download, DownloadAction)
        assert download.destination == "/var/cache/slackops/sbopkg-0.38.3-noarch-1_wsr.tgz"
        assert definition.steps[1].action.args == [download.destination]


class TestRegistry:
    def test_known_keys(self):
        assert sorted(WORKFLOWS) == ["sbotools", "upgrade"]

    def test_unknown_key(self):
        with pytest.raises(KeyError, match="Unknown workflow"):
            build_definition("kernel-rebuild")
