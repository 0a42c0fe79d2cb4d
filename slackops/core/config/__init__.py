"""Configuration — console settings loaded from YAML."""

from slackops.core.config.loader import (  # noqa: F401
    ConfigError,
    ConsoleSettings,
    find_config_file,
    load_settings,
)
