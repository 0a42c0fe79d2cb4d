"""Shell executor — real process execution."""
