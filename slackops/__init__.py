"""slackops — operator console for Slackware maintenance workflows."""

__version__ = "0.1.0"
