"""Start/stop task assignment plugin for GitHub issues."""

__version__ = "1.0.0"
