"""copilotauth — GitHub device-flow login and Copilot credential storage."""

__version__ = "0.1.0"
