"""zonepilot: schedule-aware overlay control for tado° air-conditioning zones."""

__version__ = "0.1.0"
