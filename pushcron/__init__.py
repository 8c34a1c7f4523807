"""pushcron: scheduled push notifications with bounded retry."""

__version__ = "0.1.0"
