"""Version information for autolock."""

__version__ = "1.0.0"
