"""App Publisher: turns generated applications into live deployments."""

__version__ = "0.1.0"
