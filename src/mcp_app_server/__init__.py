"""Automation of application server configuration, live and offline."""

__version__ = "0.1.0"
