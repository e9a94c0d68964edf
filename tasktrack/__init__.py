"""Multi-user task tracker REST service."""

__version__ = "0.1.0"
