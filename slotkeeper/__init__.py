"""slotkeeper - booking lifecycle and scheduling integrity service."""

__version__ = "0.1.0"
