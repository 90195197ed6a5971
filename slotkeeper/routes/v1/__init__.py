# slotkeeper/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import bookings, health, metrics, reviews

__all__ = ["bookings", "health", "metrics", "reviews"]
