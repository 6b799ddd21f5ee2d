"""Core module for configuration and utilities."""

from postpic.core.celery_app import celery_app
from postpic.core.config import settings

__all__ = [
    "celery_app",
    "settings",
]
