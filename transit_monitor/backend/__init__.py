"""
Async facade over the analytics API with static fallbacks.
"""

from .client import BackendClient, BackendUnavailableError

__all__ = [
    "BackendClient",
    "BackendUnavailableError",
]
