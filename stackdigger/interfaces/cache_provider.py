"""Abstract base class for response cache providers.

Source adapters cache upstream responses (NTS search pages, tracklists,
1001Tracklists DJ pages) so repeated builds within the TTL do not hammer the
upstream sites.  Only raw upstream payloads are cached; seen/referenced
filtering always runs against the live exposure state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICacheProvider(ABC):
    """Contract for async key-value caches."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored under *key*, or ``None`` if missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key*.

        Parameters
        ----------
        key:
            The cache key.
        value:
            JSON-like payload (dict, list, str).
        ttl:
            Time-to-live in seconds.  ``None`` uses the provider default.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*; no-op if absent."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry."""
