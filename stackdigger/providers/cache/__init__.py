"""Cache provider implementations."""

from stackdigger.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
