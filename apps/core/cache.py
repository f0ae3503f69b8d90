"""
Caching utilities for per-session role state.

Provides centralized cache management with consistent TTLs and invalidation patterns.
"""
import logging
from typing import Any, Callable
from django.core.cache import cache

logger = logging.getLogger(__name__)


class CacheKeys:
    """Centralized cache key definitions with consistent naming."""

    # Session role state, with the account it was fetched for (TTL: 5 minutes)
    ROLE_STATE = "roles:state:{session_key}"

    # Role metadata published to clients (TTL: 1 hour)
    ROLE_METADATA = "roles:metadata:{version}"

    @classmethod
    def format(cls, key_template: str, **kwargs) -> str:
        """Format a cache key with provided parameters."""
        return key_template.format(**kwargs)


class CacheTTL:
    """Cache TTL (Time To Live) constants in seconds."""

    ROLE_STATE = 300  # 5 minutes
    ROLE_METADATA = 3600  # 1 hour


class CacheService:
    """Service for managing cached data with consistent patterns."""

    @staticmethod
    def get(key: str, default: Any = None) -> Any:
        """
        Get value from cache.

        Args:
            key: Cache key
            default: Default value if key not found

        Returns:
            Cached value or default
        """
        try:
            value = cache.get(key, default)
            if value is not None:
                logger.debug(f"Cache HIT: {key}")
            else:
                logger.debug(f"Cache MISS: {key}")
            return value
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {str(e)}")
            return default

    @staticmethod
    def set(key: str, value: Any, ttl: int = None) -> bool:
        """
        Set value in cache.

        Returns:
            True if successful, False otherwise
        """
        try:
            cache.set(key, value, timeout=ttl)
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {str(e)}")
            return False

    @staticmethod
    def delete(key: str) -> bool:
        """
        Delete value from cache.

        Returns:
            True if successful, False otherwise
        """
        try:
            cache.delete(key)
            logger.debug(f"Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {str(e)}")
            return False

    @staticmethod
    def get_or_set(key: str, default_func: Callable, ttl: int = None) -> Any:
        """
        Get value from cache or set it using default_func if not found.
        """
        value = CacheService.get(key)
        if value is None:
            value = default_func()
            if value is not None:
                CacheService.set(key, value, ttl)
        return value


class RoleCacheInvalidator:
    """Utility for invalidating role caches."""

    @staticmethod
    def invalidate_session_roles(session_key: str):
        """Drop the cached role state of one session."""
        CacheService.delete(CacheKeys.format(CacheKeys.ROLE_STATE, session_key=session_key))
        logger.info(f"Invalidated role state cache for session {session_key}")
