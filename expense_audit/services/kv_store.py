# -*- coding: utf-8 -*-
"""
KV Store Module (Redis)

Optional persistent store for exchange rate tables, so historical tables
fetched in one run are reused by the next one.
"""

import logging
import json
from typing import Optional, Dict, Any
from redis import Redis
from expense_audit.config import REDIS_URL, KV_ENABLED

logger = logging.getLogger(__name__)


class KVStore:
    """
    KV Store wrapper for Redis operations

    Provides simple get/set/delete interface for caching data with TTL support.
    """

    def __init__(self, client: Optional[Redis] = None):
        """
        Initialize KV store

        Args:
            client: Redis client instance (if None, will try to create one)
        """
        self.client = client or get_kv_client()

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from KV store

        Args:
            key: Cache key

        Returns:
            Cached value (dict) or None if not found
        """
        if not self.client:
            return None

        try:
            value = self.client.get(key)
            if not value:
                return None

            return json.loads(value)

        except Exception as e:
            logger.error(f"Failed to get key {key}: {e}")
            return None

    def set(self, key: str, value: Dict[str, Any], ttl: int = 3600) -> bool:
        """
        Set value in KV store with TTL

        Args:
            key: Cache key
            value: Value to cache (dict)
            ttl: Time to live in seconds (default: 3600 = 1 hour)

        Returns:
            bool: True if successful, False otherwise
        """
        if not self.client:
            return False

        try:
            json_value = json.dumps(value, ensure_ascii=False)
            self.client.setex(key, ttl, json_value)
            return True

        except Exception as e:
            logger.error(f"Failed to set key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete a single key. Returns True if the call reached Redis."""
        if not self.client:
            return False

        try:
            self.client.delete(key)
            return True

        except Exception as e:
            logger.error(f"Failed to delete key {key}: {e}")
            return False

    def delete_matching(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern

        Args:
            pattern: Redis MATCH pattern (e.g. "exchange_rate:*")

        Returns:
            Number of keys deleted
        """
        if not self.client:
            return 0

        deleted = 0
        try:
            for key in self.client.scan_iter(match=pattern):
                self.client.delete(key)
                deleted += 1
        except Exception as e:
            logger.error(f"Failed to delete keys matching {pattern}: {e}")

        return deleted


def get_kv_client() -> Optional[Redis]:
    """
    Create a Redis client from REDIS_URL

    Returns:
        Redis client, or None when Redis is not configured
    """
    if not KV_ENABLED:
        logger.info("Redis not enabled, rate tables stay in memory only")
        return None

    try:
        client = Redis.from_url(
            REDIS_URL,
            decode_responses=True
        )
        return client
    except Exception as e:
        logger.error(f"Failed to create Redis client: {e}")
        return None
