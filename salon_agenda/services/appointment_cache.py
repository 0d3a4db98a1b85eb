#!/usr/bin/env python3
"""
Cache for per-day appointment listings used by slot availability.

Entries are keyed by business and date and versioned per business: every
write through the appointment store bumps the business's version, which
makes all of its cached days unreachable at once.
"""

import asyncio
import json
import logging
import time
import uuid
from datetime import date
from typing import Dict, List, Optional, Tuple

import redis.asyncio as redis

from salon_agenda.core.config import settings
from salon_agenda.services.availability import BookedInterval

logger = logging.getLogger(__name__)


class AppointmentListingCache:
    """Redis when REDIS_URL is configured, in-process TTL map otherwise."""

    def __init__(self, redis_url: Optional[str] = None, ttl: Optional[int] = None):
        self.redis_url = redis_url if redis_url is not None else settings.REDIS_URL
        self.ttl = ttl if ttl is not None else settings.APPOINTMENT_CACHE_TTL
        self._redis_client: Optional[redis.Redis] = None
        self._redis_failed = False
        self._versions: Dict[str, int] = {}
        self._entries: Dict[str, Tuple[float, List[dict]]] = {}

    async def get_redis_client(self) -> Optional[redis.Redis]:
        if not self.redis_url or self._redis_failed:
            return None
        if self._redis_client is None:
            try:
                client = redis.from_url(
                    self.redis_url,
                    decode_responses=True,
                    socket_connect_timeout=3,
                    socket_timeout=2,
                )
                await client.ping()
                self._redis_client = client
                logger.info("Appointment cache Redis connection established")
            except Exception as e:
                logger.warning("Appointment cache Redis connection failed, using in-memory cache: %s", e)
                self._redis_failed = True
                return None
        return self._redis_client

    @staticmethod
    def _version_key(business_id: uuid.UUID) -> str:
        return f"appointments:{business_id}:version"

    @staticmethod
    def _entry_key(business_id: uuid.UUID, version: int, day: date) -> str:
        return f"appointments:{business_id}:v{version}:{day.isoformat()}"

    async def _version(self, business_id: uuid.UUID) -> int:
        client = await self.get_redis_client()
        if client:
            raw = await client.get(self._version_key(business_id))
            return int(raw or 0)
        return self._versions.get(str(business_id), 0)

    async def get(self, business_id: uuid.UUID, day: date) -> Optional[List[BookedInterval]]:
        try:
            key = self._entry_key(business_id, await self._version(business_id), day)
            client = await self.get_redis_client()
            if client:
                raw = await asyncio.wait_for(client.get(key), timeout=0.2)
                if not raw:
                    return None
                rows = json.loads(raw)
            else:
                entry = self._entries.get(key)
                if entry is None:
                    return None
                expires_at, rows = entry
                if expires_at < time.monotonic():
                    self._entries.pop(key, None)
                    return None
            return [BookedInterval.from_dict(r) for r in rows]
        except Exception as e:
            # A cache miss is always safe; the store is the source of truth
            logger.warning("Appointment cache read failed: %s", e)
            return None

    async def current_version(self, business_id: uuid.UUID) -> Optional[int]:
        """Version to pass to `set` when the listing is read after this call; None when unreadable."""
        try:
            return await self._version(business_id)
        except Exception as e:
            logger.warning("Appointment cache version read failed: %s", e)
            return None

    async def set(
        self,
        business_id: uuid.UUID,
        day: date,
        intervals: List[BookedInterval],
        version: Optional[int] = None,
    ) -> None:
        """
        Store a listing. Callers that query the store first should take
        `current_version` before the query and pass it here, so a write
        committed in between leaves the entry under an outdated version.
        """
        rows = [i.to_dict() for i in intervals]
        try:
            if version is None:
                version = await self._version(business_id)
            key = self._entry_key(business_id, version, day)
            client = await self.get_redis_client()
            if client:
                await client.set(key, json.dumps(rows), ex=self.ttl)
            else:
                self._entries[key] = (time.monotonic() + self.ttl, rows)
        except Exception as e:
            logger.warning("Appointment cache write failed: %s", e)

    async def invalidate(self, business_id: uuid.UUID) -> None:
        """Drop every cached day of a business."""
        client = await self.get_redis_client()
        if client:
            try:
                await client.incr(self._version_key(business_id))
            except Exception as e:
                # Entries still expire after ttl; submits re-check against the store
                logger.warning("Appointment cache invalidation failed: %s", e)
            return
        bid = str(business_id)
        self._versions[bid] = self._versions.get(bid, 0) + 1
        prefix = f"appointments:{bid}:"
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]

    def clear(self) -> None:
        self._versions.clear()
        self._entries.clear()


# Global instance
appointment_cache = AppointmentListingCache()
