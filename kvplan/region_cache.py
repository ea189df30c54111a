"""A cache of region and store metadata, filled on demand from PD."""

from __future__ import annotations

import asyncio
import bisect
from dataclasses import replace
from typing import Any

from .errors import EntryNotFoundInRegionCacheError, StringError
from .region import Peer, RegionVerId, RegionWithLeader

MAX_RETRY_WAITING_CONCURRENT_REQUEST = 4


def _copy(region: RegionWithLeader) -> RegionWithLeader:
    return replace(region)


class RegionCache:
    """Caches regions by version, start key and ID, and stores by ID.

    ``inner_client`` provides the coroutines ``get_region(key)``,
    ``get_region_by_id(region_id)`` and ``get_store(store_id)``.
    Cached regions never intersect one another.
    """

    def __init__(self, inner_client: Any) -> None:
        self.inner_client = inner_client
        self._ver_id_to_region: dict[RegionVerId, RegionWithLeader] = {}
        self._key_to_ver_id: dict[bytes, RegionVerId] = {}
        self._sorted_keys: list[bytes] = []
        self._id_to_ver_id: dict[int, RegionVerId] = {}
        self._on_my_way_id: dict[int, asyncio.Event] = {}
        self._store_cache: dict[int, Any] = {}

    def _set_key(self, key: bytes, ver_id: RegionVerId) -> None:
        if key not in self._key_to_ver_id:
            bisect.insort(self._sorted_keys, key)
        self._key_to_ver_id[key] = ver_id

    def _remove_key(self, key: bytes) -> None:
        if self._key_to_ver_id.pop(key, None) is not None:
            del self._sorted_keys[bisect.bisect_left(self._sorted_keys, key)]

    async def get_region_by_key(self, key: bytes) -> RegionWithLeader:
        """Return the region containing ``key``, querying PD on a miss."""
        key = bytes(key)
        index = bisect.bisect_right(self._sorted_keys, key) - 1
        if index >= 0:
            ver_id = self._key_to_ver_id[self._sorted_keys[index]]
            region = self._ver_id_to_region[ver_id]
            if region.contains(key):
                return _copy(region)
        return await self.read_through_region_by_key(key)

    async def get_region_by_id(self, region_id: int) -> RegionWithLeader:
        """Return the region with ``region_id``, querying PD on a miss.

        Concurrent lookups of the same ID share a single PD query.
        """
        for _ in range(MAX_RETRY_WAITING_CONCURRENT_REQUEST + 1):
            ver_id = self._id_to_ver_id.get(region_id)
            if ver_id is not None:
                return _copy(self._ver_id_to_region[ver_id])
            pending = self._on_my_way_id.get(region_id)
            if pending is None:
                return await self._read_through_region_by_id(region_id)
            await pending.wait()
        raise StringError(
            f"Concurrent PD requests failed for {MAX_RETRY_WAITING_CONCURRENT_REQUEST} times"
        )

    async def get_store_by_id(self, store_id: int) -> Any:
        """Return the store with ``store_id``, querying PD on a miss."""
        if store_id in self._store_cache:
            return self._store_cache[store_id]
        return await self._read_through_store_by_id(store_id)

    async def read_through_region_by_key(self, key: bytes) -> RegionWithLeader:
        """Query PD for the region containing ``key`` and cache it."""
        region = await self.inner_client.get_region(bytes(key))
        await self.add_region(region)
        return region

    async def _read_through_region_by_id(self, region_id: int) -> RegionWithLeader:
        done = asyncio.Event()
        self._on_my_way_id[region_id] = done
        try:
            region = await self.inner_client.get_region_by_id(region_id)
            await self.add_region(region)
        finally:
            done.set()
            self._on_my_way_id.pop(region_id, None)
        return region

    async def _read_through_store_by_id(self, store_id: int) -> Any:
        store = await self.inner_client.get_store(store_id)
        self._store_cache[store_id] = store
        return store

    async def add_region(self, region: RegionWithLeader) -> None:
        """Cache ``region``, evicting cached regions that intersect it."""
        new_ver_id = region.ver_id()
        end_key = region.end_key()
        start_key = region.region.start_key
        to_be_removed: set[RegionVerId] = set()

        cached_ver_id = self._id_to_ver_id.get(region.region_id())
        if cached_ver_id is not None and cached_ver_id != new_ver_id:
            to_be_removed.add(cached_ver_id)

        if end_key:
            limit = bisect.bisect_left(self._sorted_keys, end_key)
        else:
            limit = len(self._sorted_keys)
        for key in reversed(self._sorted_keys[:limit]):
            ver_id_in_cache = self._key_to_ver_id[key]
            region_in_cache = self._ver_id_to_region[ver_id_in_cache]
            if region_in_cache.region.end_key > start_key:
                to_be_removed.add(ver_id_in_cache)
            else:
                break

        for ver_id in to_be_removed:
            removed = self._ver_id_to_region.pop(ver_id)
            self._remove_key(removed.start_key())
            self._id_to_ver_id.pop(removed.region_id(), None)

        self._set_key(region.start_key(), new_ver_id)
        self._id_to_ver_id[region.region_id()] = new_ver_id
        self._ver_id_to_region[new_ver_id] = _copy(region)

    async def update_leader(self, ver_id: RegionVerId, leader: Peer) -> None:
        """Set the leader of the cached region with ``ver_id``."""
        region = self._ver_id_to_region.get(ver_id)
        if region is None:
            raise EntryNotFoundInRegionCacheError()
        region.leader = leader

    async def invalidate_region_cache(self, ver_id: RegionVerId) -> None:
        """Drop the cached region with ``ver_id``, if present."""
        region = self._ver_id_to_region.pop(ver_id, None)
        if region is not None:
            self._id_to_ver_id.pop(region.region_id(), None)
            self._remove_key(region.start_key())

    def cached_regions(self) -> dict[bytes, RegionWithLeader]:
        """Return the cached regions keyed by start key, in key order."""
        return {
            key: _copy(self._ver_id_to_region[self._key_to_ver_id[key]])
            for key in self._sorted_keys
        }