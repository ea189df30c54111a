"""Mapping keys and ranges onto the region stores that serve them.

The ``pd_client`` taken by these functions provides:

* ``group_keys_by_region(keys)``: async iterable of ``(region_id, keys)``;
* ``group_ranges_by_region(ranges)``: async iterable of ``(region_id, ranges)``;
* ``store_for_id(region_id)``: coroutine returning a :class:`RegionStore`;
* ``stores_for_range((start, end))``: async iterable of :class:`RegionStore`,
  where an empty ``end`` means unbounded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Iterable

from .region import RegionWithLeader

logger = logging.getLogger(__name__)


@dataclass
class RegionStore:
    """A region together with a client for the store that leads it."""

    region_with_leader: RegionWithLeader
    client: Any


def connect_to_store(
    connect: Callable[[str], Any], region: RegionWithLeader, address: str
) -> RegionStore:
    """Connect to the store at ``address`` and pair it with ``region``."""
    logger.info("connect to tikv endpoint: %r", address)
    return RegionStore(region, connect(address))


async def store_stream_for_keys(
    key_data: Iterable[bytes], pd_client: Any
) -> AsyncIterator[tuple[list[bytes], RegionStore]]:
    """Yield ``(keys, store)`` per region; ``key_data`` must be sorted."""
    async for region_id, keys in pd_client.group_keys_by_region(key_data):
        store = await pd_client.store_for_id(region_id)
        yield keys, store


def range_intersection(
    region_range: tuple[bytes, bytes], key_range: tuple[bytes, bytes]
) -> tuple[bytes, bytes]:
    """Intersect two ranges whose empty upper bound means unbounded."""
    lower, upper = region_range
    if not upper:
        up = key_range[1]
    elif not key_range[1]:
        up = upper
    else:
        up = min(upper, key_range[1])
    return max(lower, key_range[0]), up


async def store_stream_for_range(
    key_range: tuple[bytes, bytes], pd_client: Any
) -> AsyncIterator[tuple[tuple[bytes, bytes], RegionStore]]:
    """Yield the part of ``key_range`` in each region, with its store."""
    start, end = bytes(key_range[0]), bytes(key_range[1])
    async for store in pd_client.stores_for_range((start, end)):
        part = range_intersection(store.region_with_leader.key_range(), (start, end))
        yield part, store


async def store_stream_for_range_by_start_key(
    start_key: bytes, pd_client: Any
) -> AsyncIterator[tuple[bytes, RegionStore]]:
    """Yield the start key within each region from ``start_key`` onward."""
    start = bytes(start_key)
    async for store in pd_client.stores_for_range((start, b"")):
        lower, _ = range_intersection(store.region_with_leader.key_range(), (start, b""))
        yield lower, store


async def store_stream_for_ranges(
    ranges: Iterable[Any], pd_client: Any
) -> AsyncIterator[tuple[list[Any], RegionStore]]:
    """Yield ``(ranges, store)`` per region."""
    async for region_id, grouped in pd_client.group_ranges_by_region(ranges):
        store = await pd_client.store_for_id(region_id)
        yield grouped, store