# kvplan

kvplan holds the building blocks a client of a region-partitioned,
distributed key-value store uses to decide where a request goes. These
are region metadata, a region cache, timestamp encoding, mapping keys
and ranges to region stores, and splitting requests into per-region
shards.

It is written for asyncio and needs only the standard library.

## Modules

### `kvplan.errors`

All errors derive from `KvError`:

- `LeaderNotFoundError` has a `region_id` attribute.
- `StringError` has a `message` attribute.
- `EntryNotFoundInRegionCacheError`.
- `RegionError` has an `error` attribute.
- `MultipleKeyErrors` and `ExtractedErrors` each have an `errors` list.
- `ResolveLockError`.
- `UnimplementedError`.

### `kvplan.region`

The metadata types are frozen dataclasses:

- `Region`: `id`, `start_key`, `end_key`, `region_epoch` and `peers`. An empty `end_key` means the range has no upper bound.
- `RegionEpoch`: `conf_ver` and `version`.
- `Peer`: `id` and `store_id`.
- `RegionVerId`: `id`, `conf_ver` and `ver`.
- `Context`: `region_id`, `region_epoch` and `peer`.

`RegionWithLeader` pairs a `Region` with an optional leader `Peer`. Its methods:

- `contains(key)` is true when `start_key <= key`, and the key is below `end_key` or `end_key` is empty.
- `context()` builds a `Context` for the leader. It raises `LeaderNotFoundError` when there is no leader.
- `start_key()`, `end_key()` and `key_range()` return the region's bounds.
- `ver_id()` returns the region's `RegionVerId`.
- `region_id()` returns the region's id.
- `store_id()` returns the leader's store id. It raises `LeaderNotFoundError` when there is no leader.

### `kvplan.timestamp`

`Timestamp` has `physical`, `logical` and `suffix_bits`.

- `Timestamp.version()` packs the timestamp into a 64-bit version: the physical part is shifted left by 18 bits and the logical part is added. It raises `OverflowError` when the result does not fit in an unsigned 64-bit integer.
- `from_version(version)` unpacks a version. It reads the value as a signed 64-bit integer and always sets `suffix_bits` to 0.
- `try_from_version(version)` does the same, except that it returns `None` for 0.

### `kvplan.store`

`RegionStore` pairs a `RegionWithLeader` with a client object.

- `connect_to_store(connect, region, address)` calls `connect(address)` and wraps the result in a `RegionStore`.
- `range_intersection(region_range, key_range)` intersects two `(start, end)` ranges. An empty end means unbounded.

The async generators below take a `pd_client`. That client must provide `group_keys_by_region`, `group_ranges_by_region`, `store_for_id` and `stores_for_range`; the module docstring gives the exact shapes.

- `store_stream_for_keys(keys, pd_client)` yields `(keys, store)` for each region. The keys must be sorted.
- `store_stream_for_range(key_range, pd_client)` yields the part of the range that lies in each region, together with that region's store.
- `store_stream_for_range_by_start_key(start_key, pd_client)` yields the effective start key in each region from `start_key` onward.
- `store_stream_for_ranges(ranges, pd_client)` yields `(ranges, store)` for each region.

### `kvplan.region_cache`

`RegionCache(inner_client)` caches regions by start key, by id and by version id, and caches stores by id. The `inner_client` must provide three coroutines:

- `get_region(key)`
- `get_region_by_id(region_id)`
- `get_store(store_id)`

Its methods:

- `get_region_by_key(key)`, `get_region_by_id(region_id)` and `get_store_by_id(store_id)` answer from the cache. On a miss they query the inner client and cache the answer.
- Concurrent `get_region_by_id` calls for the same id share one query. After waiting more than 4 times, a call gives up with `StringError`.
- `read_through_region_by_key(key)` always queries the inner client, then caches the answer.
- `add_region(region)` caches a region. It evicts any cached region with the same id and a different version, and any cached region whose range intersects the new one. Cached ranges therefore never overlap.
- `update_leader(ver_id, leader)` sets the leader of a cached region. It raises `EntryNotFoundInRegionCacheError` when the region is not cached.
- `invalidate_region_cache(ver_id)` drops a cached region, if it is present.
- `cached_regions()` returns the cached regions keyed by start key, in key order.

### `kvplan.shard`

`Shardable` is an abstract base with two methods:

- `shards(pd_client)` yields `(shard, store)` pairs.
- `apply_shard(shard, store)` narrows the object to one shard.

Three mixins implement it through `kvplan.store`. Each one sets `context` from the store's leader when a shard is applied.

- `KeyShardable` works on a `key` attribute. `apply_shard` raises `ValueError` unless the shard holds exactly one key.
- `KeysShardable` works on a `keys` attribute. The keys are sorted before they are grouped by region.
- `RangeShardable` works on the `start_key` and `end_key` attributes.

## Example

```python
import asyncio

from kvplan.region import Peer, Region, RegionWithLeader
from kvplan.region_cache import RegionCache
from kvplan.timestamp import Timestamp, from_version, try_from_version


class Placement:
    def __init__(self, regions):
        self.regions = regions

    async def get_region(self, key):
        return next(r for r in self.regions if r.contains(key))

    async def get_region_by_id(self, region_id):
        return next(r for r in self.regions if r.region_id() == region_id)

    async def get_store(self, store_id):
        return {"id": store_id}


async def main():
    regions = [
        RegionWithLeader(Region(id=1, start_key=b"", end_key=b"m"), Peer(store_id=1)),
        RegionWithLeader(Region(id=2, start_key=b"m", end_key=b""), Peer(store_id=2)),
    ]
    cache = RegionCache(Placement(regions))
    region = await cache.get_region_by_key(b"zebra")
    assert region.region_id() == 2
    assert list(cache.cached_regions()) == [b"m"]


asyncio.run(main())

ts = Timestamp(physical=1, logical=2)
assert from_version(ts.version()) == ts
assert try_from_version(0) is None
```

## What it does not do

kvplan does not talk to a network. It has no RPC client, no placement-driver client and no storage.

It also does not include these, although a client of this kind would usually have them:

- a way to build and execute requests;
- retry or backoff on region errors;
- lock resolution;
- request metrics.

The callers supply the placement client and the store clients, and decide what to send.

## Running the tests

```
pip install -e ".[test]"
pytest
```