import asyncio

import pytest

from kvplan.errors import EntryNotFoundInRegionCacheError, StringError
from kvplan.region import Peer, Region, RegionWithLeader
from kvplan.region_cache import RegionCache


class MockRetryClient:
    def __init__(self, delay: float = 0.0) -> None:
        self.regions: dict[int, RegionWithLeader] = {}
        self.get_region_count = 0
        self.get_store_count = 0
        self.delay = delay

    async def get_region(self, key):
        self.get_region_count += 1
        for r in self.regions.values():
            if r.contains(key):
                return RegionWithLeader(r.region, r.leader)
        raise StringError("MockRetryClient: region not found")

    async def get_region_by_id(self, region_id):
        self.get_region_count += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        r = self.regions.get(region_id)
        if r is None:
            raise StringError("MockRetryClient: region not found")
        return RegionWithLeader(r.region, r.leader)

    async def get_store(self, store_id):
        self.get_store_count += 1
        return {"id": store_id, "address": f"store-{store_id}.example.com:20160"}


def region(region_id, start_key, end_key):
    return RegionWithLeader(
        Region(id=region_id, start_key=bytes(start_key), end_key=bytes(end_key))
    )


def assert_cache(cache, expected):
    actual = cache.cached_regions()
    assert sorted(actual.values(), key=lambda r: r.region_id()) == sorted(
        expected.values(), key=lambda r: r.region_id()
    )
    assert set(actual) == set(expected)


@pytest.mark.asyncio
async def test_cache_is_used():
    client = MockRetryClient()
    cache = RegionCache(client)
    client.regions[1] = RegionWithLeader(
        Region(id=1, start_key=b"", end_key=bytes([100])), Peer(store_id=1)
    )
    client.regions[2] = RegionWithLeader(
        Region(id=2, start_key=bytes([101]), end_key=b""), Peer(store_id=2)
    )
    assert client.get_region_count == 0

    assert (await cache.get_region_by_id(1)).end_key() == bytes([100])
    assert client.get_region_count == 1

    assert (await cache.get_region_by_id(1)).end_key() == bytes([100])
    assert client.get_region_count == 1

    await cache.invalidate_region_cache((await cache.get_region_by_id(1)).ver_id())
    assert (await cache.get_region_by_id(1)).end_key() == bytes([100])
    assert client.get_region_count == 2

    await cache.update_leader(
        (await cache.get_region_by_id(2)).ver_id(), Peer(store_id=102)
    )
    assert (await cache.get_region_by_id(2)).leader.store_id == 102


@pytest.mark.asyncio
async def test_add_disjoint_regions():
    cache = RegionCache(MockRetryClient())
    region1 = region(1, [], [10])
    region2 = region(2, [10], [20])
    region3 = region(3, [30], [])
    for r in (region1, region2, region3):
        await cache.add_region(r)
    assert_cache(cache, {b"": region1, bytes([10]): region2, bytes([30]): region3})


@pytest.mark.asyncio
async def test_add_intersecting_regions():
    cache = RegionCache(MockRetryClient())
    await cache.add_region(region(1, [], [10]))
    await cache.add_region(region(2, [10], [20]))
    await cache.add_region(region(3, [30], [40]))
    await cache.add_region(region(4, [50], [60]))
    await cache.add_region(region(5, [20], [35]))
    assert_cache(
        cache,
        {
            b"": region(1, [], [10]),
            bytes([10]): region(2, [10], [20]),
            bytes([20]): region(5, [20], [35]),
            bytes([50]): region(4, [50], [60]),
        },
    )

    await cache.add_region(region(6, [15], [25]))
    assert_cache(
        cache,
        {
            b"": region(1, [], [10]),
            bytes([15]): region(6, [15], [25]),
            bytes([50]): region(4, [50], [60]),
        },
    )

    await cache.add_region(region(7, [20], []))
    assert_cache(cache, {b"": region(1, [], [10]), bytes([20]): region(7, [20], [])})

    await cache.add_region(region(8, [], [15]))
    assert_cache(cache, {b"": region(8, [], [15]), bytes([20]): region(7, [20], [])})


@pytest.mark.asyncio
async def test_get_region_by_key():
    cache = RegionCache(MockRetryClient())
    region1 = region(1, [], [10])
    region2 = region(2, [10], [20])
    region3 = region(3, [30], [40])
    region4 = region(4, [50], [])
    for r in (region1, region2, region3, region4):
        await cache.add_region(r)

    assert await cache.get_region_by_key(b"") == region1
    assert await cache.get_region_by_key(bytes([5])) == region1
    assert await cache.get_region_by_key(bytes([10])) == region2
    with pytest.raises(StringError):
        await cache.get_region_by_key(bytes([20]))
    with pytest.raises(StringError):
        await cache.get_region_by_key(bytes([25]))
    assert await cache.get_region_by_key(bytes([60])) == region4


@pytest.mark.asyncio
async def test_get_region_by_key_reads_through_and_caches():
    client = MockRetryClient()
    client.regions[1] = region(1, [], [10])
    cache = RegionCache(client)
    assert (await cache.get_region_by_key(bytes([3]))).region_id() == 1
    assert (await cache.get_region_by_key(bytes([4]))).region_id() == 1
    assert client.get_region_count == 1


@pytest.mark.asyncio
async def test_update_leader_of_missing_region_raises():
    cache = RegionCache(MockRetryClient())
    with pytest.raises(EntryNotFoundInRegionCacheError):
        await cache.update_leader(region(9, [], []).ver_id(), Peer(store_id=1))


@pytest.mark.asyncio
async def test_returned_region_is_a_copy():
    cache = RegionCache(MockRetryClient())
    await cache.add_region(region(1, [], [10]))
    got = await cache.get_region_by_key(b"\x01")
    got.leader = Peer(store_id=7)
    assert (await cache.get_region_by_key(b"\x01")).leader is None


@pytest.mark.asyncio
async def test_invalidate_removes_all_indexes():
    client = MockRetryClient()
    cache = RegionCache(client)
    r = region(1, [5], [10])
    await cache.add_region(r)
    await cache.invalidate_region_cache(r.ver_id())
    assert cache.cached_regions() == {}
    with pytest.raises(StringError):
        await cache.get_region_by_id(1)


@pytest.mark.asyncio
async def test_concurrent_lookups_share_one_query():
    client = MockRetryClient(delay=0.01)
    client.regions[1] = region(1, [], [10])
    cache = RegionCache(client)
    results = await asyncio.gather(*(cache.get_region_by_id(1) for _ in range(3)))
    assert [r.region_id() for r in results] == [1, 1, 1]
    assert client.get_region_count == 1


@pytest.mark.asyncio
async def test_store_cache_is_used():
    client = MockRetryClient()
    cache = RegionCache(client)
    first = await cache.get_store_by_id(3)
    second = await cache.get_store_by_id(3)
    assert first == second == {"id": 3, "address": "store-3.example.com:20160"}
    assert client.get_store_count == 1