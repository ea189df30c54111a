"""Splitting requests into per-region shards."""

from __future__ import annotations

import abc
from typing import Any, AsyncIterator, Sequence

from .store import (
    RegionStore,
    store_stream_for_keys,
    store_stream_for_range,
)


class Shardable(abc.ABC):
    """Something that can be split by region and narrowed to one shard."""

    @abc.abstractmethod
    def shards(self, pd_client: Any) -> AsyncIterator[tuple[Any, RegionStore]]:
        """Yield each shard together with the store that serves it."""

    @abc.abstractmethod
    def apply_shard(self, shard: Any, store: RegionStore) -> None:
        """Narrow this object to ``shard`` and address it to ``store``."""


class KeyShardable(Shardable):
    """A request on a single key.

    Subclasses carry ``key`` and ``context`` attributes.
    """

    def shards(self, pd_client: Any) -> AsyncIterator[tuple[list[bytes], RegionStore]]:
        return store_stream_for_keys([bytes(self.key)], pd_client)

    def apply_shard(self, shard: Sequence[bytes], store: RegionStore) -> None:
        self.context = store.region_with_leader.context()
        if len(shard) != 1:
            raise ValueError(f"a single-key shard must hold one key, got {len(shard)}")
        self.key = shard[0]


class KeysShardable(Shardable):
    """A request on several keys.

    Subclasses carry ``keys`` and ``context`` attributes.
    """

    def shards(self, pd_client: Any) -> AsyncIterator[tuple[list[bytes], RegionStore]]:
        return store_stream_for_keys(sorted(bytes(k) for k in self.keys), pd_client)

    def apply_shard(self, shard: Sequence[bytes], store: RegionStore) -> None:
        self.context = store.region_with_leader.context()
        self.keys = [bytes(k) for k in shard]


class RangeShardable(Shardable):
    """A request on a key range.

    Subclasses carry ``start_key``, ``end_key`` and ``context`` attributes;
    an empty ``end_key`` means unbounded.
    """

    def shards(
        self, pd_client: Any
    ) -> AsyncIterator[tuple[tuple[bytes, bytes], RegionStore]]:
        return store_stream_for_range(
            (bytes(self.start_key), bytes(self.end_key)), pd_client
        )

    def apply_shard(self, shard: tuple[bytes, bytes], store: RegionStore) -> None:
        self.context = store.region_with_leader.context()
        self.start_key, self.end_key = bytes(shard[0]), bytes(shard[1])