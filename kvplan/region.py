"""Regions: contiguous key ranges served by one Raft group."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .errors import LeaderNotFoundError


@dataclass(frozen=True)
class RegionVerId:
    """The ID and version information of a region."""

    id: int = 0
    conf_ver: int = 0
    ver: int = 0


@dataclass(frozen=True)
class RegionEpoch:
    """Configuration and split/merge versions of a region."""

    conf_ver: int = 0
    version: int = 0


@dataclass(frozen=True)
class Peer:
    """A replica of a region on a store."""

    id: int = 0
    store_id: int = 0


@dataclass(frozen=True)
class Region:
    """Region metadata; an empty end key means the range is unbounded."""

    id: int = 0
    start_key: bytes = b""
    end_key: bytes = b""
    region_epoch: RegionEpoch = field(default_factory=RegionEpoch)
    peers: tuple[Peer, ...] = ()


@dataclass(frozen=True)
class Context:
    """Request context addressing a region through its leader."""

    region_id: int
    region_epoch: RegionEpoch
    peer: Peer


@dataclass
class RegionWithLeader:
    """A region together with its (possibly unknown) leader."""

    region: Region = field(default_factory=Region)
    leader: Optional[Peer] = None

    def contains(self, key: bytes) -> bool:
        start, end = self.region.start_key, self.region.end_key
        return key >= start and (key < end or not end)

    def context(self) -> Context:
        if self.leader is None:
            raise LeaderNotFoundError(self.region.id)
        return Context(
            region_id=self.region.id,
            region_epoch=self.region.region_epoch,
            peer=self.leader,
        )

    def start_key(self) -> bytes:
        return bytes(self.region.start_key)

    def end_key(self) -> bytes:
        return bytes(self.region.end_key)

    def key_range(self) -> tuple[bytes, bytes]:
        return self.start_key(), self.end_key()

    def ver_id(self) -> RegionVerId:
        epoch = self.region.region_epoch
        return RegionVerId(id=self.region.id, conf_ver=epoch.conf_ver, ver=epoch.version)

    def region_id(self) -> int:
        return self.region.id

    def store_id(self) -> int:
        if self.leader is None:
            raise LeaderNotFoundError(self.region.id)
        return self.leader.store_id