import pytest

from kvplan.timestamp import (
    LOGICAL_MASK,
    PHYSICAL_SHIFT_BITS,
    Timestamp,
    from_version,
    try_from_version,
)


def test_shift_is_eighteen_bits():
    assert from_version(1 << 18) == Timestamp(physical=1, logical=0)


@pytest.mark.parametrize(
    "ts",
    [Timestamp(0, 1), Timestamp(123456, 789), Timestamp(1 << 40, LOGICAL_MASK)],
)
def test_round_trip_timestamp(ts):
    assert from_version(ts.version()) == ts


@pytest.mark.parametrize("version", [1, 262143, 262144, 425467387562295297])
def test_round_trip_version(version):
    assert from_version(version).version() == version


def test_logical_part_is_masked():
    ts = from_version(LOGICAL_MASK)
    assert ts.physical == 0
    assert ts.logical == LOGICAL_MASK


def test_try_from_version_zero_is_none():
    assert try_from_version(0) is None


def test_try_from_version_nonzero():
    assert try_from_version(5 << PHYSICAL_SHIFT_BITS) == Timestamp(physical=5, logical=0)


def test_negative_version_overflows():
    with pytest.raises(OverflowError):
        Timestamp(physical=-1, logical=0).version()