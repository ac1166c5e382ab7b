"""Tests for the activation bucket queue."""

import pytest
from radionetsim.activation import ActivationQueue
from radionetsim.stations import Station


@pytest.fixture
def stations():
    return [Station(i) for i in range(6)]


def test_insert_and_drain(stations):
    q = ActivationQueue(3)
    q.insert(0, stations[0])
    q.insert(2, stations[1])
    q.insert(2, stations[2])
    assert len(q) == 3
    assert set(q.drain(2)) == {stations[1], stations[2]}
    assert list(q.drain(1)) == []
    assert len(q) == 1
    assert q.popOne(0) is stations[0]
    assert q.popOne(0) is None
    assert q.isEmpty()


def test_reset_clears_pending(stations):
    q = ActivationQueue(4)
    for i, s in enumerate(stations[:4]):
        q.insert(i, s)
    q.reset(2)
    assert q.isEmpty()
    assert q.capacity == 2
    assert q.popOne(1) is None
    q.reset(4)
    assert all(q.popOne(b) is None for b in range(4))


def test_table_is_reused(stations):
    q = ActivationQueue(8)
    table = q._table
    q.reset(2)
    q.reset(5)
    assert q._table is table
    assert len(table) == 8
    q.reset(12)
    assert q._table is table
    assert len(table) == 12


def test_bucket_bounds(stations):
    q = ActivationQueue(2)
    with pytest.raises(IndexError):
        q.insert(2, stations[0])
    with pytest.raises(IndexError):
        q.popOne(-1)
    with pytest.raises(ValueError):
        q.reset(-1)
    empty = ActivationQueue()
    assert empty.capacity == 0
    with pytest.raises(IndexError):
        empty.insert(0, stations[0])
