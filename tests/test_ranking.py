"""Tests for tournament ranking, merging and merge-sort."""

import numpy as np
import pytest
from radionetsim import ranking as rnk
from radionetsim import treeindex as ti
from radionetsim.faults import (CollisionFault, MissingSender,
                                ScheduleInconsistency)


def bruteRank(key, ref, inclusive=False):
    if (inclusive):
        return sum(1 for r in ref if r <= key)
    return sum(1 for r in ref if r < key)


###############################################################################
# Rank
###############################################################################

def test_beyond():
    assert rnk.beyond(5, 4, False)
    assert not rnk.beyond(5, 5, False)
    assert rnk.beyond(5, 5, True)
    assert not rnk.beyond(5, 6, True)


@pytest.mark.parametrize("na,nb", [(1, 1), (5, 8), (8, 5), (16, 16),
                                   (3, 30), (7, 0), (0, 4)])
@pytest.mark.parametrize("inclusive", [False, True])
def test_rank_matches_brute_force(seeded, rng, na, nb, inclusive):
    A = rng.integers(0, 20, na)
    B = np.sort(rng.integers(0, 20, nb))
    net, (SA, SB) = seeded(A, B)
    rnk.rank(net, SA, SB, inclusive)
    assert [a.rank for a in SA] == [bruteRank(k, B, inclusive) for k in A]
    assert net.clock == nb


def test_rank_energy(seeded, rng):
    m = 37
    net, (SA, SB) = seeded(rng.integers(0, 100, 50),
                           np.sort(rng.integers(0, 100, m)))
    rnk.rank(net, SA, SB)
    assert all(b.sendCount == 1 and b.listenCount == 0 for b in SB)
    assert max(a.listenCount for a in SA) <= ti.height(m)
    assert all(a.sendCount == 0 for a in SA)


def test_rank_without_schedule_checks(seeded):
    net, (SA, SB) = seeded([4, 0, 9], [1, 3, 5, 7], checkSchedule=False)
    rnk.rank(net, SA, SB)
    assert [a.rank for a in SA] == [2, 0, 4]


def test_rank_rejects_corrupted_schedule(seeded, monkeypatch):
    net, (SA, SB) = seeded([4], [1, 3, 5])
    original = ti.preorderIndex
    monkeypatch.setattr(ti, 'preorderIndex',
                        lambda m, x: original(m, x) + 2 if x else 0)
    with pytest.raises(ScheduleInconsistency):
        rnk.rank(net, SA, SB)


###############################################################################
# Routing
###############################################################################

def test_route_keys(seeded):
    net, (S,) = seeded([30, 10, 20])
    for s, idx in zip(S, [2, 0, 1]):
        s.idx = idx
    rnk.routeKeys(net, S)
    assert net.keys() == [10, 20, 30]
    assert net.clock == 3


def test_route_collision(seeded):
    net, (S,) = seeded([1, 2, 3])
    for s, idx in zip(S, [0, 0, 2]):
        s.idx = idx
    with pytest.raises(CollisionFault) as info:
        rnk.routeKeys(net, S)
    assert info.value.slot == 0


def test_route_missing_owner(seeded):
    net, (S,) = seeded([1, 2, 3])
    for s, idx in zip(S, [1, 2, 2]):
        s.idx = idx
    with pytest.raises(MissingSender):
        rnk.routeKeys(net, S)


def test_route_outside(seeded):
    net, (S,) = seeded([1, 2, 3])
    for s, idx in zip(S, [0, 1, 5]):
        s.idx = idx
    with pytest.raises(ScheduleInconsistency):
        rnk.routeKeys(net, S)


###############################################################################
# Merge
###############################################################################

@pytest.mark.parametrize("na,nb", [(1, 1), (4, 4), (3, 9), (10, 2), (0, 5),
                                   (6, 0), (17, 17)])
def test_merge_sorted_permutation(seeded, rng, na, nb):
    A = np.sort(rng.integers(0, 15, na))
    B = np.sort(rng.integers(0, 15, nb))
    net, (SA, SB) = seeded(A, B)
    rnk.merge(net, SA, SB)
    assert net.keys() == sorted(A.tolist() + B.tolist())
    assert net.clock == 2*(na + nb)


def test_merge_ties_keep_first_sequence_first(seeded):
    net, (SA, SB) = seeded([1, 2, 2], [2, 2, 3])
    rnk.merge(net, SA, SB)
    assert [s.idx for s in SA] == [0, 1, 2]
    assert [s.idx for s in SB] == [3, 4, 5]
    assert net.keys() == [1, 2, 2, 2, 2, 3]


def test_merge_energy(seeded, rng):
    m = 32
    A = np.sort(rng.choice(1000, m, replace=False))
    B = np.sort(rng.choice(1000, m, replace=False))
    net, _ = seeded(A, B)
    rnk.merge(net, net.stations[:m], net.stations[m:])
    assert net.maxSendEnergy() <= 2
    assert net.maxListenEnergy() <= ti.height(m) + 1
    stats = net.channel.stats
    assert stats['broadcasts'] <= net.clock


###############################################################################
# MergeSort
###############################################################################

@pytest.mark.parametrize("n", [1, 2, 8, 64])
def test_merge_sort_powers_of_two(seeded, rng, n):
    keys = rng.permutation(n)
    net, (S,) = seeded(keys)
    rnk.mergeSort(net, S)
    assert net.keys() == list(range(n))
    lg = n.bit_length() - 1
    assert net.clock == 2*n*lg


@pytest.mark.parametrize("n", [0, 3, 11, 50])
def test_merge_sort_any_length(seeded, rng, n):
    keys = rng.integers(0, 10, n)
    net, (S,) = seeded(keys)
    rnk.mergeSort(net, S)
    assert net.keys() == sorted(keys.tolist())


def test_merge_sort_is_reproducible(seeded, rng):
    keys = rng.permutation(32)
    runs = []
    for _ in range(2):
        net, (S,) = seeded(keys)
        rnk.mergeSort(net, S)
        runs.append((net.clock, net.energyProfile().tolist()))
    assert runs[0] == runs[1]


def test_energy_never_decreases(seeded, rng):
    net, (S,) = seeded(rng.permutation(16))
    before = net.energyProfile()
    for half in (S[:8], S[8:]):
        rnk.mergeSort(net, half)
        after = net.energyProfile()
        assert (after >= before).all()
        before = after
    rnk.merge(net, S[:8], S[8:])
    assert (net.energyProfile() >= before).all()
    assert net.keys() == list(range(16))


###############################################################################
# Level ranking
###############################################################################

@pytest.mark.parametrize("m", [1, 2, 5, 8, 13])
@pytest.mark.parametrize("inclusive", [False, True])
def test_level_rank_matches_brute_force(seeded, rng, m, inclusive):
    A = rng.integers(0, 12, 9)
    B = np.sort(rng.integers(0, 12, m))
    net, (SA, SB) = seeded(A, B)
    bySlot = [None] * m
    for x, b in enumerate(SB):
        b.idx = x
        bySlot[ti.bso(m, x)] = b
    for a in SA:
        a.rank = 0
    for lev in range(ti.height(m)):
        rnk.levelRank(net, lev, SA, bySlot, inclusive)
        for a in SA:
            a.rank = a.newRank
    assert [a.rank for a in SA] == [bruteRank(k, B, inclusive) for k in A]
    assert max(a.listenCount for a in SA) <= ti.height(m)


def test_level_rank_rejects_bad_position(seeded):
    net, (SA, SB) = seeded([3], [1, 2, 4])
    for x, b in enumerate(SB):
        b.idx = x
    bySlot = [SB[1], SB[0], SB[2]]
    SA[0].rank = 1
    with pytest.raises(ScheduleInconsistency):
        rnk.levelRank(net, 0, SA, bySlot)


def test_level_rank_rejects_bad_sender(seeded):
    net, (SA, SB) = seeded([3], [1, 2, 4])
    for x, b in enumerate(SB):
        b.idx = x
    SA[0].rank = 0
    with pytest.raises(ScheduleInconsistency):
        rnk.levelRank(net, 0, SA, list(SB))
