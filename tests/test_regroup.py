"""Tests for regrouping and the energy-reduced merge protocols."""

import math
import numpy as np
import pytest
from radionetsim import regroup as rgp
from radionetsim import treeindex as ti
from radionetsim.faults import ScheduleInconsistency

SIZES = [1, 2, 3, 5, 8, 13, 16, 33]


def bruteRank(key, ref, inclusive=False):
    if (inclusive):
        return sum(1 for r in ref if r <= key)
    return sum(1 for r in ref if r < key)


def sortedPair(rng, m, high=None):
    high = high or 3*m
    return (np.sort(rng.integers(0, high, m)),
            np.sort(rng.integers(0, high, m)))


def assertChargesBalance(net):
    """Every broadcast and listen is charged to exactly one physical host."""
    assert int(net.sendCounts().sum()) == net.channel.stats['broadcasts']
    assert int(net.listenCounts().sum()) == net.channel.stats['receptions']


###############################################################################
# Regroup
###############################################################################

@pytest.mark.parametrize("m", SIZES)
def test_regroup_assigns_rank_groups(seeded, rng, m):
    A, B = sortedPair(rng, m)
    net, (SA, SB) = seeded(A, B)
    for b in SB:
        b.group = 1
    rgp.regroup(net, 1, SB, SA, inclusive=True)
    h1 = ti.h(m, 1)
    want = [math.ceil(bruteRank(k, B) / h1) for k in A]
    assert [a.group for a in SA] == want
    assertChargesBalance(net)


def test_regroup_pads_last_group_with_virtual_stations(seeded, rng):
    m = 10
    A, B = sortedPair(rng, m)
    net, (SA, SB) = seeded(A, B)
    for b in SB:
        b.group = 1
    rgp.regroup(net, 1, SB, SA, inclusive=True)
    # h(10,1) = 4 leaves the last of 3 groups two members short
    assert net.nVirtual == 2
    assert len(net) == 2*m
    assertChargesBalance(net)


def test_regroup_requires_equal_lengths(seeded):
    net, (SA, SB) = seeded([1, 2], [3])
    with pytest.raises(ValueError):
        rgp.regroup(net, 1, SB, SA)


###############################################################################
# Rank1 / Rank2
###############################################################################

@pytest.mark.parametrize("m", SIZES)
@pytest.mark.parametrize("inclusive", [False, True])
def test_rank1_matches_brute_force(seeded, rng, m, inclusive):
    A, B = sortedPair(rng, m)
    net, (SA, SB) = seeded(A, B)
    rgp.rank1(net, SA, SB, inclusive)
    assert [a.rank for a in SA] == [bruteRank(k, B, inclusive) for k in A]
    assertChargesBalance(net)


@pytest.mark.parametrize("m", SIZES + [64, 100])
@pytest.mark.parametrize("inclusive", [False, True])
def test_rank2_ranks_both_ways(seeded, rng, m, inclusive):
    A, B = sortedPair(rng, m)
    net, (SA, SB) = seeded(A, B)
    rgp.rank2(net, SA, SB, inclusive)
    assert [a.rank for a in SA] == [bruteRank(k, B, inclusive) for k in A]
    assert [b.rank for b in SB] == [bruteRank(k, A, not inclusive)
                                    for k in B]
    assertChargesBalance(net)


def test_rank_protocols_with_all_keys_equal(seeded):
    m = 9
    net, (SA, SB) = seeded([4]*m, [4]*m)
    rgp.rank2(net, SA, SB)
    assert all(a.rank == 0 for a in SA)
    assert all(b.rank == m for b in SB)
    net, (SA, SB) = seeded([4]*m, [4]*m)
    rgp.rank1(net, SA, SB, inclusive=True)
    assert all(a.rank == m for a in SA)


def test_rank1_searches_only_inside_groups(seeded, rng):
    # h(60,1) = 6 divides 60, so no A station hosts padding
    m = 60
    A, B = sortedPair(rng, m, high=10**6)
    net, (SA, SB) = seeded(A, B)
    rgp.rank1(net, SA, SB)
    assert net.nVirtual == 0
    # group assignment plus a search over a group of h(m,1) keys
    assert max(a.listenCount for a in SA) <= 2 + ti.height(ti.h(m, 1))


###############################################################################
# Merge and sort variants
###############################################################################

@pytest.mark.parametrize("merge", [rgp.merge1, rgp.merge2])
@pytest.mark.parametrize("m", [1, 4, 7, 16])
def test_merge_variants(seeded, rng, merge, m):
    A, B = sortedPair(rng, m, high=8)
    net, (SA, SB) = seeded(A, B)
    merge(net, SA, SB)
    assert net.keys() == sorted(A.tolist() + B.tolist())
    assertChargesBalance(net)


@pytest.mark.parametrize("merge", [rgp.merge1, rgp.merge2])
def test_merge_variants_keep_ties_stable(seeded, merge):
    net, (SA, SB) = seeded([1, 2, 2], [2, 2, 3])
    merge(net, SA, SB)
    assert [s.idx for s in SA] == [0, 1, 2]
    assert [s.idx for s in SB] == [3, 4, 5]


@pytest.mark.parametrize("sort", [rgp.mergeSort1, rgp.mergeSort2])
@pytest.mark.parametrize("n", [1, 2, 16, 64])
def test_sort_variants(seeded, rng, sort, n):
    keys = rng.permutation(n)
    net, (S,) = seeded(keys)
    sort(net, S)
    assert net.keys() == list(range(n))
    assertChargesBalance(net)


@pytest.mark.parametrize("sort", [rgp.mergeSort1, rgp.mergeSort2])
def test_sort_variants_need_powers_of_two(seeded, sort):
    net, (S,) = seeded([3, 1, 2, 0, 5, 4])
    with pytest.raises(ValueError):
        sort(net, S)
    net, (S,) = seeded([])
    with pytest.raises(ValueError):
        sort(net, S)


def test_merge_variants_need_equal_lengths(seeded):
    net, (SA, SB) = seeded([1, 2, 3], [4])
    with pytest.raises(ValueError):
        rgp.merge1(net, SA, SB)
    with pytest.raises(ValueError):
        rgp.merge2(net, SA, SB)


###############################################################################
# Slot counts
###############################################################################

def regroupSlots(m, i):
    """Search, hand-over, report, announce and propagate slots."""
    return (ti.h(m, i - 1)*ti.g(m, i - 1) + ti.h(m, i)*ti.g(m, i)
            + 2*m - 1)


@pytest.mark.parametrize("m", SIZES + [100])
def test_regroup_slot_count(seeded, rng, m):
    A, B = sortedPair(rng, m)
    net, (SA, SB) = seeded(A, B)
    for b in SB:
        b.group = 1
    rgp.regroup(net, 1, SB, SA, inclusive=True)
    assert net.clock == regroupSlots(m, 1)


@pytest.mark.parametrize("m", SIZES + [100])
def test_merge1_slot_count(seeded, rng, m):
    A, B = sortedPair(rng, m)
    net, (SA, SB) = seeded(A, B)
    rgp.merge1(net, SA, SB)
    assert net.clock == 4*ti.g(m, 1)*ti.h(m, 1) + 8*m - 2


@pytest.mark.parametrize("m", SIZES + [100])
def test_merge2_slot_count(seeded, rng, m):
    A, B = sortedPair(rng, m)
    net, (SA, SB) = seeded(A, B)
    rgp.merge2(net, SA, SB)
    rounds = (ti.lStar(m) + 1) // 2 + 1
    regroups = sum(regroupSlots(m, i) for i in range(1, 2*rounds + 1))
    # two final comparison rounds and the routing round
    assert net.clock == regroups + 4*m


###############################################################################
# Faults
###############################################################################

def corruptTimers(monkeypatch):
    """Make every tree step land two nodes past its child."""
    original = ti.preorderIndex
    monkeypatch.setattr(ti, 'preorderIndex',
                        lambda m, x: original(m, x) + 2 if x else 0)


def afterRegroup(monkeypatch, corrupt):
    """Run regroup unchanged, then apply corrupt for the rest of the call."""
    original = rgp.regroup

    def regroup(*args, **kwargs):
        original(*args, **kwargs)
        corrupt()

    monkeypatch.setattr(rgp, 'regroup', regroup)


def test_regroup_rejects_group_outside_range(seeded, rng):
    A, B = sortedPair(rng, 16)
    net, (SA, SB) = seeded(A, B)
    for b in SB:
        b.group = 1
    # level 0 has a single group
    SB[0].group = 99
    with pytest.raises(ScheduleInconsistency) as excinfo:
        rgp.regroup(net, 1, SB, SA, inclusive=True)
    assert excinfo.value.stations == (SB[0].index,)
    assert excinfo.value.values == (99,)


def test_regroup_rejects_corrupted_schedule(seeded, rng, monkeypatch):
    A, B = sortedPair(rng, 16)
    net, (SA, SB) = seeded(A, B)
    for b in SB:
        b.group = 1
    corruptTimers(monkeypatch)
    with pytest.raises(ScheduleInconsistency, match='cursor outside'):
        rgp.regroup(net, 1, SB, SA, inclusive=True)


def test_regroup_rejects_pending_searchers(seeded, rng, monkeypatch):
    A, B = sortedPair(rng, 16)
    net, (SA, SB) = seeded(A, B)
    for b in SB:
        b.group = 1
    monkeypatch.setattr(net.queue, 'drain', lambda bucket: iter(()))
    with pytest.raises(ScheduleInconsistency, match='pending'):
        rgp.regroup(net, 1, SB, SA, inclusive=True)


def test_rank1_rejects_group_outside_range(seeded, rng, monkeypatch):
    A, B = sortedPair(rng, 16)
    net, (SA, SB) = seeded(A, B)

    def corrupt():
        SA[3].group = ti.g(16, 1) + 1

    afterRegroup(monkeypatch, corrupt)
    with pytest.raises(ScheduleInconsistency) as excinfo:
        rgp.rank1(net, SA, SB)
    assert excinfo.value.stations == (SA[3].index,)


def test_rank1_rejects_corrupted_schedule(seeded, rng, monkeypatch):
    A, B = sortedPair(rng, 16)
    net, (SA, SB) = seeded(A, B)
    afterRegroup(monkeypatch, lambda: corruptTimers(monkeypatch))
    with pytest.raises(ScheduleInconsistency, match='cursor outside'):
        rgp.rank1(net, SA, SB)


def test_rank1_rejects_pending_searchers(seeded, rng, monkeypatch):
    A, B = sortedPair(rng, 16)
    net, (SA, SB) = seeded(A, B)

    def corrupt():
        monkeypatch.setattr(net.queue, 'drain', lambda bucket: iter(()))

    afterRegroup(monkeypatch, corrupt)
    with pytest.raises(ScheduleInconsistency, match='pending'):
        rgp.rank1(net, SA, SB)


def test_final_round_rejects_group_outside_range(seeded):
    net, (SA, SB) = seeded([1, 2, 3, 4], [5, 6, 7, 8])
    for b in SB:
        b.group = 1
    SB[2].group = -1
    with pytest.raises(ScheduleInconsistency):
        rgp._finalRound(net, SB, SA, 2, False)
