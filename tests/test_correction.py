"""Tests for sequence correction after key changes."""

import numpy as np
import pytest
from radionetsim import correction as corr
from radionetsim.faults import (DuplicateSender, MissingSender,
                                PostconditionViolation)
from radionetsim.network import Network


def arrangement(oldKeys, newKeys, positions=None):
    """
    Network whose station j sits at positions[j] of the old arrangement.

    oldKeys and newKeys are given by position.
    """

    n = len(oldKeys)
    if (positions is None):
        positions = range(n)
    net = Network(n)
    for s, p in zip(net.stations, positions):
        s.oldIdx = int(p)
        s.oldKey = int(oldKeys[p])
        s.newKey = int(newKeys[p])
    return net


def byPosition(net):
    return [s.oldKey for s in sorted(net.stations, key=lambda s: s.oldIdx)]


def changeKeys(rng, n, k, high):
    old = np.sort(rng.integers(0, high, n))
    new = old.copy()
    for p in rng.choice(n, k, replace=False):
        value = int(rng.integers(0, high))
        while (value == old[p]):
            value = int(rng.integers(0, high))
        new[p] = value
    return old, new


###############################################################################

def test_split_and_count():
    net = arrangement([1, 3, 5, 7, 9, 11], [1, 12, 5, 7, 0, 11])
    k = corr.splitAndCount(net, net.stations)
    assert k == 2
    assert all(s.k == 2 for s in net.stations)
    assert [s.idxB for s in net.stations] == [None, 0, None, None, 1, None]
    assert [s.idxA for s in net.stations] == [0, None, 1, 2, None, 3]
    assert net.clock == 6
    assert all(s.sendCount == 1 for s in net.stations)


def test_small_correction():
    net = arrangement([1, 3, 5, 7, 9, 11], [1, 12, 5, 7, 0, 11])
    k = corr.correct(net)
    assert k == 2
    assert [s.oldIdx for s in net.stations] == [1, 5, 2, 3, 0, 4]
    assert byPosition(net) == [0, 1, 5, 7, 11, 12]
    assert [s.oldKey for s in net.stations] == [1, 12, 5, 7, 0, 11]


@pytest.mark.parametrize("n,k", [(2, 1), (8, 1), (8, 3), (16, 8), (31, 5),
                                 (32, 17), (32, 31), (50, 7)])
def test_correction_restores_order(rng, n, k):
    old, new = changeKeys(rng, n, k, high=4*n)
    net = arrangement(old, new, rng.permutation(n))
    assert corr.correct(net) == k
    assert sorted(s.oldIdx for s in net.stations) == list(range(n))
    assert byPosition(net) == sorted(new.tolist())
    assert int(net.sendCounts().sum()) == net.channel.stats['broadcasts']
    assert int(net.listenCounts().sum()) == net.channel.stats['receptions']


def test_correction_with_ties(rng):
    old = [2, 2, 2, 5, 5, 8, 8, 8]
    new = [2, 8, 2, 5, 2, 8, 5, 8]
    net = arrangement(old, new)
    assert corr.correct(net) == 3
    assert byPosition(net) == sorted(new)


def test_correction_can_run_again(rng):
    old, new = changeKeys(rng, 20, 4, high=50)
    net = arrangement(old, new)
    corr.correct(net)
    for s in net.stations[:3]:
        s.newKey = s.oldKey + 100
    assert corr.correct(net) == 3
    keys = byPosition(net)
    assert keys == sorted(keys)
    assert keys[-3:] == sorted(s.oldKey for s in net.stations[:3])


def test_no_change_only_counts():
    net = arrangement([1, 2, 3, 4], [1, 2, 3, 4], [3, 1, 0, 2])
    assert corr.correct(net) == 0
    assert [s.oldIdx for s in net.stations] == [3, 1, 0, 2]
    assert net.clock == 4
    assert net.nVirtual == 0


def test_all_changed_is_refused():
    net = arrangement([1, 2, 3], [4, 5, 6])
    with pytest.raises(ValueError):
        corr.correct(net)


def test_empty_arrangement():
    assert corr.correct(Network()) == 0


def test_teams_spread_over_hosts():
    n, k = 16, 4
    old = list(range(0, 2*n, 2))
    new = list(old)
    for p in (1, 6, 9, 14):
        new[p] = old[p] + 3
    net = arrangement(old, new)
    stations = net.stations
    assert corr.splitAndCount(net, stations) == k
    teams = corr.assignWorkers(net, stations, k)
    assert len(teams) == k
    assert all(len(team) == n // k for team in teams)
    hosts = [m.host for team in teams for m in team]
    assert len(set(map(id, hosts))) == n
    assert [team[0].key for team in teams] == [new[p] for p in (1, 6, 9, 14)]
    assert all(m.iworker == n//k - 1 and m.rworker == 0
               for team in teams for m in team)


def test_sort_teams_orders_keys():
    n = 12
    old = list(range(n))
    new = [0, 40, 2, 3, 30, 5, 6, 10, 8, 9, 1, 11]
    net = arrangement(old, new)
    k = corr.splitAndCount(net, net.stations)
    teams = corr.assignWorkers(net, net.stations, k)
    corr.sortTeams(net, teams)
    order = sorted(range(k), key=lambda t: teams[t][teams[t][0].iworker].idx)
    assert [teams[t][0].key for t in order] == sorted(t[0].key for t in teams)


###############################################################################
# Faults
###############################################################################

def test_duplicate_position():
    net = arrangement([1, 2, 3], [1, 9, 3])
    net.stations[2].oldIdx = 0
    with pytest.raises(DuplicateSender):
        corr.correct(net)


def test_position_outside_arrangement():
    net = arrangement([1, 2, 3], [1, 9, 3])
    net.stations[2].oldIdx = 7
    with pytest.raises(MissingSender):
        corr.correct(net)


def test_unsorted_unchanged_keys():
    net = arrangement([5, 1, 3], [5, 1, 9])
    with pytest.raises(PostconditionViolation):
        corr.correct(net)


def test_missing_position_names_neighbouring_owner():
    net = arrangement([1, 2, 3], [1, 9, 3])
    net.stations[2].oldIdx = None
    with pytest.raises(MissingSender) as excinfo:
        corr.correct(net)
    assert excinfo.value.stations == (1,)
    assert excinfo.value.values == (2,)
