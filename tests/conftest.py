"""Shared fixtures for the radionetsim test suite."""

import numpy as np
import pytest
from radionetsim.network import Network


@pytest.fixture
def rng():
    """Seeded generator so every run draws the same keys."""
    return np.random.default_rng(662)


@pytest.fixture
def seeded():
    """
    Build a network whose stations carry the given key sequences.

    Returns one station list per sequence, in the order given.
    """

    def build(*sequences, **config):
        net = Network(sum(len(s) for s in sequences), **config)
        parts = []
        start = 0
        for keys in sequences:
            part = net.stations[start:start + len(keys)]
            for s, k in zip(part, keys):
                s.key = int(k)
            parts.append(part)
            start += len(keys)
        return net, parts

    return build
