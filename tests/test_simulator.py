"""Tests for the run driver and its logging configuration."""

import logging
import numpy as np
import pytest
from radionetsim import logger
from radionetsim import network as net
from radionetsim.faults import PostconditionViolation, SimulationFault
from radionetsim.simulator import PROTOCOLS, Simulator


def quiet(**kwargs):
    kwargs.setdefault('logging', 'none')
    kwargs.setdefault('chanLogging', 'none')
    return Simulator('test', **kwargs)


@pytest.mark.parametrize("protocol", ['mergeSort', 'mergeSort1',
                                      'mergeSort2', 'MERGESORT2'])
def test_sort_protocols(rng, protocol):
    keys = rng.permutation(16)
    report = quiet(protocol=protocol).run(keys)
    assert report['keys'] == list(range(16))
    assert report['verified']
    assert report['stations'] == 16
    assert report['clock'] > 0
    assert report['maxEnergy'] >= report['maxSend']


@pytest.mark.parametrize("protocol", ['merge', 'merge1', 'merge2'])
def test_merge_protocols(rng, protocol):
    A = np.sort(rng.integers(0, 30, 8))
    B = np.sort(rng.integers(0, 30, 8))
    report = quiet(protocol=protocol).run(A, B)
    assert report['keys'] == sorted(A.tolist() + B.tolist())
    assert report['protocol'] == protocol


def test_rank_protocol():
    sim = quiet(protocol='rank', inclusive=True)
    report = sim.run([3, 0, 9], [1, 3, 3, 8])
    assert report['keys'] == [3, 0, 4]
    assert report['clock'] == 4


def test_correct_protocol():
    report = quiet(protocol='correct').run([1, 3, 5, 7, 9, 11],
                                           [1, 12, 5, 7, 0, 11])
    assert report['changed'] == 2
    assert report['keys'] == [0, 1, 5, 7, 11, 12]


def test_report_is_reproducible(rng):
    keys = rng.permutation(32)
    first = quiet(protocol='mergeSort').run(keys)
    second = quiet(protocol='mergeSort').run(keys)
    assert first == second


def test_unknown_protocol():
    with pytest.raises(ValueError):
        quiet(protocol='bubbleSort')
    assert len(PROTOCOLS) == 8


def test_wrong_arguments():
    with pytest.raises(ValueError):
        quiet(protocol='merge').run([1, 2])
    with pytest.raises(ValueError):
        quiet(protocol='mergeSort1').run([3, 1, 2])
    with pytest.raises(ValueError):
        quiet(protocol='correct').run([1, 2], [1])


def test_fault_is_logged_and_raised(caplog):
    sim = quiet(protocol='rank')
    caplog.set_level(logging.ERROR, logger=logger.MAIN_LOG)
    with pytest.raises(PostconditionViolation):
        # unsorted references mislead the search
        sim.run([4], [9, 1, 5])
    assert any('rank aborted' in r.getMessage() for r in caplog.records)


def test_routing_fault_on_unsorted_merge_input():
    with pytest.raises(SimulationFault):
        quiet(protocol='merge').run([5, 1], [2, 3])


def test_verification_can_be_disabled():
    report = quiet(protocol='rank', verify=False).run([4], [9, 1, 5])
    assert not report['verified']
    assert report['keys'] == [2]


def test_network_configuration_is_passed_on():
    sim = quiet(protocol='mergeSort', checkSchedule=False, maxFields=6)
    sim.run([2, 1])
    assert sim.network.checkSchedule is False
    assert sim.network.maxFields == 6
    assert sim.network.name == 'test'
    assert sim.report['stations'] == 2


def test_string_forms():
    sim = quiet(protocol='merge2')
    assert 'merge2' in str(sim)
    assert 'merge2' in repr(sim)


def test_channel_trace_to_file(tmp_path):
    chanFile = tmp_path / 'chan.log'
    sim = Simulator('trace', protocol='merge', logging='none',
                    chanLogging='noout', chanFile=str(chanFile),
                    traceSlots=True)
    sim.run([1, 4], [2, 3])
    sim.chanLogging = 'none'
    text = chanFile.read_text()
    assert '{___:' in text
    assert net.chanLog.name == 'channel'


def test_main_log_file(tmp_path):
    logFile = tmp_path / 'main.log'
    sim = Simulator('filed', protocol='mergeSort', logging='noout',
                    chanLogging='none', logFile=str(logFile))
    sim.run([4, 3, 2, 1])
    text = logFile.read_text()
    assert 'Time and Energy Summary' in text
    sim.logging = 'none'
