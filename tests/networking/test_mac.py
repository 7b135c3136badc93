import logging

import pytest

from tschrl.control.controller import SlotEventSink
from tschrl.control.deployer import MacRejected
from tschrl.networking.mac import InterferenceModel, MacStatus, TschMac, TschNetwork
from tschrl.networking.stats import TransmissionStatistics
from tschrl.simtools import SimMan

from ..fixtures import simman


def test_mac_links():
    mac = TschMac("node", 4, 2, ownedSlots=[1, 3], maxLinks=2)
    assert mac.channelFor(1) is None

    mac.add_link(1, 1)
    mac.add_link(2, 0)
    assert mac.channelFor(1) == 1
    # slot 2 is not owned
    assert mac.channelFor(2) is None

    with pytest.raises(MacRejected):
        mac.add_link(3, 0)
    # replacing an existing link does not need capacity
    mac.add_link(1, 0)
    assert mac.links == {1: 0, 2: 0}

    mac.delete_link(1)
    mac.delete_link(1)
    assert mac.links == {2: 0}

    with pytest.raises(IndexError):
        mac.add_link(4, 0)
    with pytest.raises(IndexError):
        mac.add_link(0, 2)


def test_mac_hopping_sequence():
    mac = TschMac("node", 3, 4, ownedSlots=[0, 2])
    mac.set_hopping_sequence([3, 1, 2])
    assert mac.hoppingSequence == [3, 1, 2]
    assert mac.channelFor(0) == 3
    assert mac.channelFor(1) is None
    assert mac.channelFor(2) == 2

    with pytest.raises(MacRejected):
        mac.set_hopping_sequence([1, 2])
    with pytest.raises(IndexError):
        mac.set_hopping_sequence([1, 2, 4])
    assert mac.hoppingSequence == [3, 1, 2]


def test_interference_model():
    with pytest.raises(ValueError):
        InterferenceModel([])
    with pytest.raises(ValueError):
        InterferenceModel([0.5, 1.5])
    assert InterferenceModel.clear(3).channels == 3


def test_collision_and_overhearing(mocker):
    network = TschNetwork(2, 1)
    macs = [network.addMac(TschMac("node{}".format(i), 2, 1)) for i in range(3)]
    sinks = [mocker.Mock(spec=SlotEventSink) for _ in range(3)]
    for mac, sink in zip(macs, sinks):
        mac.attach(sink)
    macs[0].add_link(0, 0)
    macs[1].add_link(0, 0)
    macs[2].add_link(1, 0)
    statistics = TransmissionStatistics(network)

    macs[0].request_transmission(0, 10)
    macs[1].request_transmission(0, 10)
    macs[2].request_transmission(0, 10)
    network.runSlot()

    for sink in sinks:
        sink.on_slot_boundary.assert_called_once_with(0)
    sinks[0].on_transmission_outcome.assert_called_once_with(0, 0, False)
    sinks[1].on_transmission_outcome.assert_called_once_with(0, 0, False)
    sinks[2].on_transmission_outcome.assert_not_called()
    sinks[2].on_overheard_activity.assert_called_once_with(0)
    sinks[0].on_overheard_activity.assert_not_called()
    assert macs[2].queueLength == 1

    network.runSlot()
    sinks[2].on_transmission_outcome.assert_called_once_with(1, 0, True)
    sinks[0].on_overheard_activity.assert_called_once_with(1)
    assert network.asn == 2

    assert statistics.totalAttempts == 3
    assert statistics.totalSuccesses == 1
    assert statistics.attempts["node0"] == 1
    assert statistics.successRate == pytest.approx(1 / 3)


def test_event_order(mocker):
    network = TschNetwork(2, 2, trafficProbability=1.0, seed=1)
    mac = network.addMac(TschMac("node", 2, 2))
    sink = mocker.Mock(spec=SlotEventSink)
    mac.attach(sink)
    mac.set_hopping_sequence([1, 0])

    network.runSlot()
    network.runSlot()

    assert sink.method_calls == [
        mocker.call.on_slot_boundary(0),
        mocker.call.on_transmission_outcome(0, 1, True),
        mocker.call.on_slot_boundary(1),
        mocker.call.on_transmission_outcome(1, 0, True),
    ]


def test_shared_sink_gets_one_boundary_per_slot(mocker):
    network = TschNetwork(2, 1)
    sink = mocker.Mock(spec=SlotEventSink)
    for i in range(3):
        network.addMac(TschMac("node{}".format(i), 2, 1)).attach(sink)
    network.runSlot()
    sink.on_slot_boundary.assert_called_once_with(0)


def test_interference():
    network = TschNetwork(1, 2, InterferenceModel([1.0, 0.0]), trafficProbability=1.0, seed=2)
    mac = network.addMac(TschMac("node", 1, 2))
    records = []
    network.nTransmission.subscribeCallback(records.append)

    mac.add_link(0, 0)
    network.runSlot()
    mac.add_link(0, 1)
    network.runSlot()

    assert [r.status for r in records] == [MacStatus.NO_ACK, MacStatus.SUCCESS]
    assert [r.channel for r in records] == [0, 1]


def test_network_process(caplog, simman):
    caplog.set_level(logging.DEBUG, logger='tschrl.networking.mac')
    network = TschNetwork(3, 1, slotDuration=1)
    network.addMac(TschMac("node", 3, 1))
    network.start()

    SimMan.runSimulation(5)
    assert network.asn == 5


def test_invalid_setup():
    network = TschNetwork(2, 2)
    with pytest.raises(ValueError):
        network.addMac(TschMac("node", 3, 2))
    with pytest.raises(TypeError):
        network.addMac("node")
    with pytest.raises(ValueError):
        TschNetwork(2, 2, InterferenceModel([0.1]))
    with pytest.raises(TypeError):
        TschMac("node", 2, 2).attach(object())


def test_statistics_log_channel_rates(caplog):
    caplog.set_level(logging.INFO, logger='tschrl.networking.stats')
    network = TschNetwork(1, 2, InterferenceModel([1.0, 0.0]), trafficProbability=1.0, seed=4)
    mac = network.addMac(TschMac("node", 1, 2))
    statistics = TransmissionStatistics(network)

    mac.add_link(0, 0)
    network.runSlot()
    mac.add_link(0, 1)
    network.runSlot()
    network.runSlot()

    assert statistics.channelSuccessRates() == {0: 0.0, 1: 1.0}
    statistics.log()
    assert "channel 0 success rate: 0.000000" in caplog.text
    assert "channel 1 success rate: 1.000000" in caplog.text
    assert "Total success rate" in caplog.text
