import logging

import pytest

from tschrl.control.deployer import (HoppingSequence, HoppingSequenceDeployer, LinkDeployer,
                                     MacInterface, MacRejected)
from tschrl.networking.mac import TschMac

from ..fixtures import mac


def test_hopping_sequence():
    sequence = HoppingSequence([2, 5, 1, 7])
    assert len(sequence) == 4
    assert sequence[1] == 5
    assert sequence == [2, 5, 1, 7]
    assert sequence == HoppingSequence((2, 5, 1, 7))
    assert sequence.get_string() == "0:2 1:5 2:1 3:7"


def test_hopping_sequence_round_trip(mac):
    deployer = HoppingSequenceDeployer(mac)
    assert deployer.last_deployed is None

    assert deployer.deploy([2, 5, 1, 7])

    mac.set_hopping_sequence.assert_called_once_with([2, 5, 1, 7])
    assert deployer.last_deployed == [2, 5, 1, 7]


def test_hopping_sequence_rejected(caplog, mocker):
    caplog.set_level(logging.DEBUG, logger='tschrl.control.deployer')
    mac1 = mocker.Mock(spec=MacInterface)
    mac2 = mocker.Mock(spec=MacInterface)
    mac2.set_hopping_sequence.side_effect = [None, MacRejected("busy")]
    deployer = HoppingSequenceDeployer([mac1, mac2])

    assert deployer.deploy([0, 0, 0, 0])
    assert not deployer.deploy([1, 1, 1, 1])

    assert deployer.last_deployed == [0, 0, 0, 0]
    assert deployer.deployment_failures == 1
    # the MAC that already accepted the new sequence got the old one back
    assert mac1.set_hopping_sequence.call_args_list == [
        mocker.call([0, 0, 0, 0]), mocker.call([1, 1, 1, 1]), mocker.call([0, 0, 0, 0])
    ]
    assert "deployment failed" in caplog.text


def test_link_edits(mac, mocker):
    deployer = LinkDeployer(mac)

    assert deployer.deploy([1, 2])
    assert mac.method_calls == [mocker.call.add_link(0, 1), mocker.call.add_link(1, 2)]

    mac.reset_mock()
    assert deployer.deploy([1, 3])
    assert mac.method_calls == [mocker.call.delete_link(1), mocker.call.add_link(1, 3)]
    assert deployer.last_deployed == {0: 1, 1: 3}

    mac.reset_mock()
    assert deployer.deploy({1: 3})
    assert mac.method_calls == [mocker.call.delete_link(0)]


def test_link_rollback():
    mac1 = TschMac("a", 2, 3)
    mac2 = TschMac("b", 2, 3, maxLinks=1)
    deployer = LinkDeployer([mac1, mac2])

    assert deployer.deploy({0: 1})
    assert not deployer.deploy({0: 2, 1: 2})

    assert mac1.links == {0: 1}
    assert mac2.links == {0: 1}
    assert deployer.last_deployed == {0: 1}
    assert deployer.deployment_failures == 1


def test_first_hopping_sequence_is_all_or_nothing():
    mac1 = TschMac("a", 4, 2)
    mac2 = TschMac("b", 3, 2)
    deployer = HoppingSequenceDeployer([mac1, mac2])

    assert not deployer.deploy([1, 0, 1, 0])

    assert mac1.hoppingSequence is None
    assert mac2.hoppingSequence is None
    assert deployer.last_deployed is None
    assert deployer.deployment_failures == 1


def test_failed_rollback_is_logged(caplog, mocker):
    caplog.set_level(logging.ERROR, logger='tschrl.control.deployer')
    mac = mocker.Mock(spec=MacInterface)
    deployer = HoppingSequenceDeployer([mac, mocker.Mock(spec=MacInterface)])
    assert deployer.deploy([0, 1])

    mac.set_hopping_sequence.side_effect = [None, MacRejected("gone")]
    deployer.macs[1].set_hopping_sequence.side_effect = MacRejected("busy")
    assert not deployer.deploy([1, 0])
    assert "could not restore" in caplog.text
