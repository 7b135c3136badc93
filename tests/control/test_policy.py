import numpy as np
import pytest

from tschrl.control.policy import ChannelSelector, EpsilonSchedule, SlotSelector
from tschrl.control.tables import PeakingTable, ValueTable


def test_greedy_selection_is_deterministic():
    table = ValueTable(3, 5)
    table.update(1, 2, 0.5)
    table.update(1, 4, 0.5)
    table.update(2, 3, -0.5)
    selector = ChannelSelector(table, 0.0, np.random.default_rng(1))

    for _ in range(50):
        assert selector.choose_action(0) == 0
        assert selector.choose_action(1) == 2
        assert selector.choose_action(2) == 0


def test_full_exploration_never_exploits(mocker):
    table = ValueTable(2, 4)
    selector = ChannelSelector(table, 1.0, np.random.default_rng(7))
    spy = mocker.spy(table, "best_channel")

    channels = {selector.choose_action(1) for _ in range(200)}

    assert spy.call_count == 0
    assert channels <= set(range(4))
    assert len(channels) > 1


def test_exploration_can_be_suppressed():
    table = ValueTable(2, 4)
    table.update(0, 3, 1.0)
    selector = ChannelSelector(table, 1.0, np.random.default_rng(7))
    for _ in range(20):
        assert selector.choose_action(0, explore=False) == 3


def test_selector_rejects_invalid_input():
    table = ValueTable(2, 2)
    selector = ChannelSelector(table, 0.1, np.random.default_rng())
    with pytest.raises(IndexError):
        selector.choose_action(2)
    with pytest.raises(ValueError):
        selector.epsilon = 1.5


def test_slot_selector():
    table = ValueTable(4)
    peaking = PeakingTable(4)
    table.update(1, 0, 0.3)
    peaking.bump(0)
    peaking.bump(1)
    peaking.bump(2)

    selector = SlotSelector(table, peaking, 0.0, np.random.default_rng(3))
    assert selector.choose_action() == 1

    selector.epsilon = 1.0
    assert selector.choose_action() == 3
    assert selector.choose_action(explore=False) == 1


def test_epsilon_schedule():
    schedule = EpsilonSchedule(k=10000.0, epsilon_cap=0.5)
    assert schedule(0) == 0.5
    assert schedule(1) == 0.5
    assert schedule(20000) == 0.5
    assert schedule(40000) == 0.25
    assert schedule(100000) == pytest.approx(0.1)

    with pytest.raises(ValueError):
        EpsilonSchedule(k=-1)
    with pytest.raises(ValueError):
        EpsilonSchedule(epsilon_cap=2)
