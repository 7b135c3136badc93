import numpy as np
import pytest

from tschrl.control.tables import OutcomeTracker, PeakingTable, ValueTable


@pytest.mark.parametrize("slots,channels", [(1, 1), (4, 2), (15, 16), (101, 3)])
def test_value_table_construction(slots, channels):
    table = ValueTable(slots, channels)
    assert len(table) == slots * channels
    assert table.shape == (slots, channels)
    assert np.all(table.values == 0.0)


def test_value_table_access():
    table = ValueTable(3, 4)
    table.update(1, 2, 0.7)
    table.update(1, 3, 0.7)
    assert table.value(1, 2) == 0.7
    assert table.max_of(1) == 0.7
    # first index wins on ties
    assert table.best_channel(1) == 2
    assert table.best_channel(0) == 0

    row = table.row(1)
    row[0] = 5.0
    assert table.value(1, 0) == 0.0

    with pytest.raises(ValueError):
        table.values[0, 0] = 1.0


@pytest.mark.parametrize("slot,channel", [(3, 0), (0, 4), (-1, 0), (0, -1), (1.0, 0)])
def test_value_table_rejects_invalid_indices(slot, channel):
    table = ValueTable(3, 4)
    with pytest.raises(IndexError):
        table.update(slot, channel, 1.0)
    with pytest.raises(IndexError):
        table.value(slot, channel)


def test_invalid_dimensions():
    with pytest.raises(ValueError):
        ValueTable(0, 2)
    with pytest.raises(ValueError):
        OutcomeTracker(2, 0)
    with pytest.raises(ValueError):
        PeakingTable(-3)


def test_outcome_tracker_keeps_successes():
    tracker = OutcomeTracker(4, 2)
    assert not tracker.succeeded(2, 1)

    tracker.record_outcome(2, 1, False)
    assert not tracker.succeeded(2, 1)

    tracker.record_outcome(2, 1, True)
    tracker.record_outcome(2, 1, False)
    assert tracker.succeeded(2, 1)

    tracker.record_outcome(2, 1, True)
    assert tracker.succeeded(2, 1)
    assert not tracker.succeeded(2, 0)


def test_outcome_tracker_reset():
    tracker = OutcomeTracker(3, 3)
    for slot in range(3):
        tracker.record_outcome(slot, slot, True)
    assert tracker.any_success()

    tracker.reset_epoch()
    assert not tracker.any_success()
    for slot in range(3):
        for channel in range(3):
            assert not tracker.succeeded(slot, channel)


def test_outcome_tracker_rejects_invalid_indices():
    tracker = OutcomeTracker(2, 2)
    with pytest.raises(IndexError):
        tracker.record_outcome(2, 0, True)
    with pytest.raises(IndexError):
        tracker.record_outcome(0, -1, True)


def test_peaking_table():
    peaking = PeakingTable(4)
    assert peaking.quietest() == 0

    peaking.bump(0)
    peaking.bump(1, 2.0)
    peaking.bump(3)
    assert peaking.quietest() == 2

    peaking.decay(0.5)
    assert peaking.score(0) == 0.5
    assert peaking.score(1) == 1.0
    assert peaking.score(2) == 0.0

    peaking.bump(2, 0.5)
    # slots 0, 2 and 3 are tied now
    assert peaking.quietest() == 0

    with pytest.raises(IndexError):
        peaking.bump(4)
