"""
Fixed-size tables the learning schedulers operate on.

All tables are dense :mod:`numpy` arrays that are sized once at construction
and never resized. Indices are checked on every access: an out-of-range slot
or channel is a bug in the calling collaborator and raises an
:class:`IndexError` instead of being clamped.
"""

import numpy as np

from tschrl.utility import ensureIndex


def _checkDimension(name: str, value: int) -> int:
    if isinstance(value, bool) or not hasattr(value, "__index__") or value < 1:
        raise ValueError("{} has to be a positive integer, got {!r}".format(name, value))
    return value.__index__()


class ValueTable:
    """
    A 2-dimensional table of learned values indexed by (slot, channel). The
    single-device variant uses a table with one column.
    """

    def __init__(self, slots: int, channels: int = 1):
        """
        Args:
            slots: The number of slots `S` in a slotframe
            channels: The number of channels `C`
        """
        self._slots = _checkDimension("slots", slots)
        self._channels = _checkDimension("channels", channels)
        self._values = np.zeros((self._slots, self._channels), dtype=np.float64)

    @property
    def slots(self) -> int:
        return self._slots

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def shape(self):
        return self._values.shape

    @property
    def values(self) -> np.ndarray:
        """
        :class:`numpy.ndarray`: A read-only view of the table
        """
        view = self._values.view()
        view.flags.writeable = False
        return view

    def value(self, slot: int, channel: int = 0) -> float:
        slot = ensureIndex(slot, self._slots, "slot", self)
        channel = ensureIndex(channel, self._channels, "channel", self)
        return float(self._values[slot, channel])

    def row(self, slot: int) -> np.ndarray:
        """
        Returns a copy of the values of all channels of `slot`
        """
        slot = ensureIndex(slot, self._slots, "slot", self)
        return self._values[slot].copy()

    def max_of(self, slot: int) -> float:
        """
        Returns the maximum value over all channels of `slot`
        """
        slot = ensureIndex(slot, self._slots, "slot", self)
        return float(self._values[slot].max())

    def best_channel(self, slot: int) -> int:
        """
        Returns the channel with the maximum value in `slot`. Ties are broken
        by the lowest channel index.
        """
        slot = ensureIndex(slot, self._slots, "slot", self)
        return int(np.argmax(self._values[slot]))

    def update(self, slot: int, channel: int, value: float):
        slot = ensureIndex(slot, self._slots, "slot", self)
        channel = ensureIndex(channel, self._channels, "channel", self)
        self._values[slot, channel] = value

    def __len__(self):
        return self._values.size

    def __repr__(self):
        return "ValueTable({}x{})".format(self._slots, self._channels)


class OutcomeTracker:
    """
    Records per (slot, channel) whether at least one transmission succeeded
    during the current epoch.
    """

    def __init__(self, slots: int, channels: int = 1):
        self._slots = _checkDimension("slots", slots)
        self._channels = _checkDimension("channels", channels)
        self._succeeded = np.zeros((self._slots, self._channels), dtype=bool)

    @property
    def shape(self):
        return self._succeeded.shape

    def record_outcome(self, slot: int, channel: int, success: bool):
        """
        Records a transmission outcome. A recorded success is never cleared
        before the next :meth:`reset_epoch` call.
        """
        slot = ensureIndex(slot, self._slots, "slot", self)
        channel = ensureIndex(channel, self._channels, "channel", self)
        if success:
            self._succeeded[slot, channel] = True

    def succeeded(self, slot: int, channel: int = 0) -> bool:
        slot = ensureIndex(slot, self._slots, "slot", self)
        channel = ensureIndex(channel, self._channels, "channel", self)
        return bool(self._succeeded[slot, channel])

    def any_success(self) -> bool:
        return bool(self._succeeded.any())

    def reset_epoch(self):
        """Clears all recorded outcomes"""
        self._succeeded.fill(False)

    def __repr__(self):
        return "OutcomeTracker({}x{})".format(self._slots, self._channels)


class PeakingTable:
    """
    The collision-peaking score of the single-device variant: a per-slot
    accumulator of overheard activity that decays every epoch.
    """

    def __init__(self, slots: int):
        self._slots = _checkDimension("slots", slots)
        self._scores = np.zeros(self._slots, dtype=np.float64)

    @property
    def scores(self) -> np.ndarray:
        view = self._scores.view()
        view.flags.writeable = False
        return view

    def score(self, slot: int) -> float:
        slot = ensureIndex(slot, self._slots, "slot", self)
        return float(self._scores[slot])

    def bump(self, slot: int, amount: float = 1.0):
        """Adds `amount` to the score of `slot`"""
        slot = ensureIndex(slot, self._slots, "slot", self)
        self._scores[slot] += amount

    def decay(self, sigma: float):
        """Multiplies every score with `sigma`"""
        self._scores *= sigma

    def quietest(self) -> int:
        """
        Returns the slot with the lowest score (the lowest slot index on ties)
        """
        return int(np.argmin(self._scores))

    def __repr__(self):
        return "PeakingTable({})".format(self._slots)
