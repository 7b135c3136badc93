"""
Epsilon-greedy action selection for the learning schedulers
"""
import logging

import numpy as np

from tschrl.control.tables import PeakingTable, ValueTable
from tschrl.simtools import SimTimePrepender
from tschrl.utility import ensureIndex

logger = SimTimePrepender(logging.getLogger(__name__))


class EpsilonSchedule:
    """
    Annealed exploration rate ``min(epsilon_cap, k / asn)``. Exploration is
    front-loaded and tapers off as the absolute slot number grows.
    """

    def __init__(self, k: float = 10000.0, epsilon_cap: float = 0.5):
        if k < 0:
            raise ValueError("k must not be negative, got {}".format(k))
        if not 0.0 <= epsilon_cap <= 1.0:
            raise ValueError("epsilon_cap has to be within [0, 1], got {}".format(epsilon_cap))
        self.k = k
        self.epsilon_cap = epsilon_cap

    def __call__(self, asn: int) -> float:
        if asn <= 0:
            return self.epsilon_cap
        return min(self.epsilon_cap, self.k / asn)

    def __repr__(self):
        return "EpsilonSchedule(k={}, epsilon_cap={})".format(self.k, self.epsilon_cap)


class ChannelSelector:
    """
    Chooses a channel for a slot of the slotframe: a uniformly random channel
    with probability `epsilon`, the channel with the highest value otherwise.
    """

    def __init__(self, table: ValueTable, epsilon: float, rng: np.random.Generator):
        """
        Args:
            table: The value table to be exploited
            epsilon: The exploration rate
            rng: The random number generator to draw from
        """
        self._table = table
        self.epsilon = epsilon
        self._rng = rng

    @property
    def epsilon(self) -> float:
        return self._epsilon

    @epsilon.setter
    def epsilon(self, epsilon: float):
        if not 0.0 <= epsilon <= 1.0:
            raise ValueError("epsilon has to be within [0, 1], got {}".format(epsilon))
        self._epsilon = epsilon

    def choose_action(self, slot: int, explore: bool = True) -> int:
        """
        Returns the channel to be used in `slot`.

        Args:
            slot: The slot of the slotframe
            explore: If ``False``, the greedy channel is returned regardless
                of :attr:`epsilon`
        """
        slot = ensureIndex(slot, self._table.slots, "slot", self)
        if explore and self._rng.random() < self._epsilon:
            channel = int(self._rng.integers(self._table.channels))
            logger.debug("slot %d: (exploration) channel %d", slot, channel, sender=self)
            return channel
        channel = self._table.best_channel(slot)
        logger.debug("slot %d: (exploitation) channel %d", slot, channel, sender=self)
        return channel

    def __str__(self):
        return "ChannelSelector"


class SlotSelector:
    """
    Chooses the slot a single device transmits in. Exploration picks the
    quietest slot according to the collision-peaking score, exploitation the
    slot with the highest value.
    """

    def __init__(self, table: ValueTable, peaking: PeakingTable, epsilon: float,
                 rng: np.random.Generator):
        assert table.channels == 1
        self._table = table
        self._peaking = peaking
        self.epsilon = epsilon
        self._rng = rng

    @property
    def epsilon(self) -> float:
        return self._epsilon

    @epsilon.setter
    def epsilon(self, epsilon: float):
        if not 0.0 <= epsilon <= 1.0:
            raise ValueError("epsilon has to be within [0, 1], got {}".format(epsilon))
        self._epsilon = epsilon

    def choose_action(self, explore: bool = True) -> int:
        if explore and self._rng.random() < self._epsilon:
            slot = self._peaking.quietest()
            logger.debug("(exploration) quietest slot %d", slot, sender=self)
            return slot
        slot = int(np.argmax(self._table.values[:, 0]))
        logger.debug("(exploitation) slot %d", slot, sender=self)
        return slot

    def __str__(self):
        return "SlotSelector"
