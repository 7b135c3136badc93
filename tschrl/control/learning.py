"""
Temporal-difference update rules applied by the learning schedulers.

:class:`LookaheadUpdate` is used by the PAN-wide channel-hopping controller
once per slotframe. :class:`SlotRewardUpdate` is used by the single-device
slot-selection agent once per transmission outcome.
"""
import logging
from typing import Sequence

import numpy as np

from tschrl.control.params import LearningParameters
from tschrl.control.tables import OutcomeTracker, ValueTable
from tschrl.simtools import SimTimePrepender

logger = SimTimePrepender(logging.getLogger(__name__))


class LookaheadUpdate:
    """
    One-step lookahead along the slot dimension. For every slot `t` with its
    deployed channel `c`::

        r = success_reward if outcome[t][c] else failure_reward
        V[t][c] = (1-alpha) V[t][c] + alpha r                          (last slot)
        V[t][c] = (1-alpha) V[t][c] + alpha (r + gamma max V[t+1][*])  (otherwise)

    Slots are visited in increasing order and updated in place. Slot `t+1`
    has therefore not been written yet when slot `t` reads it, and the last
    slot never reads slot ``0``, so every lookahead sees the values from
    before the pass.
    """

    def __init__(self, params: LearningParameters):
        self.params = params

    def apply(self, table: ValueTable, outcomes: OutcomeTracker, configuration: Sequence[int]):
        """
        Updates `table` in place for every (slot, configured channel) pair.

        Args:
            table: The value table to be updated
            outcomes: The outcomes recorded during the epoch that just ended
            configuration: The channel that was deployed for every slot
        """
        slots = table.slots
        assert len(configuration) == slots
        alpha, gamma = self.params.alpha, self.params.gamma

        for t in range(slots):
            c = configuration[t]
            r = self.params.reward(outcomes.succeeded(t, c))
            old = table.value(t, c)
            if t == slots - 1:
                new = (1 - alpha) * old + alpha * r
            else:
                maxNext = table.max_of(t + 1)
                new = (1 - alpha) * old + alpha * (r + gamma * maxNext)
            table.update(t, c, new)
            logger.debug("giving reward %s to slot %d channel %d: %f -> %f", r, t, c, old, new, sender=self)

    def __str__(self):
        return "LookaheadUpdate"


class SlotRewardUpdate:
    """
    Non-bootstrapped update of the slot chosen by a single device::

        Q[a] = (1-alpha) Q[a] + alpha (r + gamma max(Q) - Q[a])

    where ``max(Q)`` is the table-wide maximum before the update.
    """

    def __init__(self, params: LearningParameters):
        self.params = params

    def apply(self, table: ValueTable, action: int, success: bool) -> float:
        """
        Updates the value of `action` and returns the new value
        """
        alpha, gamma = self.params.alpha, self.params.gamma
        r = self.params.reward(success)
        old = table.value(action)
        maxQ = float(np.max(table.values))
        new = (1 - alpha) * old + alpha * (r + gamma * maxQ - old)
        table.update(action, 0, new)
        logger.debug("giving reward %s to slot %d: %f -> %f", r, action, old, new, sender=self)
        return new

    def __str__(self):
        return "SlotRewardUpdate"
