"""
Settle-before-commit gate of the learning schedulers
"""
import logging
from enum import Enum

from tschrl.simtools import SimTimePrepender

logger = SimTimePrepender(logging.getLogger(__name__))


class ActivationState(Enum):
    """
    An enumeration of the states of an :class:`ActivationStateMachine`
    """
    SETTLING = 0
    ACTIVE = 1


class ActivationStateMachine:
    """
    Starts in :attr:`ActivationState.SETTLING` and counts epoch boundaries.
    Once `deactivation_threshold` boundaries have passed, it switches to
    :attr:`ActivationState.ACTIVE` and resets the counter. There is no way
    back to settling.

    A threshold of ``0`` creates the machine in the active state.
    """

    def __init__(self, deactivation_threshold: int, owner=None):
        """
        Args:
            deactivation_threshold: The number of epoch boundaries to settle
            owner: The object to be mentioned in log messages
        """
        if deactivation_threshold < 0:
            raise ValueError("deactivation_threshold must not be negative, got {}".format(deactivation_threshold))
        self._threshold = deactivation_threshold
        self._owner = owner
        self._count = 0
        self._state = ActivationState.SETTLING if deactivation_threshold > 0 else ActivationState.ACTIVE

    @property
    def state(self) -> ActivationState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is ActivationState.ACTIVE

    @property
    def deactivation_count(self) -> int:
        return self._count

    @property
    def deactivation_threshold(self) -> int:
        return self._threshold

    def epoch_passed(self) -> bool:
        """
        Advances the machine by one epoch boundary. Returns ``True`` if this
        call activated the machine.
        """
        if self.active:
            return False
        self._count += 1
        logger.debug("not active, deactivation count: %d of %d", self._count, self._threshold,
                     sender=self._owner or self)
        if self._count >= self._threshold:
            self._state = ActivationState.ACTIVE
            self._count = 0
            logger.info("now active", sender=self._owner or self)
            return True
        return False

    def __str__(self):
        return "ActivationStateMachine({})".format(self._state.name)
