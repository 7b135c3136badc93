"""
Online learning schedulers for TSCH networks.

Both schedulers implement :class:`SlotEventSink` and are driven
synchronously by a MAC layer (or any other runtime) that calls
:meth:`~SlotEventSink.on_slot_boundary` at the start of every slot and
reports transmission outcomes in between. All outcomes of a slotframe have
to be reported before the slot-boundary event that closes it.

* :class:`ChannelHoppingController` learns a channel for every slot of a
  PAN's slotframe and pushes a new hopping sequence once per slotframe.
* :class:`SlotSelectionAgent` runs on a single device and learns which slot
  of the slotframe to transmit in.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Union

import numpy as np

from tschrl.control.activation import ActivationState, ActivationStateMachine
from tschrl.control.deployer import LinkDeployer, MacInterface, ScheduleDeployer
from tschrl.control.learning import LookaheadUpdate, SlotRewardUpdate
from tschrl.control.params import LearningParameters
from tschrl.control.policy import ChannelSelector, EpsilonSchedule, SlotSelector
from tschrl.control.tables import OutcomeTracker, PeakingTable, ValueTable
from tschrl.simtools import SimTimePrepender, SourcePrepender
from tschrl.utility import ensureIndex

logger = SimTimePrepender(logging.getLogger(__name__))


def _adaptLogger(customLogger: Optional[Union[logging.Logger, logging.LoggerAdapter]]) -> logging.LoggerAdapter:
    """
    Returns a logger accepting the `sender` keyword argument: the module
    logger if `customLogger` is ``None``, `customLogger` itself if it is a
    :class:`~tschrl.simtools.SourcePrepender`, and a wrapped `customLogger`
    otherwise.
    """
    if customLogger is None:
        return logger
    if isinstance(customLogger, SourcePrepender):
        return customLogger
    if isinstance(customLogger, logging.LoggerAdapter):
        customLogger = customLogger.logger
    return SimTimePrepender(customLogger)


def _checkAsn(asn: Any) -> int:
    if isinstance(asn, bool) or not hasattr(asn, "__index__") or asn < 0:
        raise ValueError("absolute slot numbers have to be non-negative integers, got {!r}".format(asn))
    return asn.__index__()


class SlotEventSink(ABC):
    """
    The events a MAC layer delivers to a learning scheduler. Handlers run to
    completion and must not be re-entered.
    """

    @abstractmethod
    def on_slot_boundary(self, absolute_slot_number: int):
        """
        Called at the start of every slot with the absolute slot number (ASN)
        """

    @abstractmethod
    def on_transmission_outcome(self, slot: int, channel: int, success: bool):
        """
        Called once per completed transmission attempt
        """

    def on_overheard_activity(self, slot: int):
        """
        Called when traffic of another node is detected in `slot`. Ignored by
        default.
        """


class ChannelHoppingController(SlotEventSink):
    """
    PAN-wide Q-learning channel scheduler.

    The controller owns an `S` x `C` value table. At every slotframe boundary
    it rewards the channel deployed in every slot (see
    :class:`~tschrl.control.learning.LookaheadUpdate`), clears the recorded
    outcomes, chooses a channel for every slot epsilon-greedily, and deploys
    the resulting hopping sequence. Learning only starts after
    `deactivation_threshold` slotframes; outcomes reported before that are
    discarded.
    """

    def __init__(self, slots: int, channels: int, deployer: ScheduleDeployer,
                 params: LearningParameters = None, seed: Optional[int] = None,
                 name: str = "PAN", logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        """
        Args:
            slots: The slotframe length `S`
            channels: The number of channels `C`
            deployer: The deployer used to push hopping sequences to the MAC
                layer(s) of the PAN
            params: The learning parameters, defaults to
                :class:`~tschrl.control.params.LearningParameters` defaults
            seed: Seed of the controller's random number generator
            name: The controller's name, used in log messages
            logger: A logger to be used instead of the module logger
        """
        self.params = params if params is not None else LearningParameters()
        self.name = name
        self._log = _adaptLogger(logger)
        self._rng = np.random.default_rng(seed)

        self._table = ValueTable(slots, channels)
        self._outcomes = OutcomeTracker(slots, channels)
        self._selector = ChannelSelector(self._table, self.params.epsilon, self._rng)
        self._engine = LookaheadUpdate(self.params)
        self._activation = ActivationStateMachine(self.params.deactivation_threshold, owner=self)
        self._deployer = deployer

        self._configuration: List[int] = [int(c) for c in self._rng.integers(channels, size=slots)]
        self._deployed = False
        self._asn: Optional[int] = None
        self.epochs = 0

        self.success_count = 0
        self.total_count = 0

    @property
    def slots(self) -> int:
        return self._table.slots

    @property
    def channels(self) -> int:
        return self._table.channels

    @property
    def values(self) -> np.ndarray:
        """:class:`numpy.ndarray`: A read-only view of the value table"""
        return self._table.values

    @property
    def outcomes(self) -> OutcomeTracker:
        return self._outcomes

    @property
    def current_configuration(self) -> List[int]:
        """The channel of every slot of the schedule currently deployed"""
        return list(self._configuration)

    @property
    def state(self) -> ActivationState:
        return self._activation.state

    @property
    def active(self) -> bool:
        return self._activation.active

    @property
    def deactivation_count(self) -> int:
        return self._activation.deactivation_count

    @property
    def deployer(self) -> ScheduleDeployer:
        return self._deployer

    @property
    def success_rate(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.success_count / self.total_count

    def choose_action(self, slot: int) -> int:
        """
        Returns the channel to be used in `slot` according to the
        epsilon-greedy policy
        """
        explore = self.active or self.params.explore_while_settling
        return self._selector.choose_action(slot, explore=explore)

    def record_outcome(self, slot: int, channel: int, success: bool):
        """
        Records a transmission outcome of the current slotframe. Outcomes are
        discarded while the controller is settling.
        """
        slot = ensureIndex(slot, self.slots, "slot", self)
        channel = ensureIndex(channel, self.channels, "channel", self)
        self.total_count += 1
        if success:
            self.success_count += 1
        if not self.active:
            self._log.debug("not active, discarding outcome of slot %d channel %d", slot, channel, sender=self)
            return
        self._log.debug("transmission %s at: [channel %d, slot %d]",
                        "succeeded" if success else "failed", channel, slot, sender=self)
        self._outcomes.record_outcome(slot, channel, success)

    def on_transmission_outcome(self, slot: int, channel: int, success: bool):
        self.record_outcome(slot, channel, success)

    def on_slot_boundary(self, absolute_slot_number: int):
        asn = _checkAsn(absolute_slot_number)
        if self._asn is not None and asn <= self._asn:
            raise ValueError("{}: absolute slot number {} does not follow {}".format(self, asn, self._asn))
        first = self._asn is None
        self._asn = asn
        if first:
            # a rejected initial configuration is replaced at the next slotframe
            self.deploy_policy(self._configuration)
        if asn > 0 and asn % self.slots == 0:
            self.update_epoch()

    def update_epoch(self):
        """
        Closes the current slotframe: learns from its outcomes (only while
        active, otherwise advances the settling counter), clears the outcomes
        and deploys a new policy.
        """
        self.epochs += 1
        learning = self.active
        if learning and not self._deployed:
            self._log.debug("no configuration deployed yet, nothing to learn from", sender=self)
        elif learning:
            self._engine.apply(self._table, self._outcomes, self._configuration)
        self._outcomes.reset_epoch()
        self.deploy_policy()
        if not learning:
            self._activation.epoch_passed()

    def compute_policy(self) -> List[int]:
        """Chooses a channel for every slot"""
        return [self.choose_action(t) for t in range(self.slots)]

    def deploy_policy(self, configuration: Optional[List[int]] = None) -> bool:
        """
        Deploys `configuration` (a newly computed policy if ``None``). The
        current configuration is only replaced if the deployment succeeds.
        """
        if configuration is None:
            configuration = self.compute_policy()
        assert len(configuration) == self.slots
        if not self._deployer.deploy(configuration):
            self._log.warning("keeping configuration %s, retrying at the next slotframe",
                              self._configuration, sender=self)
            return False
        self._configuration = list(configuration)
        self._deployed = True
        self._log.debug("time slot configuration: %s", self._configuration, sender=self)
        return True

    def summary(self) -> str:
        return "{} success rate: {:.4f} ({}/{})".format(self, self.success_rate, self.success_count, self.total_count)

    def __str__(self):
        return "ChannelHoppingController('{}')".format(self.name)


class SlotSelectionAgent(SlotEventSink):
    """
    Q-learning agent of a single device choosing the slot it transmits in.

    At every slotframe boundary the agent decays its collision-peaking
    scores, chooses a slot (the quietest one when exploring, the best one
    otherwise), moves its link there and, with probability
    `packet_probability`, requests a transmission. Every reported outcome
    updates the value of the slot it happened in. The exploration rate is
    annealed by an :class:`~tschrl.control.policy.EpsilonSchedule` at every
    slot.
    """

    def __init__(self, node_id: int, slots: int, mac: MacInterface,
                 params: LearningParameters = None, destination: Any = 0,
                 channel_offset: int = 0, seed: Optional[int] = None,
                 logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        """
        Args:
            node_id: The device's id
            slots: The slotframe length `S`
            mac: The device's MAC layer
            params: The learning parameters
            destination: The destination of requested transmissions (the sink)
            channel_offset: The channel offset of the agent's link
            seed: Seed of the agent's random number generator
            logger: A logger to be used instead of the module logger
        """
        self.params = params if params is not None else LearningParameters()
        self.node_id = node_id
        self.destination = destination
        self.channel_offset = channel_offset
        self._mac = mac
        self._log = _adaptLogger(logger)
        self._rng = np.random.default_rng(seed)

        self._table = ValueTable(slots)
        self._peaking = PeakingTable(slots)
        self._schedule = EpsilonSchedule(self.params.epsilon_scale, self.params.epsilon_cap)
        self._selector = SlotSelector(self._table, self._peaking, self.params.epsilon, self._rng)
        self._engine = SlotRewardUpdate(self.params)
        self._activation = ActivationStateMachine(self.params.deactivation_threshold, owner=self)
        self._deployer = LinkDeployer(mac)

        self.current_action = int(self._rng.integers(slots))
        self._asn: Optional[int] = None
        self._requestAsn: Optional[int] = None

        self.success_count = 0
        self.total_count = 0
        self.total_delay = 0

    @property
    def slots(self) -> int:
        return self._table.slots

    @property
    def values(self) -> np.ndarray:
        """:class:`numpy.ndarray`: A read-only view of the slot values"""
        return self._table.values[:, 0]

    @property
    def peaking_scores(self) -> np.ndarray:
        return self._peaking.scores

    @property
    def epsilon(self) -> float:
        return self._selector.epsilon

    @property
    def state(self) -> ActivationState:
        return self._activation.state

    @property
    def active(self) -> bool:
        return self._activation.active

    @property
    def deployer(self) -> LinkDeployer:
        return self._deployer

    @property
    def success_rate(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.success_count / self.total_count

    def choose_action(self) -> int:
        explore = self.active or self.params.explore_while_settling
        return self._selector.choose_action(explore=explore)

    def on_slot_boundary(self, absolute_slot_number: int):
        asn = _checkAsn(absolute_slot_number)
        if self._asn is not None and asn <= self._asn:
            raise ValueError("{}: absolute slot number {} does not follow {}".format(self, asn, self._asn))
        self._asn = asn
        self._selector.epsilon = self._schedule(asn)
        if asn % self.slots != 0:
            return
        if asn > 0 and not self.active:
            self._activation.epoch_passed()

        self._peaking.decay(self.params.sigma)
        action = self.choose_action()
        if self._deployer.deploy({action: self.channel_offset}):
            self.current_action = action
        else:
            self._log.warning("keeping slot %d", self.current_action, sender=self)

        if self._rng.random() < self.params.packet_probability:
            self.request_transmission()

    def request_transmission(self):
        """Asks the MAC layer to send a packet to :attr:`destination`"""
        self.total_count += 1
        self._requestAsn = self._asn
        self._log.debug("requesting a transmission of %d bytes to %s",
                        self.params.packet_size, self.destination, sender=self)
        self._mac.request_transmission(self.destination, self.params.packet_size)

    def on_transmission_outcome(self, slot: int, channel: int, success: bool):
        slot = ensureIndex(slot, self.slots, "slot", self)
        if success:
            self.success_count += 1
            if self._requestAsn is not None and self._asn is not None:
                self.total_delay += self._asn - self._requestAsn
                self._requestAsn = None
        if not self.active:
            self._log.debug("not active, discarding outcome of slot %d", slot, sender=self)
            return
        self._engine.apply(self._table, slot, success)

    def on_overheard_activity(self, slot: int):
        self._peaking.bump(slot)

    @property
    def mean_delay(self) -> float:
        """The mean number of slots between a request and its confirmation"""
        if self.success_count == 0:
            return 0.0
        return self.total_delay / self.success_count

    def summary(self) -> str:
        return "Node {} success rate: {:.4f} ({}/{})".format(
            self.node_id, self.success_rate, self.success_count, self.total_count)

    def __str__(self):
        return "SlotSelectionAgent({})".format(self.node_id)
