"""
The MAC-facing side of the learning schedulers.

A :class:`MacInterface` is the narrow contract a MAC layer offers to the
schedulers. Schedule deployers translate per-slot decisions into calls of
that contract. A deployment either replaces the previously deployed schedule
completely or leaves it authoritative: if a MAC rejects an edit, the edits
applied so far are rolled back and :meth:`ScheduleDeployer.deploy` returns
``False``.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from tschrl.simtools import SimTimePrepender

logger = SimTimePrepender(logging.getLogger(__name__))


class DeploymentError(Exception):
    """
    Raised by a :class:`MacInterface` implementation that fails to apply a
    schedule edit
    """


class MacRejected(DeploymentError):
    """
    Raised by a :class:`MacInterface` implementation that refuses a schedule
    edit (e.g. because its link table is full)
    """


class MacInterface(ABC):
    """
    The operations a MAC layer offers to the learning schedulers. Each
    schedule-editing method may raise a :class:`DeploymentError`.
    """

    @abstractmethod
    def delete_link(self, slot: int):
        """Removes the link of `slot`"""

    @abstractmethod
    def add_link(self, slot: int, channel: int):
        """Adds a link using `channel` in `slot`"""

    @abstractmethod
    def set_hopping_sequence(self, channels: Sequence[int]):
        """Replaces the hopping sequence of the whole slotframe"""

    def check_hopping_sequence(self, channels: Sequence[int]):
        """
        Raises a :class:`DeploymentError` if :meth:`set_hopping_sequence`
        would refuse `channels`, without changing anything. Accepts every
        sequence by default.
        """

    def request_transmission(self, destination: Any, payload_size: int):
        """
        Enqueues a frame of `payload_size` bytes for `destination`. MAC
        layers that do not generate traffic on request may leave this
        unimplemented.
        """
        raise NotImplementedError


class HoppingSequence:
    """
    An immutable slot -> channel mapping for one slotframe
    """

    def __init__(self, channels: Iterable[int]):
        self._channels: Tuple[int, ...] = tuple(int(c) for c in channels)

    @property
    def channels(self) -> List[int]:
        return list(self._channels)

    def __len__(self):
        return len(self._channels)

    def __getitem__(self, slot):
        return self._channels[slot]

    def __iter__(self):
        return iter(self._channels)

    def __eq__(self, other):
        if isinstance(other, HoppingSequence):
            return self._channels == other._channels
        if isinstance(other, (list, tuple)):
            return self._channels == tuple(other)
        return NotImplemented

    def __hash__(self):
        return hash(self._channels)

    def get_string(self) -> str:
        return " ".join("{}:{}".format(slot, channel) for slot, channel in enumerate(self._channels))

    def __repr__(self):
        return "HoppingSequence({})".format(list(self._channels))


class ScheduleDeployer(ABC):
    """
    Framework for classes that push schedules to one or more MAC layers
    """

    def __init__(self, macs: Union[MacInterface, Iterable[MacInterface]]):
        if isinstance(macs, MacInterface):
            macs = [macs]
        self._macs: List[MacInterface] = list(macs)
        self.deployment_failures = 0

    @property
    def macs(self) -> List[MacInterface]:
        return list(self._macs)

    @abstractmethod
    def deploy(self, configuration) -> bool:
        """
        Pushes `configuration` to every MAC. Returns ``True`` on success. On
        failure, the previously deployed configuration stays in place and
        ``False`` is returned.
        """

    def _failed(self, error: DeploymentError):
        self.deployment_failures += 1
        logger.warning("deployment failed (%s), keeping the previous schedule", error, sender=self)


class HoppingSequenceDeployer(ScheduleDeployer):
    """
    Deploys a whole slotframe at once via
    :meth:`MacInterface.set_hopping_sequence`.
    """

    def __init__(self, macs: Union[MacInterface, Iterable[MacInterface]]):
        super(HoppingSequenceDeployer, self).__init__(macs)
        self._last: Optional[HoppingSequence] = None

    @property
    def last_deployed(self) -> Optional[List[int]]:
        """The channel list that was pushed last, ``None`` before the first deployment"""
        if self._last is None:
            return None
        return self._last.channels

    def deploy(self, configuration: Sequence[int]) -> bool:
        sequence = HoppingSequence(configuration)
        updated = []
        try:
            # no MAC is touched unless every MAC accepts the sequence
            for mac in self._macs:
                mac.check_hopping_sequence(sequence.channels)
            for mac in self._macs:
                mac.set_hopping_sequence(sequence.channels)
                updated.append(mac)
        except DeploymentError as e:
            self._rollback(updated)
            self._failed(e)
            return False
        self._last = sequence
        logger.debug("deployed hopping sequence %s", sequence.get_string(), sender=self)
        return True

    def _rollback(self, updated: List[MacInterface]):
        if self._last is None:
            if updated:
                logger.error("no previous hopping sequence to restore on %s",
                             ", ".join(str(mac) for mac in updated), sender=self)
            return
        for mac in updated:
            try:
                mac.set_hopping_sequence(self._last.channels)
            except DeploymentError as e:
                logger.error("could not restore the previous hopping sequence on %s: %s", mac, e, sender=self)

    def __str__(self):
        return "HoppingSequenceDeployer"


class LinkDeployer(ScheduleDeployer):
    """
    Deploys a configuration by editing individual links: for every slot whose
    channel changed, the old link is deleted and the new one added.

    Configurations are either a sequence (slot -> channel for every slot) or a
    mapping of the slots in use to their channels.
    """

    def __init__(self, macs: Union[MacInterface, Iterable[MacInterface]]):
        super(LinkDeployer, self).__init__(macs)
        self._last: Dict[int, int] = {}

    @property
    def last_deployed(self) -> Dict[int, int]:
        """A slot -> channel dict of the links that were pushed last"""
        return dict(self._last)

    @staticmethod
    def _asLinks(configuration: Union[Sequence[int], Mapping[int, int]]) -> Dict[int, int]:
        if isinstance(configuration, Mapping):
            return {int(s): int(c) for s, c in configuration.items()}
        return {slot: int(c) for slot, c in enumerate(configuration)}

    def deploy(self, configuration: Union[Sequence[int], Mapping[int, int]]) -> bool:
        links = self._asLinks(configuration)
        old = self._last
        edits = []
        for slot in sorted(set(old) | set(links)):
            if old.get(slot) == links.get(slot):
                continue
            if slot in old:
                edits.append(("delete", slot, old[slot]))
            if slot in links:
                edits.append(("add", slot, links[slot]))

        applied = []
        try:
            for mac in self._macs:
                for edit in edits:
                    action, slot, channel = edit
                    if action == "delete":
                        mac.delete_link(slot)
                    else:
                        mac.add_link(slot, channel)
                    applied.append((mac, edit))
        except DeploymentError as e:
            self._rollback(applied)
            self._failed(e)
            return False

        self._last = links
        logger.debug("deployed %d link edits, links: %s", len(edits), links, sender=self)
        return True

    def _rollback(self, applied):
        for mac, (action, slot, channel) in reversed(applied):
            try:
                if action == "delete":
                    mac.add_link(slot, channel)
                else:
                    mac.delete_link(slot)
            except DeploymentError as e:
                logger.error("could not undo %s of slot %d on %s: %s", action, slot, mac, e, sender=self)

    def __str__(self):
        return "LinkDeployer"
