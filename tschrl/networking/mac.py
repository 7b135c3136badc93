"""
A slot-level simulation of a TSCH network that drives learning schedulers.

The simulation does not model framing, CCA, acknowledgements, or energy.
Every slot, each device that has a link in the slot and a frame queued
transmits on the link's channel. A transmission fails if another device
transmits on the same channel in the same slot (collision) or, with a
per-channel probability, due to external interference.

Events are delivered to the attached :class:`~tschrl.control.controller.SlotEventSink`
objects in this order per slot: slot boundary, then the outcomes of the
slot's transmissions, then overheard activity.
"""
import logging
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Optional, Sequence

import numpy as np

from tschrl.control.controller import SlotEventSink
from tschrl.control.deployer import MacInterface, MacRejected
from tschrl.simtools import Notifier, SimMan, SimTimePrepender, ensureType
from tschrl.utility import ensureIndex

logger = SimTimePrepender(logging.getLogger(__name__))


class MacStatus(Enum):
    """
    An enumeration of the statuses a data request is confirmed with
    """
    SUCCESS = 0
    NO_ACK = 1
    CHANNEL_ACCESS_FAILURE = 2


class Frame:
    """
    A frame queued at a MAC layer
    """

    def __init__(self, destination: Any, payloadSize: int, asn: Optional[int]):
        self.destination = destination
        self.payloadSize = payloadSize
        self.asn = asn

    def __repr__(self):
        return "Frame(destination={}, payloadSize={:d}, asn={})".format(self.destination, self.payloadSize, self.asn)


class TransmissionRecord:
    """
    The outcome of a single transmission attempt, as provided by
    :attr:`TschNetwork.nTransmission`
    """

    def __init__(self, asn: int, slot: int, channel: int, sender: 'TschMac', status: MacStatus):
        self.asn = asn
        self.slot = slot
        self.channel = channel
        self.sender = sender
        self.status = status

    @property
    def success(self) -> bool:
        return self.status is MacStatus.SUCCESS

    def __repr__(self):
        return "TransmissionRecord(asn={}, slot={}, channel={}, sender={}, status={})".format(
            self.asn, self.slot, self.channel, self.sender, self.status.name)


class TschMac(MacInterface):
    """
    The MAC layer of a simulated device. Implements the
    :class:`~tschrl.control.deployer.MacInterface` the learning schedulers
    deploy their schedules to.

    The device transmits in a slot if it owns the slot and has a link in it.
    Links come either from :meth:`add_link` or, for every owned slot, from the
    hopping sequence set by :meth:`set_hopping_sequence`.
    """

    def __init__(self, name: str, slots: int, channels: int, ownedSlots: Iterable[int] = None,
                 maxLinks: int = None):
        """
        Args:
            name: The device name
            slots: The slotframe length
            channels: The number of channels
            ownedSlots: The slots the device may transmit in, every slot if
                ``None``
            maxLinks: The capacity of the link table. :meth:`add_link` raises
                :class:`~tschrl.control.deployer.MacRejected` once it is
                exceeded. Unlimited if ``None``.
        """
        self.name = name
        self.slots = slots
        self.channels = channels
        if ownedSlots is None:
            self.ownedSlots = set(range(slots))
        else:
            self.ownedSlots = {ensureIndex(s, slots, "owned slot", self) for s in ownedSlots}
        self.maxLinks = maxLinks

        self._links: Dict[int, int] = {}
        self._hoppingSequence: Optional[List[int]] = None
        self._queue: Deque[Frame] = deque()
        self.sink: Optional[SlotEventSink] = None
        self.currentAsn: Optional[int] = None

    def attach(self, sink: SlotEventSink):
        """Sets the scheduler receiving this device's events"""
        ensureType(sink, SlotEventSink, self)
        self.sink = sink

    # MacInterface

    def delete_link(self, slot: int):
        slot = ensureIndex(slot, self.slots, "slot", self)
        if self._links.pop(slot, None) is None:
            logger.debug("no link in slot %d to delete", slot, sender=self)

    def add_link(self, slot: int, channel: int):
        slot = ensureIndex(slot, self.slots, "slot", self)
        channel = ensureIndex(channel, self.channels, "channel", self)
        if self.maxLinks is not None and slot not in self._links and len(self._links) >= self.maxLinks:
            raise MacRejected("{}: link table full ({} links)".format(self, self.maxLinks))
        self._links[slot] = channel

    def check_hopping_sequence(self, channels: Sequence[int]):
        if len(channels) != self.slots:
            raise MacRejected("{}: hopping sequence of length {} does not match {} slots".format(
                self, len(channels), self.slots))
        for c in channels:
            ensureIndex(c, self.channels, "channel", self)

    def set_hopping_sequence(self, channels: Sequence[int]):
        self.check_hopping_sequence(channels)
        self._hoppingSequence = [int(c) for c in channels]

    def request_transmission(self, destination: Any, payload_size: int):
        self._queue.append(Frame(destination, payload_size, self.currentAsn))

    # Simulation side

    @property
    def links(self) -> Dict[int, int]:
        return dict(self._links)

    @property
    def hoppingSequence(self) -> Optional[List[int]]:
        if self._hoppingSequence is None:
            return None
        return list(self._hoppingSequence)

    @property
    def queueLength(self) -> int:
        return len(self._queue)

    def channelFor(self, slot: int) -> Optional[int]:
        """
        Returns the channel the device would transmit on in `slot`, or
        ``None`` if it has no link in `slot`.
        """
        if slot not in self.ownedSlots:
            return None
        if slot in self._links:
            return self._links[slot]
        if self._hoppingSequence is not None:
            return self._hoppingSequence[slot]
        return None

    def popFrame(self) -> Optional[Frame]:
        if self._queue:
            return self._queue.popleft()
        return None

    def __str__(self):
        return "TschMac('{}')".format(self.name)


class InterferenceModel:
    """
    Per-channel probability of a transmission failing due to external
    interference
    """

    def __init__(self, failureProbabilities: Sequence[float]):
        probabilities = np.asarray(failureProbabilities, dtype=np.float64)
        if probabilities.ndim != 1 or probabilities.size == 0:
            raise ValueError("expected a non-empty list of failure probabilities")
        if np.any(probabilities < 0) or np.any(probabilities > 1):
            raise ValueError("failure probabilities have to be within [0, 1]")
        self.failureProbabilities = probabilities

    @classmethod
    def clear(cls, channels: int) -> 'InterferenceModel':
        """Returns a model without any interference on `channels` channels"""
        return cls([0.0] * channels)

    @property
    def channels(self) -> int:
        return self.failureProbabilities.size

    def disturbed(self, channel: int, rng: np.random.Generator) -> bool:
        return bool(rng.random() < self.failureProbabilities[channel])


class TschNetwork:
    """
    Runs the slots of a TSCH network as a SimPy process. Every
    :attr:`slotDuration` seconds, the absolute slot number is advanced, slot
    boundary events are delivered, and the slot's transmissions are resolved.
    """

    def __init__(self, slots: int, channels: int, interference: InterferenceModel = None,
                 slotDuration: float = 0.01, trafficProbability: float = 0.0,
                 seed: Optional[int] = None):
        """
        Args:
            slots: The slotframe length
            channels: The number of channels
            interference: The interference model, no interference if ``None``
            slotDuration: The duration of a slot in seconds
            trafficProbability: The probability of a device generating a
                frame in every slot it has a link in. Devices driven by a
                :class:`~tschrl.control.controller.SlotSelectionAgent` keep
                this at ``0`` and request frames themselves.
            seed: Seed of the network's random number generator
        """
        if interference is None:
            interference = InterferenceModel.clear(channels)
        if interference.channels != channels:
            raise ValueError("interference model covers {} channels, expected {}".format(
                interference.channels, channels))
        self.slots = slots
        self.channels = channels
        self.interference = interference
        self.slotDuration = slotDuration
        self.trafficProbability = trafficProbability
        self._rng = np.random.default_rng(seed)
        self.macs: List[TschMac] = []
        self.asn = 0
        self._process = None

        self.nTransmission: Notifier = Notifier("transmission", self)
        """
        :class:`~tschrl.simtools.Notifier`: A notifier that is triggered with
            a :class:`TransmissionRecord` for every transmission attempt
        """

    def addMac(self, mac: TschMac) -> TschMac:
        ensureType(mac, TschMac, self)
        if mac.slots != self.slots or mac.channels != self.channels:
            raise ValueError("{} does not match the network's slotframe".format(mac))
        self.macs.append(mac)
        return mac

    def start(self):
        """Registers the slot process at the SimPy environment"""
        assert self._process is None, "network already started"
        self._process = SimMan.process(self._run())
        return self._process

    def _sinks(self) -> List[SlotEventSink]:
        sinks = []
        for mac in self.macs:
            if mac.sink is not None and not any(mac.sink is s for s in sinks):
                sinks.append(mac.sink)
        return sinks

    def _run(self):
        while True:
            self.runSlot()
            yield SimMan.timeout(self.slotDuration)

    def runSlot(self):
        """Processes the slot of :attr:`asn` and advances :attr:`asn`"""
        asn = self.asn
        slot = asn % self.slots
        for mac in self.macs:
            mac.currentAsn = asn
        for sink in self._sinks():
            sink.on_slot_boundary(asn)

        transmissions = []
        for mac in self.macs:
            channel = mac.channelFor(slot)
            if channel is None:
                continue
            if self.trafficProbability > 0 and self._rng.random() < self.trafficProbability:
                mac.request_transmission(None, 0)
            if mac.popFrame() is not None:
                transmissions.append((mac, channel))

        perChannel: Dict[int, int] = {}
        for _, channel in transmissions:
            perChannel[channel] = perChannel.get(channel, 0) + 1

        for mac, channel in transmissions:
            if perChannel[channel] > 1:
                status = MacStatus.NO_ACK
                logger.debug("collision in slot %d on channel %d", slot, channel, sender=mac)
            elif self.interference.disturbed(channel, self._rng):
                status = MacStatus.NO_ACK
            else:
                status = MacStatus.SUCCESS
            record = TransmissionRecord(asn, slot, channel, mac, status)
            if mac.sink is not None:
                mac.sink.on_transmission_outcome(slot, channel, record.success)
            self.nTransmission.trigger(record)

        if transmissions:
            senders = [mac for mac, _ in transmissions]
            for mac in self.macs:
                if mac.sink is not None and not any(mac is s for s in senders):
                    mac.sink.on_overheard_activity(slot)

        self.asn += 1

    def __str__(self):
        return "TschNetwork"
