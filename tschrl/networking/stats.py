"""
Collection of transmission statistics from a :class:`~tschrl.networking.mac.TschNetwork`
"""
import logging
from collections import defaultdict
from typing import DefaultDict, Dict

from tschrl.networking.mac import TransmissionRecord, TschNetwork
from tschrl.simtools import SimTimePrepender

logger = SimTimePrepender(logging.getLogger(__name__))


class TransmissionStatistics:
    """
    Subscribes to the :attr:`~tschrl.networking.mac.TschNetwork.nTransmission`
    notifier of a network and counts transmission attempts and successes per
    device and per channel.
    """

    def __init__(self, network: TschNetwork):
        self.attempts: DefaultDict[str, int] = defaultdict(int)
        self.successes: DefaultDict[str, int] = defaultdict(int)
        self.channelAttempts: DefaultDict[int, int] = defaultdict(int)
        self.channelSuccesses: DefaultDict[int, int] = defaultdict(int)
        network.nTransmission.subscribeCallback(self._onTransmission)

    def _onTransmission(self, record: TransmissionRecord):
        name = record.sender.name
        self.attempts[name] += 1
        self.channelAttempts[record.channel] += 1
        if record.success:
            self.successes[name] += 1
            self.channelSuccesses[record.channel] += 1

    @property
    def totalAttempts(self) -> int:
        return sum(self.attempts.values())

    @property
    def totalSuccesses(self) -> int:
        return sum(self.successes.values())

    @property
    def successRate(self) -> float:
        if self.totalAttempts == 0:
            return 0.0
        return self.totalSuccesses / self.totalAttempts

    def channelSuccessRates(self) -> Dict[int, float]:
        return {c: self.channelSuccesses[c] / n for c, n in sorted(self.channelAttempts.items())}

    def log(self):
        for name in sorted(self.attempts):
            logger.info("%s success rate: %f (%d/%d)", name, self.successes[name] / self.attempts[name],
                        self.successes[name], self.attempts[name], sender=self)
        for channel, rate in self.channelSuccessRates().items():
            logger.info("channel %d success rate: %f", channel, rate, sender=self)
        logger.info("Total success rate: %f (%d/%d)", self.successRate, self.totalSuccesses,
                    self.totalAttempts, sender=self)

    def __str__(self):
        return "TransmissionStatistics"
