"""
Ready-made simulations wiring learning schedulers to a simulated TSCH network
"""
import logging
from typing import List, Sequence, Union

from tschrl.control.controller import ChannelHoppingController, SlotSelectionAgent
from tschrl.control.deployer import HoppingSequenceDeployer, LinkDeployer
from tschrl.control.params import DeployMode, LearningParameters
from tschrl.networking.mac import InterferenceModel, TschMac, TschNetwork
from tschrl.networking.stats import TransmissionStatistics
from tschrl.simtools import SimMan, SimTimePrepender

logger = SimTimePrepender(logging.getLogger(__name__))

TIMESLOT_LENGTH = 0.01  # seconds
CHANNEL_COUNT = 16  # IEEE 802.15.4 channels 11 to 26


class ScenarioResult:
    """
    Aggregated results of a scenario run
    """

    def __init__(self, controllers: List[Union[ChannelHoppingController, SlotSelectionAgent]],
                 statistics: TransmissionStatistics, slotsSimulated: int):
        self.controllers = controllers
        self.statistics = statistics
        self.slotsSimulated = slotsSimulated

    @property
    def success_count(self) -> int:
        return sum(c.success_count for c in self.controllers)

    @property
    def total_count(self) -> int:
        return sum(c.total_count for c in self.controllers)

    @property
    def success_rate(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.success_count / self.total_count

    @property
    def mean_delay(self) -> float:
        """Mean slots from request to confirmation (slot selection scenarios only)"""
        agents = [c for c in self.controllers if isinstance(c, SlotSelectionAgent)]
        confirmed = sum(a.success_count for a in agents)
        if confirmed == 0:
            return 0.0
        return sum(a.total_delay for a in agents) / confirmed

    def __repr__(self):
        return "ScenarioResult(success_rate={:.4f}, success_count={}, total_count={}, slots={})".format(
            self.success_rate, self.success_count, self.total_count, self.slotsSimulated)


def _simulate(network: TschNetwork, simulationTime: float) -> int:
    network.start()
    SimMan.runSimulation(simulationTime)
    return network.asn


def run_channel_hopping_scenario(node_count: int = 4, slotframe_size: int = 8,
                                 channel_count: int = CHANNEL_COUNT,
                                 failure_probabilities: Sequence[float] = None,
                                 traffic_probability: float = 1.0,
                                 simulation_time: float = 10.0,
                                 params: LearningParameters = None,
                                 deploy_mode: DeployMode = DeployMode.HOPPING_SEQUENCE,
                                 seed: int = None) -> ScenarioResult:
    """
    Simulates a single PAN whose slotframe is shared round-robin by
    `node_count` devices. A :class:`~tschrl.control.controller.ChannelHoppingController`
    learns a channel for every slot and deploys it to all devices.

    Args:
        failure_probabilities: Per-channel probabilities of a transmission
            being disturbed by external interference. No interference if
            ``None``.
        traffic_probability: The probability of a device sending in a slot
            it owns
        simulation_time: Simulated seconds
    """
    if params is None:
        params = LearningParameters(deactivation_threshold=2)
    if failure_probabilities is None:
        interference = InterferenceModel.clear(channel_count)
    else:
        interference = InterferenceModel(failure_probabilities)

    SimMan.init()
    network = TschNetwork(slotframe_size, channel_count, interference, TIMESLOT_LENGTH,
                          traffic_probability, seed=seed)
    macs = []
    for i in range(node_count):
        owned = [s for s in range(slotframe_size) if s % node_count == i]
        macs.append(network.addMac(TschMac("node{}".format(i + 1), slotframe_size, channel_count, owned)))

    if deploy_mode is DeployMode.HOPPING_SEQUENCE:
        deployer = HoppingSequenceDeployer(macs)
    else:
        deployer = LinkDeployer(macs)
    controller = ChannelHoppingController(slotframe_size, channel_count, deployer, params, seed=seed)
    for mac in macs:
        mac.attach(controller)
    statistics = TransmissionStatistics(network)

    slots = _simulate(network, simulation_time)
    logger.info(controller.summary())
    statistics.log()
    return ScenarioResult([controller], statistics, slots)


def run_slot_selection_scenario(node_count: int = 2, slotframe_size: int = 15,
                                packet_probability: float = 0.03, packet_size: int = 50,
                                simulation_time: float = 2.0, success_reward: float = 1.0,
                                failure_reward: float = -1.0, params: LearningParameters = None,
                                seed: int = None) -> ScenarioResult:
    """
    Simulates `node_count` devices on a single channel, the first of which is
    the sink. Every other device runs a
    :class:`~tschrl.control.controller.SlotSelectionAgent` choosing the slot
    it sends its packets to the sink in.
    """
    if node_count < 2:
        raise ValueError("at least a sink and one sending node are required, got {}".format(node_count))
    if params is None:
        params = LearningParameters()
    params = params.replace(packet_probability=packet_probability, packet_size=packet_size,
                            success_reward=success_reward, failure_reward=failure_reward)

    SimMan.init()
    network = TschNetwork(slotframe_size, 1, slotDuration=TIMESLOT_LENGTH, seed=seed)
    agents = []
    for i in range(1, node_count):
        mac = network.addMac(TschMac("node{}".format(i + 1), slotframe_size, 1))
        agentSeed = None if seed is None else seed + i
        agent = SlotSelectionAgent(i, slotframe_size, mac, params, destination=0, seed=agentSeed)
        mac.attach(agent)
        agents.append(agent)
    statistics = TransmissionStatistics(network)

    slots = _simulate(network, simulation_time)
    for agent in agents:
        logger.info(agent.summary())
    result = ScenarioResult(agents, statistics, slots)
    logger.info("Total success rate: %f (%d/%d)", result.success_rate, result.success_count, result.total_count)
    return result
