"""
Configuration objects for the learning schedulers
"""
from enum import Enum


class DeployMode(Enum):
    """
    An enumeration of the ways a schedule is handed to the MAC layer
    """
    HOPPING_SEQUENCE = 0
    """A single set_hopping_sequence call for the whole slotframe"""
    LINKS = 1
    """A delete_link / add_link pair for every slot"""


def _checkProbability(name: str, value: float):
    if not 0.0 <= value <= 1.0:
        raise ValueError("{} has to be within [0, 1], got {}".format(name, value))


class LearningParameters:
    """
    Immutable set of learning parameters. The defaults are the values used
    in the reference TSCH evaluation runs.

    Attributes:
        alpha: Learning rate
        gamma: Discount factor
        epsilon: Exploration rate
        sigma: Multiplicative decay of the collision-peaking score per epoch
        success_reward: Reward for a successful transmission
        failure_reward: Reward for a failed (or missing) transmission
        deactivation_threshold: Number of epoch boundaries to settle before
            learning starts
        epsilon_cap: Upper bound of the annealed exploration rate
        epsilon_scale: Numerator `k` of the annealing schedule ``k / asn``
        packet_probability: Probability of a single-device agent requesting
            a transmission once per epoch
        packet_size: Payload size of those requests in bytes
        explore_while_settling: If ``True``, policies deployed while
            settling explore as well; by default they are pure exploitation
    """

    def __init__(self,
                 alpha: float = 0.1,
                 gamma: float = 0.95,
                 epsilon: float = 0.1,
                 sigma: float = 0.8,
                 success_reward: float = 1.0,
                 failure_reward: float = -1.0,
                 deactivation_threshold: int = 0,
                 epsilon_cap: float = 0.5,
                 epsilon_scale: float = 10000.0,
                 packet_probability: float = 0.03,
                 packet_size: int = 50,
                 explore_while_settling: bool = False):
        for name, value in (("alpha", alpha), ("gamma", gamma), ("epsilon", epsilon),
                            ("sigma", sigma), ("epsilon_cap", epsilon_cap),
                            ("packet_probability", packet_probability)):
            _checkProbability(name, value)
        if deactivation_threshold < 0:
            raise ValueError("deactivation_threshold must not be negative, got {}".format(deactivation_threshold))
        if epsilon_scale < 0:
            raise ValueError("epsilon_scale must not be negative, got {}".format(epsilon_scale))
        if packet_size <= 0:
            raise ValueError("packet_size has to be positive, got {}".format(packet_size))

        object.__setattr__(self, "_values", {
            "alpha": float(alpha),
            "gamma": float(gamma),
            "epsilon": float(epsilon),
            "sigma": float(sigma),
            "success_reward": float(success_reward),
            "failure_reward": float(failure_reward),
            "deactivation_threshold": int(deactivation_threshold),
            "epsilon_cap": float(epsilon_cap),
            "epsilon_scale": float(epsilon_scale),
            "packet_probability": float(packet_probability),
            "packet_size": int(packet_size),
            "explore_while_settling": bool(explore_while_settling),
        })

    def __getattr__(self, name):
        try:
            return self.__dict__["_values"][name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name, value):
        raise AttributeError("LearningParameters are immutable")

    def __eq__(self, other):
        return isinstance(other, LearningParameters) and self._values == other._values

    def __hash__(self):
        return hash(tuple(sorted(self._values.items())))

    def replace(self, **changes) -> 'LearningParameters':
        """
        Returns a copy with the values provided as keyword arguments replaced
        """
        values = dict(self._values)
        unknown = set(changes) - set(values)
        if unknown:
            raise TypeError("Unknown learning parameters: {}".format(", ".join(sorted(unknown))))
        values.update(changes)
        return LearningParameters(**values)

    def reward(self, success: bool) -> float:
        """Returns the reward for a transmission outcome"""
        return self.success_reward if success else self.failure_reward

    def __repr__(self):
        return "LearningParameters({})".format(
            ", ".join("{}={!r}".format(k, v) for k, v in self._values.items()))
