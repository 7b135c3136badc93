import pytest

from tschrl.control.deployer import MacInterface
from tschrl.control.params import LearningParameters
from tschrl.simtools import SimMan

@pytest.fixture
def simman():
    SimMan.init()
    yield SimMan

@pytest.fixture
def mac(mocker):
    """A MAC layer double recording every schedule edit"""
    return mocker.Mock(spec=MacInterface)

@pytest.fixture
def greedy_params():
    """Learning parameters without exploration or settling"""
    return LearningParameters(alpha=0.5, gamma=0.9, epsilon=0.0, epsilon_cap=0.0,
                              deactivation_threshold=0)
