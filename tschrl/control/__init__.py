"""
The control package contains the learning schedulers and their building
blocks: value tables, action selection, update rules, the activation state
machine, and the deployers pushing schedules to a MAC layer.
"""
from tschrl.control.activation import ActivationState, ActivationStateMachine
from tschrl.control.controller import ChannelHoppingController, SlotEventSink, SlotSelectionAgent
from tschrl.control.deployer import (DeploymentError, HoppingSequence, HoppingSequenceDeployer,
                                     LinkDeployer, MacInterface, MacRejected)
from tschrl.control.params import DeployMode, LearningParameters
