"""
The networking package provides a slot-level simulation of a TSCH network
delivering slot and transmission events to learning schedulers.
"""
from tschrl.networking.mac import InterferenceModel, MacStatus, TschMac, TschNetwork
from tschrl.networking.stats import TransmissionStatistics
