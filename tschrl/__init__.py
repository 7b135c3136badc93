"""
Online reinforcement-learning schedulers for Time-Slotted Channel-Hopping
(TSCH) networks, along with a slot-level SimPy simulation to drive them.
"""
