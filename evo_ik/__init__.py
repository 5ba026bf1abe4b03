"""Evolutionary inverse kinematics solvers for joint chains."""

__version__ = "0.1.0"
