"""Offline simulation tools for CRUISE."""

from cruise.sim.rtp import RTPResult, simulate_rtp

__all__ = ["RTPResult", "simulate_rtp"]
