"""Offline tools for checking game balance."""

from .blackjack_simulator import BlackjackSimulator, SimulationResult

__all__ = ["BlackjackSimulator", "SimulationResult"]
