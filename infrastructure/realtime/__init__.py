"""Realtime signal bus"""
from .bus import InMemorySignalBus, SignalBus, Subscription

__all__ = ["InMemorySignalBus", "SignalBus", "Subscription"]
