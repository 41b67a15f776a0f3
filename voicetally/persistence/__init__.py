"""Persistence subsystem - JSON blob store for tally state."""
from voicetally.persistence.JsonFileStorage import JsonFileStorage

__all__ = ['JsonFileStorage']
