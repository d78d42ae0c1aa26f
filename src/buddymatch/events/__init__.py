"""Domain events and their in-process delivery."""

from .models import EventType, MatchAccepted
from .publisher import EventHandler, InProcessPublisher

__all__ = ["EventHandler", "EventType", "InProcessPublisher", "MatchAccepted"]
