"""Collaborator presence."""

from cuesync.presence.tracker import PresenceTracker

__all__ = ["PresenceTracker"]
