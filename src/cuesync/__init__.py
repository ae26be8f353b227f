"""cuesync - frame-accurate review comments with realtime presence and sync."""

__version__ = "0.1.0"
