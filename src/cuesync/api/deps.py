"""FastAPI dependencies."""

from __future__ import annotations

from cuesync.api.relay import RelayHub

_relay_hub: RelayHub | None = None


def init_relay_hub() -> RelayHub:
    """Initialize the global RelayHub (called at app startup)."""
    global _relay_hub
    _relay_hub = RelayHub()
    return _relay_hub


def get_relay_hub() -> RelayHub:
    """Dependency that provides the RelayHub instance."""
    if _relay_hub is None:
        raise RuntimeError("RelayHub not initialized; call init_relay_hub() first")
    return _relay_hub
