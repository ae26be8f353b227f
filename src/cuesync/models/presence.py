"""Presence and identity models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PresenceStatus(str, Enum):
    """What a collaborator is currently doing."""

    VIEWING = "viewing"
    COMMENTING = "commenting"
    EDITING = "editing"
    IDLE = "idle"


class Identity(BaseModel):
    """The local actor, fixed for the lifetime of a session."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str
    color: str


class PresenceEntry(BaseModel):
    """Last-known activity of a collaborator."""

    user_id: str
    name: str
    color: str
    status: PresenceStatus = PresenceStatus.VIEWING
    last_seen: float = Field(0.0, description="Epoch seconds of the last activity")
    current_asset_id: str | None = None

    @classmethod
    def for_identity(
        cls,
        identity: Identity,
        status: PresenceStatus = PresenceStatus.VIEWING,
        current_asset_id: str | None = None,
    ) -> "PresenceEntry":
        return cls(
            user_id=identity.user_id,
            name=identity.name,
            color=identity.color,
            status=status,
            current_asset_id=current_asset_id,
        )


class CursorSample(BaseModel):
    """Most recent pointer position of a collaborator."""

    user_id: str
    x: float
    y: float
    color: str
    name: str
    timestamp: float = Field(..., description="Epoch seconds when sampled")
