"""Request and response schemas for the cuesync API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from cuesync.models.comment import Comment


class ExportRequest(BaseModel):
    comments: list[Comment] = Field(default_factory=list, description="Comments to export")
    format: Literal["csv", "text"] = Field("csv", description="Output format (csv/text)")


class HelloFrame(BaseModel):
    """First frame a peer sends on the review socket."""

    type: Literal["hello"]
    user_id: str = Field(..., min_length=1)


class WelcomeFrame(BaseModel):
    type: Literal["welcome"] = "welcome"
    peers: int = 0
