"""Service interfaces (Protocols) for cuesync.

These protocols define the contracts of the collaborators the review
core depends on but does not implement: media probing and the asset
store. Tests and deployments swap implementations freely.
"""

from typing import Protocol

from cuesync.models.asset import Asset
from cuesync.models.comment import Comment
from cuesync.models.playback import MediaMetadata


class MediaBackend(Protocol):
    """Interface for acquiring media metadata."""

    async def probe(self, source: str) -> MediaMetadata:
        """Read duration, dimensions and frame rate of a source.

        Args:
            source: Local path or URL of the media

        Returns:
            MediaMetadata for the source

        Raises:
            MediaError: If the source cannot be read
        """
        ...


class AssetStore(Protocol):
    """Interface for the external asset/project store."""

    async def list_assets(self, project_id: str) -> list[Asset]:
        """List the assets of a project."""
        ...

    async def list_comments(self, asset_id: str) -> list[Comment]:
        """List persisted comments of an asset."""
        ...

    async def create_comment(self, comment: Comment) -> Comment:
        """Persist a comment and return the stored record."""
        ...

    async def delete_comment(self, comment_id: str) -> None:
        """Delete a comment and its replies."""
        ...
