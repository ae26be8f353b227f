"""In-memory asset store for development and tests."""

from __future__ import annotations

from cuesync.models.asset import Asset
from cuesync.models.comment import Comment


class InMemoryAssetStore:
    """Asset store kept in process memory.

    Comments are stored per id; deleting a comment removes its direct
    replies as well.
    """

    def __init__(self, assets: list[Asset] | None = None) -> None:
        self._assets: dict[str, Asset] = {a.id: a for a in assets or []}
        self._comments: dict[str, Comment] = {}

    def add_asset(self, asset: Asset) -> None:
        self._assets[asset.id] = asset

    async def list_assets(self, project_id: str) -> list[Asset]:
        return [a for a in self._assets.values() if a.project_id == project_id]

    async def list_comments(self, asset_id: str) -> list[Comment]:
        return [
            c.model_copy(deep=True) for c in self._comments.values() if c.asset_id == asset_id
        ]

    async def create_comment(self, comment: Comment) -> Comment:
        stored = comment.model_copy(deep=True)
        self._comments[stored.id] = stored
        return stored.model_copy(deep=True)

    async def delete_comment(self, comment_id: str) -> None:
        doomed = {comment_id} | {
            c.id for c in self._comments.values() if c.parent_id == comment_id
        }
        for cid in doomed:
            self._comments.pop(cid, None)
