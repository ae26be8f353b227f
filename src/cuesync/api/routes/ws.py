"""WebSocket relay for review sync events."""

from __future__ import annotations

import asyncio
import logging
import time

import pydantic
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from cuesync.api.deps import get_relay_hub
from cuesync.api.relay import RelayHub
from cuesync.api.schemas import HelloFrame, WelcomeFrame
from cuesync.config import settings
from cuesync.models.sync import SyncEvent

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/review/{asset_id}")
async def ws_review(
    ws: WebSocket, asset_id: str, hub: RelayHub = Depends(get_relay_hub)
) -> None:
    """Relay sync events between the reviewers of one asset.

    The first frame must be a ``hello`` naming the user; it is answered by
    ``welcome``. Every later frame must be a ``SyncEvent`` originating from
    that user and is forwarded to the other peers unchanged. When the
    user's last socket in the room closes, the remaining peers receive a
    ``user_left`` on the user's behalf.
    """
    await ws.accept()
    try:
        raw = await asyncio.wait_for(ws.receive_text(), timeout=settings.handshake_timeout)
        hello = HelloFrame.model_validate_json(raw)
    except (asyncio.TimeoutError, pydantic.ValidationError) as exc:
        logger.warning("Rejecting relay peer on %s: %s", asset_id, exc)
        await ws.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    except WebSocketDisconnect:
        return

    peers = hub.join(asset_id, ws, hello.user_id)
    try:
        await ws.send_text(WelcomeFrame(peers=peers).model_dump_json())
        while True:
            data = await ws.receive_text()
            try:
                event = SyncEvent.model_validate_json(data)
            except pydantic.ValidationError:
                logger.warning("Dropping malformed frame from %s", hello.user_id)
                continue
            if event.origin_user_id != hello.user_id:
                logger.warning(
                    "Dropping %s from %s claiming origin %s",
                    event.type.value,
                    hello.user_id,
                    event.origin_user_id,
                )
                continue
            await hub.broadcast(asset_id, data, sender=ws)
    except WebSocketDisconnect:
        pass
    finally:
        hub.leave(asset_id, ws)
        if not hub.has_user(asset_id, hello.user_id):
            # peers that dropped never sent their own user_left
            farewell = SyncEvent.user_left(hello.user_id, time.time())
            await hub.broadcast(asset_id, farewell.model_dump_json())
