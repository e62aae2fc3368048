"""
WebSocket Router - Call Signaling Endpoint

Thin routing layer: authenticates the socket and hands it to a
CallOrchestrator for the rest of its life.
"""
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, Query

from callrelay.config.constants import WS_POLICY_VIOLATION
from callrelay.services.auth_service import identity_from_token
from callrelay.services.session import CallOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def ws_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
):
    """
    WebSocket endpoint for call signaling.

    Query Parameters:
        token: JWT issued by the marketplace API. Required unless
               WS_AUTH_REQUIRED is off, in which case `join` is trusted.

    Message Types (JSON, client -> server):
        - join, heartbeat, ping
        - call:initiate, call:accept, call:reject, call:end
        - call:offer, call:answer, call:ice-candidate
        - call:connection-state, call:error, call:quality (logged only)
    """
    signaling = websocket.app.state.signaling

    token_identity = identity_from_token(token)
    if token and not token_identity:
        logger.warning("[WebSocket] Invalid token")
        await websocket.close(code=WS_POLICY_VIOLATION, reason="Invalid token")
        return

    if signaling.config.WS_AUTH_REQUIRED and not token_identity:
        logger.warning("[WebSocket] Missing token")
        await websocket.close(code=WS_POLICY_VIOLATION, reason="Missing token")
        return

    await websocket.accept()

    orchestrator = CallOrchestrator(
        websocket=websocket,
        signaling=signaling,
        token_identity=token_identity,
    )
    await orchestrator.run()
