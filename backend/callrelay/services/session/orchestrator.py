import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket
from pydantic import ValidationError

from callrelay.config.constants import (
    EVENT_CALL_ACCEPT,
    EVENT_CALL_ANSWER,
    EVENT_CALL_CLIENT_ERROR,
    EVENT_CALL_CONNECTION_STATE,
    EVENT_CALL_END,
    EVENT_CALL_ICE_CANDIDATE,
    EVENT_CALL_INITIATE,
    EVENT_CALL_OFFER,
    EVENT_CALL_QUALITY,
    EVENT_CALL_REJECT,
    EVENT_HEARTBEAT,
    EVENT_HEARTBEAT_ACK,
    EVENT_JOIN,
    EVENT_JOINED,
    EVENT_PING,
    EVENT_PONG,
    RELAY_PAYLOAD_KEYS,
)
from callrelay.schemas.websocket_events import (
    CallAcceptEvent,
    CallAnswerEvent,
    CallDiagnosticsEvent,
    CallEndEvent,
    CallIceCandidateEvent,
    CallInitiateEvent,
    CallOfferEvent,
    CallRejectEvent,
    HeartbeatEvent,
    JoinEvent,
    PingEvent,
)
from callrelay.services import metrics
from callrelay.services.signaling import (
    Connection,
    InvalidMessageError,
    NotJoinedError,
    SignalingError,
    SignalingService,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[None]]


class CallOrchestrator:
    """
    Orchestrates the lifecycle of one signaling WebSocket.
    Handles:
    - Identity registration (`join`)
    - Message loop dispatching events to the relay
    - Reporting recoverable errors back as `call:error`
    - Cleanup on disconnect
    """

    def __init__(
        self,
        websocket: WebSocket,
        signaling: SignalingService,
        token_identity: Optional[str] = None,
    ):
        self.websocket = websocket
        self.signaling = signaling
        self.token_identity = token_identity
        self.connection = Connection(websocket)
        self._handlers: Dict[str, Handler] = {
            EVENT_JOIN: self._on_join,
            EVENT_HEARTBEAT: self._on_heartbeat,
            EVENT_PING: self._on_ping,
            EVENT_CALL_INITIATE: self._on_initiate,
            EVENT_CALL_ACCEPT: self._on_accept,
            EVENT_CALL_REJECT: self._on_reject,
            EVENT_CALL_END: self._on_end,
            EVENT_CALL_OFFER: self._on_relay,
            EVENT_CALL_ANSWER: self._on_relay,
            EVENT_CALL_ICE_CANDIDATE: self._on_relay,
            EVENT_CALL_CONNECTION_STATE: self._on_diagnostics,
            EVENT_CALL_CLIENT_ERROR: self._on_diagnostics,
            EVENT_CALL_QUALITY: self._on_diagnostics,
        }

    @property
    def relay(self):
        return self.signaling.relay

    async def run(self):
        """Main entry point: message loop until the socket closes."""
        metrics.connections_gauge.inc()
        try:
            await self._message_loop()
        finally:
            metrics.connections_gauge.dec()
            await self._cleanup()

    async def _message_loop(self):
        try:
            while True:
                message = await self.websocket.receive()

                if message["type"] == "websocket.disconnect":
                    logger.info(f"[Orchestrator] {self.connection} disconnected")
                    break

                if message.get("text") is not None:
                    await self.handle_text(message["text"])
                else:
                    logger.warning(f"[Orchestrator] Unexpected message structure from {self.connection}")

        except Exception as e:
            logger.error(f"[Orchestrator] Error during message loop: {e}")

    async def handle_text(self, text_data: str):
        """Decode one JSON frame and dispatch it."""
        msg_type = None
        try:
            try:
                data = json.loads(text_data)
            except json.JSONDecodeError:
                raise InvalidMessageError("Invalid JSON")
            if not isinstance(data, dict):
                raise InvalidMessageError("Expected a JSON object")

            if not isinstance(data.get("type"), str):
                raise InvalidMessageError("Message type must be a string")
            msg_type = data["type"]

            handler = self._handlers.get(msg_type)
            if handler is None:
                logger.warning(f"[Orchestrator] Unknown message type: {msg_type}")
                raise InvalidMessageError(f"Unknown message type: {msg_type}")

            try:
                await handler(data)
            except ValidationError as e:
                raise InvalidMessageError(
                    f"Invalid {msg_type} payload: {e.error_count()} error(s)",
                    booking_id=data.get("bookingId"),
                )

        except SignalingError as e:
            metrics.signaling_errors.labels(code=e.code).inc()
            logger.info(f"[Orchestrator] {msg_type} from {self.connection.identity} failed: {e.code}")
            await self.connection.send_json(e.to_event(request=msg_type))

    # === Connection-level events ===

    async def _on_join(self, data: Dict[str, Any]):
        event = JoinEvent.model_validate(data)
        identity = event.identity or self.token_identity
        if not identity:
            raise InvalidMessageError("join requires an identity")

        if self.token_identity and identity != self.token_identity:
            raise UnauthorizedError("Identity does not match the authenticated account")

        if self.connection.identity and self.connection.identity != identity:
            raise UnauthorizedError("Connection already joined as another identity")

        self.signaling.registry.register(identity, self.connection)
        if self.signaling.presence is not None:
            await self.signaling.presence.set_online(identity)

        await self.connection.send_json({
            "type": EVENT_JOINED,
            "identity": identity,
            "connectionId": self.connection.connection_id,
        })

    async def _on_heartbeat(self, data: Dict[str, Any]):
        HeartbeatEvent.model_validate(data)
        identity = self._require_joined()
        if self.signaling.presence is not None:
            await self.signaling.presence.heartbeat(identity)
        await self.connection.send_json({"type": EVENT_HEARTBEAT_ACK})

    async def _on_ping(self, data: Dict[str, Any]):
        PingEvent.model_validate(data)
        await self.connection.send_json({"type": EVENT_PONG})

    # === Call events ===

    async def _on_initiate(self, data: Dict[str, Any]):
        event = CallInitiateEvent.model_validate(data)
        await self.relay.initiate(self.connection, event.booking_id, event.caller_type)

    async def _on_accept(self, data: Dict[str, Any]):
        event = CallAcceptEvent.model_validate(data)
        await self.relay.accept(self.connection, event.booking_id)

    async def _on_reject(self, data: Dict[str, Any]):
        event = CallRejectEvent.model_validate(data)
        await self.relay.reject(self.connection, event.booking_id, event.reason)

    async def _on_end(self, data: Dict[str, Any]):
        event = CallEndEvent.model_validate(data)
        await self.relay.end(self.connection, event.booking_id)

    async def _on_relay(self, data: Dict[str, Any]):
        kind = data["type"]
        model = {
            EVENT_CALL_OFFER: CallOfferEvent,
            EVENT_CALL_ANSWER: CallAnswerEvent,
            EVENT_CALL_ICE_CANDIDATE: CallIceCandidateEvent,
        }[kind]
        event = model.model_validate(data)
        # Forward the raw value, not the validated copy
        payload = data[RELAY_PAYLOAD_KEYS[kind]]
        await self.relay.relay_payload(self.connection, kind, event.booking_id, payload, to=event.to)

    async def _on_diagnostics(self, data: Dict[str, Any]):
        event = CallDiagnosticsEvent.model_validate(data)
        logger.info(
            f"[Orchestrator] {event.type} from {self.connection.identity} "
            f"booking={event.booking_id} state={event.state} error={event.error}"
        )

    # === Helpers ===

    def _require_joined(self) -> str:
        if self.connection.identity is None:
            raise NotJoinedError()
        return self.connection.identity

    async def _cleanup(self):
        """Unregister the connection and end calls it leaves orphaned."""
        identity = self.connection.identity
        ended = await self.signaling.reconciler.on_disconnect(self.connection)
        if ended:
            logger.info(f"[Orchestrator] Ended {len(ended)} call(s) after {identity} dropped")

        if identity and not self.signaling.registry.is_online(identity):
            if self.signaling.presence is not None:
                await self.signaling.presence.set_offline(identity)
