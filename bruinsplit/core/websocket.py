"""
WebSocket manager for call signaling notices.
Pushes "you have signaling waiting" nudges to users over Socket.IO.

The push carries no SDP or ICE payloads. Clients react by polling
GET /calls/{rideId}/status, which remains the only delivery path, so a
missed push costs latency and never loses or duplicates a signal.
"""
import logging
from typing import Dict, Iterable, Set

import socketio

from bruinsplit.config import settings

logger = logging.getLogger(__name__)


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


class ConnectionManager:
    """
    WebSocket connection manager using Socket.IO.

    Each authenticated connection joins its user's room so a notice reaches
    every tab the user has open.
    """

    def __init__(self):
        """Initialize the connection manager."""
        cors_origins = settings.get_allowed_origins_list() or "*"

        self.sio = socketio.AsyncServer(
            async_mode='asgi',
            cors_allowed_origins=cors_origins,
            # Socket.IO logs routine packets at ERROR level; rely on our own logger
            logger=False,
            engineio_logger=False,
            ping_timeout=settings.ws_heartbeat_interval,
            ping_interval=settings.ws_heartbeat_interval // 2,
        )

        # Track connections: {sid: user_id}
        self.connections: Dict[str, str] = {}

        # Track user sessions: {user_id: set of sids}
        self.user_sessions: Dict[str, Set[str]] = {}

        self._setup_handlers()

    def _setup_handlers(self):
        """Setup Socket.IO event handlers."""

        @self.sio.event
        async def connect(sid, environ, auth):
            """
            Handle client connection.

            Client must provide its JWT in the handshake: auth={'token': ...}.
            """
            token = auth.get('token') if auth else None
            if not token:
                logger.warning(f"[WS] Connection rejected - no token: {sid}")
                return False

            user_id = await self.authenticate(token)
            if not user_id:
                logger.warning(f"[WS] Connection rejected - invalid token or unknown user: {sid}")
                return False

            self.connections[sid] = user_id
            self.user_sessions.setdefault(user_id, set()).add(sid)
            await self.sio.enter_room(sid, user_room(user_id))

            logger.info(f"[WS] Client connected: {sid} (user: {user_id})")
            return True

        @self.sio.event
        async def disconnect(sid):
            """Handle client disconnection."""
            user_id = self.connections.pop(sid, None)
            if user_id is None:
                return

            sessions = self.user_sessions.get(user_id)
            if sessions is not None:
                sessions.discard(sid)
                if not sessions:
                    del self.user_sessions[user_id]

            logger.info(f"[WS] Client disconnected: {sid} (user: {user_id})")

    async def authenticate(self, token: str) -> str | None:
        """
        Resolve a handshake token to a profile id.

        Returns:
            The user id, or None if the token is invalid or the profile is gone
        """
        from bruinsplit.core.database import AsyncSessionLocal
        from bruinsplit.core.security import SecurityException, decode_token, user_id_from_payload
        from bruinsplit.models.profile import Profile
        from bruinsplit.repositories.base import BaseRepository

        try:
            user_id = user_id_from_payload(decode_token(token))
        except SecurityException as e:
            logger.info(f"[WS] Token rejected: {e.detail}")
            return None

        try:
            async with AsyncSessionLocal() as db:
                profile = await BaseRepository(Profile, db).get(user_id)
        except Exception as e:
            logger.error(f"[WS] Profile lookup failed: {type(e).__name__}: {str(e)}", exc_info=True)
            return None

        return profile.id if profile else None

    def is_online(self, user_id: str) -> bool:
        return bool(self.user_sessions.get(user_id))

    async def notify_call_signal(
        self,
        target_user_id: str,
        ride_id: str,
        kind: str,
        from_user_id: str
    ):
        """
        Tell target_user_id that a signal is waiting in their mailbox.

        Args:
            target_user_id: Recipient of the offer/answer/candidate
            ride_id: Ride whose call the signal belongs to
            kind: "offer", "answer" or "ice-candidate"
            from_user_id: Sender
        """
        if not self.is_online(target_user_id):
            return

        await self.sio.emit('call_signal', {
            'ride_id': ride_id,
            'kind': kind,
            'from_user_id': from_user_id,
        }, room=user_room(target_user_id))

    async def notify_participant_joined(self, recipients: Iterable[str], ride_id: str, user_id: str):
        """Tell the rest of the call that user_id joined."""
        await self._emit_to_users(recipients, 'call_participant_joined', {
            'ride_id': ride_id,
            'user_id': user_id,
        })

    async def notify_participant_left(self, recipients: Iterable[str], ride_id: str, user_id: str):
        """Tell the rest of the call that user_id left."""
        await self._emit_to_users(recipients, 'call_participant_left', {
            'ride_id': ride_id,
            'user_id': user_id,
        })

    async def _emit_to_users(self, recipients: Iterable[str], event: str, data: dict):
        for recipient in recipients:
            if self.is_online(recipient):
                await self.sio.emit(event, data, room=user_room(recipient))

    def get_asgi_app(self, fastapi_app):
        """
        Get the ASGI app for Socket.IO wrapping FastAPI.

        Socket.IO wraps FastAPI, not the other way around: requests to
        /socket.io/ go to Socket.IO and everything else falls through.
        """
        return socketio.ASGIApp(self.sio, fastapi_app)


# Global connection manager instance
connection_manager = ConnectionManager()
