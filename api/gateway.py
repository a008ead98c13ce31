"""
WebSocket gateway: translates client frames into registry/session calls and
delivers outbound events.

Frames are JSON objects {"event": <name>, "data": {...}} in both directions.
Each connection gets a stable id for its lifetime; the player is keyed by it.

Outbound delivery never blocks a game transition: events are queued per
connection and written by one writer task per socket, so ordering per client
is preserved.
"""

import asyncio
import contextlib
import json
import logging
import uuid
from typing import Any, Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from api.models import (
    AccuseMessage,
    CreateRoomMessage,
    DayChatMessage,
    InboundMessage,
    JoinRoomMessage,
    NightActionMessage,
    StartGameMessage,
    VoteMessage,
    clean_nickname,
    parse_inbound,
)
from game.errors import AccusationError, JoinError
from game.registry import RoomRegistry
from game.rules import GameTimings, Phase
from game.session import GameSession
from game.state import Player

logger = logging.getLogger(__name__)

# Game messages each phase accepts; anything else is dropped.
# Accusations stay open during voting so repeat accusers get an error back.
PHASE_MESSAGES: dict[Phase, tuple[type, ...]] = {
    Phase.LOBBY: (StartGameMessage,),
    Phase.NIGHT: (NightActionMessage,),
    Phase.DAY: (DayChatMessage, AccuseMessage),
    Phase.VOTING: (VoteMessage, AccuseMessage),
    Phase.GAME_OVER: (),
}


class ConnectionManager:
    """Per-connection outbound queues. Implements the session Outbox."""

    def __init__(self):
        self._queues: dict[str, asyncio.Queue] = {}

    def register(self, connection_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._queues[connection_id] = queue
        return queue

    def unregister(self, connection_id: str) -> None:
        queue = self._queues.pop(connection_id, None)
        if queue is not None:
            queue.put_nowait(None)

    def send(self, client_id: str, event: str, payload: dict[str, Any]) -> None:
        queue = self._queues.get(client_id)
        if queue is None:
            logger.debug("drop %s for unknown connection %s", event, client_id)
            return
        queue.put_nowait({"event": event, "data": payload})


class SessionGateway:
    def __init__(self, timings: Optional[GameTimings] = None):
        self.connections = ConnectionManager()
        self.registry = RoomRegistry(self.connections, timings=timings)

    # ── Connection lifecycle ───────────────────────────────────────────────────

    async def serve(self, websocket: WebSocket) -> None:
        """Run one client connection until it closes."""
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        queue = self.connections.register(connection_id)
        writer = asyncio.create_task(_write_frames(websocket, queue, connection_id))
        logger.info("client connected: %s", connection_id)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info("client disconnected: %s", connection_id)
                    break
                text = message.get("text")
                if text is None:
                    logger.debug("non-text frame from %s dropped", connection_id)
                    continue
                self._handle_text(connection_id, text)
        except WebSocketDisconnect:
            logger.info("client disconnected: %s", connection_id)
        finally:
            self.disconnect(connection_id)
            self.connections.unregister(connection_id)
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer

    def _handle_text(self, connection_id: str, text: str) -> None:
        """Decode and apply one text frame. A bad frame never ends the connection."""
        try:
            frame = json.loads(text)
        except (ValueError, RecursionError):
            logger.debug("non-JSON frame from %s dropped", connection_id)
            return
        try:
            self.dispatch(connection_id, frame)
        except Exception:
            logger.exception("unhandled error for frame from %s", connection_id)

    def disconnect(self, connection_id: str) -> None:
        left = self.registry.leave(connection_id)
        if left is None:
            return
        session, player = left
        self._announce_departure(session, player)

    def shutdown(self) -> None:
        """Stop every room timer."""
        self.registry.close_all()

    # ── Inbound ────────────────────────────────────────────────────────────────

    def dispatch(self, connection_id: str, frame: Any) -> None:
        """Validate one frame and apply it. Invalid or out-of-phase frames are dropped."""
        try:
            message = parse_inbound(frame)
        except ValidationError as e:
            logger.debug("invalid frame from %s: %s", connection_id, e.errors(include_url=False))
            return

        if isinstance(message, CreateRoomMessage):
            self._create_room(connection_id, message)
            return
        if isinstance(message, JoinRoomMessage):
            self._join_room(connection_id, message)
            return

        session = self.registry.room_of(connection_id)
        if session is None:
            return
        if not isinstance(message, PHASE_MESSAGES[session.phase]):
            logger.debug("[%s] %s dropped in %s", session.code, message.event, session.phase.value)
            return
        self._apply(session, connection_id, message)

    def _apply(self, session: GameSession, connection_id: str, message: InboundMessage) -> None:
        if isinstance(message, StartGameMessage):
            session.start_game(connection_id)
        elif isinstance(message, NightActionMessage):
            session.submit_night_action(connection_id, message.data.action.value, message.data.target)
        elif isinstance(message, DayChatMessage):
            session.chat(connection_id, message.data.message)
        elif isinstance(message, AccuseMessage):
            try:
                session.accuse(connection_id, message.data.target)
            except AccusationError as e:
                self.connections.send(connection_id, "accusation_error", {"message": e.message})
        elif isinstance(message, VoteMessage):
            session.cast_vote(connection_id, message.data.vote.value)

    def _create_room(self, connection_id: str, message: CreateRoomMessage) -> None:
        try:
            nickname = clean_nickname(message.data.nickname)
        except JoinError as e:
            self.connections.send(connection_id, "join_error", {"message": e.message})
            return
        previous = self.registry.room_of(connection_id)
        if previous is not None:
            self.disconnect(connection_id)
        session = self.registry.create_room(connection_id, nickname)
        self.connections.send(
            connection_id,
            "room_created",
            {"roomCode": session.code, "players": session.public_players()},
        )

    def _join_room(self, connection_id: str, message: JoinRoomMessage) -> None:
        previous = self.registry.room_of(connection_id)
        previous_player = previous.get_player(connection_id) if previous else None
        try:
            nickname = clean_nickname(message.data.nickname)
            session = self.registry.join_room(message.data.room_code, connection_id, nickname)
        except JoinError as e:
            logger.info("join %r rejected for %s: %s", message.data.room_code, connection_id, e.message)
            self.connections.send(connection_id, "join_error", {"message": e.message})
            return

        players = session.public_players()
        self.connections.send(connection_id, "room_joined", {"roomCode": session.code, "players": players})
        if previous is session:
            return
        for player_id in session.players:
            if player_id != connection_id:
                self.connections.send(player_id, "player_joined", {"players": players})
        if previous is not None:
            self._announce_departure(previous, previous_player)

    # ── Outbound helpers ───────────────────────────────────────────────────────

    def _announce_departure(self, session: GameSession, player: Optional[Player]) -> None:
        if not session.players:
            return
        payload: dict[str, Any] = {"players": session.public_players()}
        if player is not None:
            payload["player"] = {"socketId": player.id, "nickname": player.nickname}
        for player_id in session.players:
            self.connections.send(player_id, "player_left", payload)


async def _write_frames(websocket: WebSocket, queue: asyncio.Queue, connection_id: str) -> None:
    while True:
        frame = await queue.get()
        if frame is None:
            return
        try:
            await websocket.send_json(frame)
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.warning("send to %s failed: %s", connection_id, e)
            return
        except Exception:
            logger.exception("writer for %s stopped", connection_id)
            return
