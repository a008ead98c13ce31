"""In-process room registry: room codes to sessions, connections to rooms."""

import logging
import random
from typing import Optional

from game.errors import RoomNotFound
from game.rules import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, GameTimings
from game.session import GameSession, Outbox, TimerFactory
from game.state import Player

logger = logging.getLogger(__name__)


def generate_room_code(rng: Optional[random.Random] = None) -> str:
    """Return a random 6-character uppercase base-36 code."""
    return "".join((rng or random).choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


class RoomRegistry:
    """
    Owns every live GameSession. A connection is in at most one room; joining
    or creating another room first leaves the current one.
    """

    def __init__(
        self,
        outbox: Outbox,
        timings: Optional[GameTimings] = None,
        timer_factory: Optional[TimerFactory] = None,
        rng: Optional[random.Random] = None,
    ):
        self._outbox = outbox
        self._timings = timings or GameTimings()
        self._timer_factory = timer_factory
        self._rng = rng
        self._rooms: dict[str, GameSession] = {}
        self._connections: dict[str, str] = {}  # connection id -> room code

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        return normalize_room_code(code) in self._rooms

    def get(self, code: str) -> Optional[GameSession]:
        return self._rooms.get(normalize_room_code(code))

    def room_of(self, connection_id: str) -> Optional[GameSession]:
        code = self._connections.get(connection_id)
        return self._rooms.get(code) if code else None

    def create_room(self, host_id: str, nickname: str) -> GameSession:
        """Create a lobby with the caller as host under a fresh code."""
        self.leave(host_id)
        while True:
            code = generate_room_code(self._rng)
            if code not in self._rooms:
                break
        session = GameSession(
            code,
            host_id,
            nickname,
            self._outbox,
            timings=self._timings,
            timer_factory=self._timer_factory,
            rng=self._rng,
        )
        self._rooms[code] = session
        self._connections[host_id] = code
        logger.info("[%s] room created by %s", code, nickname)
        return session

    def join_room(self, code: str, connection_id: str, nickname: str) -> GameSession:
        """Add the caller to an existing lobby. Raises a JoinError subclass on rejection."""
        session = self.get(code)
        if session is None:
            raise RoomNotFound()
        current = self.room_of(connection_id)
        if current is session:
            return session
        session.add_player(connection_id, nickname)
        if current is not None:
            self._leave_room(current, connection_id)
        self._connections[connection_id] = session.code
        return session

    def leave(self, connection_id: str) -> Optional[tuple[GameSession, Player]]:
        """
        Remove the connection from its room, destroying the room when it empties.
        Returns (session, removed player), or None when the connection was in no room.
        """
        session = self.room_of(connection_id)
        if session is None:
            self._connections.pop(connection_id, None)
            return None
        player = self._leave_room(session, connection_id)
        if player is None:
            return None
        return session, player

    def close_all(self) -> None:
        """Stop every room's timer and forget all rooms."""
        for session in self._rooms.values():
            session.close()
        self._rooms.clear()
        self._connections.clear()

    def _leave_room(self, session: GameSession, connection_id: str) -> Optional[Player]:
        self._connections.pop(connection_id, None)
        player = session.remove_player(connection_id)
        if not session.players:
            session.close()
            self._rooms.pop(session.code, None)
            logger.info("[%s] room closed", session.code)
        return player
