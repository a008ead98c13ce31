"""Per-room game state machine: lobby, night, day, voting, game over."""

import logging
import random
import time
from typing import Any, Callable, Optional, Protocol

from game.errors import (
    DuplicateAccusation,
    GameAlreadyStarted,
    RoomFull,
    TargetAlreadyAccused,
)
from game.rules import (
    ACTIVE_PHASES,
    MAX_CHAT_LENGTH,
    MAX_PLAYERS,
    MIN_PLAYERS,
    NIGHT_ACTION_ROLES,
    GameResult,
    GameTimings,
    NightActionKind,
    Phase,
    Role,
    VoteChoice,
    assign_roles,
)
from game.state import Accusation, ActionLedger, Player
from game.timer import PhaseTimer

logger = logging.getLogger(__name__)


class Outbox(Protocol):
    """Where the session delivers outbound events. Must not block."""

    def send(self, client_id: str, event: str, payload: dict[str, Any]) -> None: ...


TimerFactory = Callable[..., PhaseTimer]


class GameSession:
    """
    One room. All transitions are synchronous and run on the event loop, so
    inbound messages and timer completions for a room never interleave.

    Guards are total: an out-of-phase, dead-sender or wrong-role submission is
    dropped and the method returns False. Only the accusation checks raise, and
    those are user-facing (see game.errors).
    """

    def __init__(
        self,
        code: str,
        host_id: str,
        host_nickname: str,
        outbox: Outbox,
        timings: Optional[GameTimings] = None,
        timer_factory: Optional[TimerFactory] = None,
        rng: Optional[random.Random] = None,
    ):
        self.code = code
        self.host_id: Optional[str] = None
        self.players: dict[str, Player] = {}
        self.phase = Phase.LOBBY
        self.ledger = ActionLedger()
        self.eliminated_ids: set[str] = set()
        self.result: Optional[GameResult] = None
        self.voting_target_id: Optional[str] = None
        self.round_index = 0
        self._outbox = outbox
        self._timings = timings or GameTimings()
        self._rng = rng
        factory = timer_factory or PhaseTimer
        self.timer = factory(
            on_tick=self._on_timer_tick,
            tick_seconds=self._timings.tick_seconds,
            name=code,
        )
        self.add_player(host_id, host_nickname)

    # ── Membership ─────────────────────────────────────────────────────────────

    def add_player(self, player_id: str, nickname: str) -> Player:
        """Append a player in join order. The first player becomes host."""
        if self.phase != Phase.LOBBY:
            raise GameAlreadyStarted()
        if len(self.players) >= MAX_PLAYERS:
            raise RoomFull()
        player = Player(id=player_id, nickname=nickname, is_host=not self.players)
        self.players[player_id] = player
        if player.is_host:
            self.host_id = player_id
        logger.info("[%s] %s joined (%d players)", self.code, nickname, len(self.players))
        return player

    def remove_player(self, player_id: str) -> Optional[Player]:
        """
        Remove a player; hand the host role to the earliest-joined remaining
        player if needed. Mid-game, a departure can decide the game or complete
        the vote, so both are re-checked.
        """
        player = self.players.pop(player_id, None)
        if player is None:
            return None
        self.ledger.votes.pop(player_id, None)
        if player.is_host:
            self.host_id = None
            if self.players:
                new_host = next(iter(self.players.values()))
                new_host.is_host = True
                self.host_id = new_host.id
                logger.info("[%s] host passed to %s", self.code, new_host.nickname)
        logger.info("[%s] %s left (%d players)", self.code, player.nickname, len(self.players))

        if self.players and self.phase in ACTIVE_PHASES:
            if not self.check_game_end() and self.phase == Phase.VOTING and self._all_voted():
                self.resolve_voting()
        return player

    def close(self) -> None:
        """Stop the room's timer; called when the room is destroyed."""
        self.timer.cancel()

    # ── Queries ────────────────────────────────────────────────────────────────

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    def alive_players(self) -> list[Player]:
        return [p for p in self.players.values() if p.is_alive]

    def public_players(self, reveal_all: bool = False) -> list[dict[str, Any]]:
        """Player list for clients; roles are shown for dead players, or for everyone when reveal_all."""
        return [p.to_public(reveal_role=reveal_all or not p.is_alive) for p in self.players.values()]

    def _is_alive(self, player_id: str) -> bool:
        player = self.players.get(player_id)
        return player is not None and player.is_alive

    def _all_voted(self) -> bool:
        alive_ids = {p.id for p in self.alive_players()}
        return len(alive_ids & self.ledger.votes.keys()) >= len(alive_ids)

    # ── Outbound ───────────────────────────────────────────────────────────────

    def _send(self, player_id: str, event: str, payload: dict[str, Any]) -> None:
        self._outbox.send(player_id, event, payload)

    def _broadcast(self, event: str, payload: dict[str, Any]) -> None:
        for player_id in list(self.players):
            self._outbox.send(player_id, event, payload)

    def _on_timer_tick(self, remaining: int) -> None:
        self._broadcast("timer_update", {"timeRemaining": remaining, "phase": self.phase.value})

    # ── Lobby ──────────────────────────────────────────────────────────────────

    def start_game(self, caller_id: str) -> bool:
        """Host-only: assign roles and enter the first night."""
        if self.phase != Phase.LOBBY or caller_id != self.host_id:
            return False
        if len(self.players) < MIN_PLAYERS:
            logger.debug("[%s] start refused: %d players", self.code, len(self.players))
            return False

        roles = assign_roles(len(self.players), self._rng)
        for player, role in zip(self.players.values(), roles):
            player.role = role
        self._begin_night()
        logger.info("[%s] game started with %d players", self.code, len(self.players))

        for player in self.players.values():
            self._send(player.id, "role_assigned", {"role": player.role.value, "phase": self.phase.value})
        self._broadcast(
            "game_started",
            {"phase": self.phase.value, "players": self.public_players(), "round": self.round_index},
        )
        self.timer.start(self._timings.night, self.resolve_night)
        return True

    # ── Night ──────────────────────────────────────────────────────────────────

    def _begin_night(self) -> None:
        self.phase = Phase.NIGHT
        self.round_index += 1
        self.voting_target_id = None
        self.ledger.clear()

    def _announce_night(self) -> None:
        if self.phase != Phase.NIGHT:
            return
        self._broadcast("night_phase_start", {"players": self.public_players(), "round": self.round_index})
        self.timer.start(self._timings.night, self.resolve_night)

    def submit_night_action(self, player_id: str, action: str, target_id: str) -> bool:
        """Record a kill or save, or answer an investigation privately."""
        if self.phase != Phase.NIGHT or not self._is_alive(player_id):
            return False
        try:
            kind = NightActionKind(action)
        except ValueError:
            return False
        actor = self.players[player_id]
        if NIGHT_ACTION_ROLES[kind] != actor.role:
            logger.debug("[%s] %s cannot %s as %s", self.code, actor.nickname, kind.value, actor.role)
            return False
        target = self.players.get(target_id)
        if target is None:
            return False

        if kind == NightActionKind.KILL:
            self.ledger.night.mafia_target_id = target_id
        elif kind == NightActionKind.SAVE:
            self.ledger.night.doctor_target_id = target_id
        else:
            self._send(
                player_id,
                "investigation_result",
                {"target": target_id, "role": target.role.value, "nickname": target.nickname},
            )
        return True

    def resolve_night(self) -> None:
        """Apply the mafia kill unless the doctor saved that exact player, then start the day."""
        if self.phase != Phase.NIGHT:
            return
        kill_id = self.ledger.night.mafia_target_id
        save_id = self.ledger.night.doctor_target_id
        killed: Optional[Player] = None
        saved = False
        if kill_id is not None:
            if kill_id == save_id:
                saved = True
                logger.info("[%s] night kill blocked by doctor", self.code)
            else:
                target = self.players.get(kill_id)
                if target is not None and target.is_alive:
                    self._eliminate(target)
                    killed = target
        self.ledger.clear()

        if self.check_game_end(eliminated=killed):
            return

        self.phase = Phase.DAY
        self._broadcast(
            "day_phase_start",
            {
                "nightResult": {"killedPlayer": killed.id if killed else None, "saved": saved},
                "players": self.public_players(),
                "round": self.round_index,
            },
        )
        self.timer.start(self._timings.day, self._on_day_timeout)

    # ── Day ────────────────────────────────────────────────────────────────────

    def _on_day_timeout(self) -> None:
        # A day without an accusation goes straight back to night.
        if self.phase != Phase.DAY or self.ledger.accusations:
            return
        logger.info("[%s] no accusation; night falls", self.code)
        self._begin_night()
        self._announce_night()

    def chat(self, player_id: str, message: str) -> bool:
        if self.phase != Phase.DAY or not self._is_alive(player_id):
            return False
        message = message.strip()
        if not message or len(message) > MAX_CHAT_LENGTH:
            return False
        self._broadcast(
            "chat_message",
            {
                "from": self.players[player_id].nickname,
                "message": message,
                "timestamp": int(time.time() * 1000),
            },
        )
        return True

    def accuse(self, accuser_id: str, target_id: str) -> bool:
        """
        Nominate a living player; the first accepted accusation opens the vote.
        Accusations stay on the ledger until the vote resolves, so a repeat
        accuser or a repeat target is rejected while the vote is running too.
        """
        if self.phase not in (Phase.DAY, Phase.VOTING) or not self._is_alive(accuser_id):
            return False
        if self.ledger.has_accused(accuser_id):
            raise DuplicateAccusation()
        if not self._is_alive(target_id):
            return False
        if self.ledger.is_accused(target_id):
            raise TargetAlreadyAccused()
        if self.phase != Phase.DAY:
            return False

        accuser = self.players[accuser_id]
        target = self.players[target_id]
        self.ledger.accusations[accuser_id] = Accusation(
            accuser_id=accuser_id, target_id=target_id, timestamp=time.time()
        )
        self.phase = Phase.VOTING
        self.voting_target_id = target_id
        logger.info("[%s] %s accused %s", self.code, accuser.nickname, target.nickname)

        self._broadcast(
            "player_accused",
            {"accuser": accuser.nickname, "accused": target.nickname, "accusedId": target_id},
        )
        self._broadcast(
            "voting_phase_start",
            {"accusedPlayer": {"id": target_id, "nickname": target.nickname}},
        )
        self.timer.start(self._timings.voting, self.resolve_voting)
        return True

    # ── Voting ─────────────────────────────────────────────────────────────────

    def cast_vote(self, voter_id: str, choice: str) -> bool:
        """Record a guilty/innocent vote; resolve early once every living player has voted."""
        if self.phase != Phase.VOTING or not self._is_alive(voter_id):
            return False
        try:
            vote = VoteChoice(choice)
        except ValueError:
            return False
        self.ledger.votes[voter_id] = vote
        if self._all_voted():
            self.resolve_voting()
        return True

    def resolve_voting(self) -> None:
        """Eliminate the accused on a strict guilty majority, then head back to night."""
        if self.phase != Phase.VOTING:
            return
        self.timer.cancel()
        guilty, innocent = self.ledger.tally()
        eliminated: Optional[Player] = None
        target = self.players.get(self.voting_target_id) if self.voting_target_id else None
        if guilty > innocent and target is not None and target.is_alive:
            self._eliminate(target)
            eliminated = target
        self.ledger.clear_day()
        self.voting_target_id = None
        logger.info(
            "[%s] vote: %d guilty, %d innocent, eliminated=%s",
            self.code, guilty, innocent, eliminated.nickname if eliminated else None,
        )

        self._broadcast(
            "voting_result",
            {
                "eliminated": _elimination_payload(eliminated),
                "guiltyVotes": guilty,
                "innocentVotes": innocent,
                "totalVotes": guilty + innocent,
            },
        )
        if self.check_game_end(eliminated=eliminated):
            return
        self._begin_night()
        self.timer.delay(self._timings.result_display, self._announce_night)

    # ── End of game ────────────────────────────────────────────────────────────

    def _eliminate(self, player: Player) -> None:
        player.is_alive = False
        self.eliminated_ids.add(player.id)
        logger.info("[%s] %s eliminated (%s)", self.code, player.nickname, player.role.value)

    def check_game_end(self, eliminated: Optional[Player] = None) -> bool:
        """
        Town wins when no mafia is alive; mafia wins as soon as they are not
        outnumbered (alive mafia >= alive non-mafia). Either is terminal.
        """
        if self.phase == Phase.GAME_OVER:
            return True
        if self.phase not in ACTIVE_PHASES:
            return False
        alive = self.alive_players()
        mafia_alive = sum(1 for p in alive if p.role == Role.MAFIA)
        town_alive = len(alive) - mafia_alive
        if mafia_alive == 0:
            self.result = GameResult.TOWN
        elif mafia_alive >= town_alive:
            self.result = GameResult.MAFIA
        else:
            return False

        self.phase = Phase.GAME_OVER
        self.voting_target_id = None
        self.timer.cancel()
        logger.info("[%s] game over: %s win", self.code, self.result.value)
        payload: dict[str, Any] = {"result": self.result.value, "players": self.public_players(reveal_all=True)}
        if eliminated is not None:
            payload["eliminated"] = _elimination_payload(eliminated)
        self._broadcast("game_over", payload)
        return True


def _elimination_payload(player: Optional[Player]) -> Optional[dict[str, Any]]:
    if player is None:
        return None
    return {"socketId": player.id, "nickname": player.nickname, "role": player.role.value}
