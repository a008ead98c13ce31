"""Room and game-phase state machine for the Mafia coordinator."""

from game.errors import (
    GameError,
    JoinError,
    RoomNotFound,
    RoomFull,
    GameAlreadyStarted,
    InvalidNickname,
    AccusationError,
    DuplicateAccusation,
    TargetAlreadyAccused,
)
from game.registry import RoomRegistry, generate_room_code, normalize_room_code
from game.rules import Role, Phase, GameResult, VoteChoice, NightActionKind, GameTimings, assign_roles
from game.session import GameSession, Outbox
from game.state import Player, NightActions, Accusation, ActionLedger
from game.timer import PhaseTimer

__all__ = [
    "GameError",
    "JoinError",
    "RoomNotFound",
    "RoomFull",
    "GameAlreadyStarted",
    "InvalidNickname",
    "AccusationError",
    "DuplicateAccusation",
    "TargetAlreadyAccused",
    "RoomRegistry",
    "generate_room_code",
    "normalize_room_code",
    "Role",
    "Phase",
    "GameResult",
    "VoteChoice",
    "NightActionKind",
    "GameTimings",
    "assign_roles",
    "GameSession",
    "Outbox",
    "Player",
    "NightActions",
    "Accusation",
    "ActionLedger",
    "PhaseTimer",
]
