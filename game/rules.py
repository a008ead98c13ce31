"""Game rules and constants for the Mafia room coordinator."""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Player roles in the game."""

    MAFIA = "mafia"
    POLICE = "police"
    DOCTOR = "doctor"
    CITIZEN = "citizen"


class Phase(str, Enum):
    """Current room phase."""

    LOBBY = "lobby"
    NIGHT = "night"
    DAY = "day"
    VOTING = "voting"
    GAME_OVER = "game_over"


class GameResult(str, Enum):
    """Winning side once the game is over."""

    TOWN = "townspeople"
    MAFIA = "mafia"


class VoteChoice(str, Enum):
    GUILTY = "guilty"
    INNOCENT = "innocent"


class NightActionKind(str, Enum):
    KILL = "kill"
    SAVE = "save"
    INVESTIGATE = "investigate"


# Which role may perform which night action
NIGHT_ACTION_ROLES = {
    NightActionKind.KILL: Role.MAFIA,
    NightActionKind.SAVE: Role.DOCTOR,
    NightActionKind.INVESTIGATE: Role.POLICE,
}

# Phases in which the game is running (roles assigned, not finished)
ACTIVE_PHASES = (Phase.NIGHT, Phase.DAY, Phase.VOTING)

MIN_PLAYERS = 5
MAX_PLAYERS = 12
MAX_NICKNAME_LENGTH = 20
MAX_CHAT_LENGTH = 500

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Default phase lengths, in timer units (seconds unless tick_seconds is changed)
NIGHT_DURATION = 30
DAY_DURATION = 60
VOTING_DURATION = 30
RESULT_DISPLAY_DELAY = 3


def mafia_count(num_players: int) -> int:
    """One mafia for every three players beyond the police and doctor."""
    return (num_players - 2) // 3


def assign_roles(num_players: int, rng: Optional[random.Random] = None) -> list[Role]:
    """
    Build the role multiset for num_players and shuffle it uniformly.
    Always one police and one doctor; the rest is split between mafia and citizens.
    """
    if not MIN_PLAYERS <= num_players <= MAX_PLAYERS:
        raise ValueError(
            f"num_players must be between {MIN_PLAYERS} and {MAX_PLAYERS}, got {num_players}"
        )
    roles: list[Role] = [Role.POLICE, Role.DOCTOR]
    roles.extend([Role.MAFIA] * mafia_count(num_players))
    roles.extend([Role.CITIZEN] * (num_players - len(roles)))
    (rng or random).shuffle(roles)
    return roles


@dataclass(frozen=True)
class GameTimings:
    """Phase lengths in timer units, plus the length of one unit in seconds."""

    night: int = NIGHT_DURATION
    day: int = DAY_DURATION
    voting: int = VOTING_DURATION
    result_display: float = RESULT_DISPLAY_DELAY
    tick_seconds: float = 1.0
