"""Room state types: players and the per-round action ledger."""

from dataclasses import dataclass, field
from typing import Any, Optional

from game.rules import Role, VoteChoice


@dataclass
class Player:
    """A player in a room, keyed by its connection id."""

    id: str
    nickname: str
    role: Optional[Role] = None
    is_alive: bool = True
    is_host: bool = False

    def to_public(self, reveal_role: bool = False) -> dict[str, Any]:
        """Wire representation; role is only included when reveal_role is set."""
        data: dict[str, Any] = {
            "socketId": self.id,
            "nickname": self.nickname,
            "isAlive": self.is_alive,
            "isHost": self.is_host,
        }
        if reveal_role:
            data["role"] = self.role.value if self.role else None
        return data


@dataclass
class NightActions:
    """Night actions collected for one round (before resolution). Last submission per role wins."""

    mafia_target_id: Optional[str] = None
    doctor_target_id: Optional[str] = None


@dataclass(frozen=True)
class Accusation:
    """One day-phase nomination."""

    accuser_id: str
    target_id: str
    timestamp: float


@dataclass
class ActionLedger:
    """Everything submitted during the current round."""

    night: NightActions = field(default_factory=NightActions)
    accusations: dict[str, Accusation] = field(default_factory=dict)  # accuser id -> accusation
    votes: dict[str, VoteChoice] = field(default_factory=dict)  # voter id -> choice

    def clear(self) -> None:
        self.night = NightActions()
        self.accusations.clear()
        self.votes.clear()

    def clear_day(self) -> None:
        """Drop accusations and votes, keep night actions."""
        self.accusations.clear()
        self.votes.clear()

    def has_accused(self, accuser_id: str) -> bool:
        return accuser_id in self.accusations

    def is_accused(self, target_id: str) -> bool:
        return any(a.target_id == target_id for a in self.accusations.values())

    def tally(self) -> tuple[int, int]:
        """Return (guilty, innocent) counts."""
        guilty = sum(1 for v in self.votes.values() if v == VoteChoice.GUILTY)
        innocent = sum(1 for v in self.votes.values() if v == VoteChoice.INNOCENT)
        return guilty, innocent
