"""Shared test doubles: an outbox that records events and a timer fired by hand."""

import random

import pytest

from game.rules import GameTimings, Role
from game.session import GameSession


class RecordingOutbox:
    def __init__(self):
        self.sent: list[tuple[str, str, dict]] = []

    def send(self, client_id, event, payload):
        self.sent.append((client_id, event, payload))

    def events(self, event, client_id=None):
        return [p for c, e, p in self.sent if e == event and (client_id is None or c == client_id)]

    def recipients(self, event):
        return [c for c, e, _ in self.sent if e == event]

    def clear(self):
        self.sent.clear()


class ManualTimer:
    """Stands in for PhaseTimer; the test decides when time runs out."""

    def __init__(self, on_tick=None, tick_seconds=1.0, name=""):
        self.on_tick = on_tick
        self.duration = None
        self.kind = None
        self.on_complete = None
        self.remaining = 0
        self.started = 0

    @property
    def active(self):
        return self.on_complete is not None

    def start(self, duration, on_complete):
        self.cancel()
        self.kind = "countdown"
        self.duration = duration
        self.remaining = duration
        self.on_complete = on_complete
        self.started += 1
        if self.on_tick:
            self.on_tick(duration)

    def delay(self, units, on_complete):
        self.cancel()
        self.kind = "delay"
        self.duration = units
        self.on_complete = on_complete
        self.started += 1

    def cancel(self):
        was_active = self.active
        self.on_complete = None
        self.remaining = 0
        return was_active

    def fire(self):
        assert self.on_complete is not None, "no timer armed"
        callback, self.on_complete = self.on_complete, None
        self.remaining = 0
        callback()


@pytest.fixture
def outbox():
    return RecordingOutbox()


def make_lobby(outbox, num_players=5, seed=7):
    """Lobby with players p0 (host) .. p{n-1}."""
    session = GameSession(
        "ABC123",
        "p0",
        "Player0",
        outbox,
        timings=GameTimings(),
        timer_factory=ManualTimer,
        rng=random.Random(seed),
    )
    for i in range(1, num_players):
        session.add_player(f"p{i}", f"Player{i}")
    return session


def make_started(outbox, roles):
    """Started game whose roles are forced to `roles`, in join order."""
    session = make_lobby(outbox, num_players=len(roles))
    assert session.start_game("p0")
    for player, role in zip(session.players.values(), roles):
        player.role = role
    outbox.clear()
    return session


# 7 players: p0, p1 mafia; p2 police; p3 doctor; p4..p6 citizens
SEVEN = [Role.MAFIA, Role.MAFIA, Role.POLICE, Role.DOCTOR, Role.CITIZEN, Role.CITIZEN, Role.CITIZEN]
