"""User-facing, non-fatal game errors. None of these change room state."""


class GameError(Exception):
    """Base class; message is safe to show to the client."""

    default_message = "Request rejected"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class JoinError(GameError):
    """Surfaced to the client as join_error."""


class RoomNotFound(JoinError):
    default_message = "Room not found"


class RoomFull(JoinError):
    default_message = "Room is full"


class GameAlreadyStarted(JoinError):
    default_message = "Game has already started"


class InvalidNickname(JoinError):
    default_message = "Nickname must be 1-20 characters"


class AccusationError(GameError):
    """Surfaced to the client as accusation_error."""


class DuplicateAccusation(AccusationError):
    default_message = "You can only accuse once per day"


class TargetAlreadyAccused(AccusationError):
    default_message = "This player is already accused"
