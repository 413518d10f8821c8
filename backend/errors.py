class GameError(ValueError):
    """Expected, per-request rejection. Raised before any state change."""

    code = "GameError"
    default_message = "Action not allowed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(f"[{self.code}] {self.message}")


class RoomNotFound(GameError):
    code = "RoomNotFound"
    default_message = "Room does not exist"


class RoomFull(GameError):
    code = "RoomFull"
    default_message = "Room is full"


class NotInRoom(GameError):
    code = "NotInRoom"
    default_message = "You are not seated in this room"


class NotPlayingPhase(GameError):
    code = "NotPlayingPhase"
    default_message = "Game is not in progress"


class NotYourTurn(GameError):
    code = "NotYourTurn"
    default_message = "Not your turn"


class CardNotInHand(GameError):
    code = "CardNotInHand"
    default_message = "Card not in hand"


class EmptyMessage(GameError):
    code = "EmptyMessage"
    default_message = "Message is empty"


class SwapNotAllowed(GameError):
    code = "SwapNotAllowed"
    default_message = "Trump exchange not available"


class RoomCodesExhausted(GameError):
    code = "RoomCodesExhausted"
    default_message = "Could not allocate a room code"
