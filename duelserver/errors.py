"""Room and combat failures raised by the session services."""


class DuelError(RuntimeError):
    """Base class for session server failures."""


class RoomNotFound(DuelError):
    """Raised when a player attempts to join a missing room."""

    def __init__(self, room_code):
        super().__init__(f"room {room_code} not found")
        self.room_code = room_code


class RoomFull(DuelError):
    """Raised when a room already holds its two players."""

    def __init__(self, room_code):
        super().__init__(f"room {room_code} is full")
        self.room_code = room_code


class IgnoredMessage(DuelError):
    """A message that is dropped without notifying anyone."""


class UnknownPlayerOrRoom(IgnoredMessage):
    """The message references a room or player that is no longer present."""


class InvalidTargetState(IgnoredMessage):
    """The target cannot take the requested action (e.g. already dead)."""


__all__ = [
    "DuelError",
    "RoomNotFound",
    "RoomFull",
    "IgnoredMessage",
    "UnknownPlayerOrRoom",
    "InvalidTargetState",
]
