from dataclasses import dataclass
from typing import Any, Dict, Optional

from duelserver.models import Room


@dataclass(frozen=True)
class Emit:
    """One outbound Socket.IO event.

    ``to`` is either a connection sid or a room code (the room's broadcast
    group); ``skip_sid`` excludes one connection from a room fan-out.
    """
    event: str
    data: Any = None
    to: Optional[str] = None
    skip_sid: Optional[str] = None


class BroadcastService:
    def snapshot(self, room: Room) -> Dict[str, dict]:
        return {player_id: player.to_dict() for player_id, player in room.players.items()}

    def game_state(self, room: Room) -> dict:
        return {
            'players': self.snapshot(room),
            'gameStarted': room.game_started,
            'countdown': room.countdown,
        }

    def publish_to_room(self, room: Room) -> Emit:
        return Emit('gameState', self.game_state(room), to=room.code)

    def publish_to_others(self, room: Room, sid: str, event: str, data=None) -> Emit:
        return Emit(event, data, to=room.code, skip_sid=sid)

    def state_to_others(self, room: Room, sid: str) -> Emit:
        return self.publish_to_others(room, sid, 'gameState', self.game_state(room))

    def to_room(self, room: Room, event: str, data=None) -> Emit:
        return Emit(event, data, to=room.code)

    def to_sender(self, sid: str, event: str, data=None) -> Emit:
        return Emit(event, data, to=sid)


