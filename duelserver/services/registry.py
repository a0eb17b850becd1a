"""Room and connection bookkeeping."""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from duelserver.errors import RoomNotFound
from duelserver.models import Player, Room, generate_player_id, generate_room_code

logger = logging.getLogger(__name__)


@dataclass
class ConnectionBinding:
    sid: str
    player_id: str
    room_code: str


class ConnectionRegistry:
    """Maps a live connection sid to the player and room it is bound to."""

    def __init__(self):
        self._bindings: Dict[str, ConnectionBinding] = {}

    def bind(self, sid: str, player_id: str, room_code: str) -> ConnectionBinding:
        binding = ConnectionBinding(sid=sid, player_id=player_id, room_code=room_code)
        self._bindings[sid] = binding
        return binding

    def get(self, sid: str) -> Optional[ConnectionBinding]:
        return self._bindings.get(sid)

    def unbind(self, sid: str) -> Optional[ConnectionBinding]:
        return self._bindings.pop(sid, None)

    def __len__(self):
        return len(self._bindings)

    def __contains__(self, sid):
        return sid in self._bindings


class RoomRegistry:
    """Creates, looks up and destroys rooms by code."""

    def __init__(
        self,
        connections: ConnectionRegistry,
        countdown_start: int = 3,
        code_factory: Callable[[], str] = generate_room_code,
        id_factory: Callable[[], str] = generate_player_id,
    ):
        self.connections = connections
        self.countdown_start = countdown_start
        self._rooms: Dict[str, Room] = {}
        self._code_factory = code_factory
        self._id_factory = id_factory

    def __len__(self):
        return len(self._rooms)

    def __contains__(self, room_code):
        return room_code in self._rooms

    def __iter__(self):
        return iter(list(self._rooms.values()))

    def get(self, room_code: str) -> Optional[Room]:
        return self._rooms.get(room_code)

    def create_room(self, player_name: str, sid: str) -> Tuple[Room, Player]:
        # Codes are not checked for collisions; see DESIGN.md
        room = Room(self._code_factory(), countdown=self.countdown_start)
        self._rooms[room.code] = room
        player = self._add_player(room, player_name, sid)
        logger.info(f"[room-created] room={room.code} player={player.id} name={player_name}")
        return room, player

    def find_open_room(self) -> Optional[str]:
        for code, room in self._rooms.items():
            if room.is_open:
                return code
        return None

    def join_room(self, room_code: str, player_name: str, sid: str) -> Player:
        room = self._rooms.get(room_code)
        if room is None:
            raise RoomNotFound(room_code)
        player = self._add_player(room, player_name, sid)
        logger.info(f"[room-joined] room={room.code} player={player.id} name={player_name}")
        return player

    def remove_room(self, room_code: str) -> Optional[Room]:
        room = self._rooms.pop(room_code, None)
        if room is None:
            return None
        if room.countdown_task is not None:
            room.countdown_task.cancel()
            room.countdown_task = None
        logger.info(f"[room-removed] room={room_code}")
        return room

    def _add_player(self, room: Room, player_name: str, sid: str) -> Player:
        player = room.upsert_player(Player(self._id_factory(), player_name, sid=sid))
        self.connections.bind(sid, player.id, room.code)
        return player


__all__ = ["ConnectionBinding", "ConnectionRegistry", "RoomRegistry"]
