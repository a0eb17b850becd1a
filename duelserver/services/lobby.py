import threading

from duelserver.errors import UnknownPlayerOrRoom
from duelserver.models import Room
from .broadcast import BroadcastService
from .combat import DEFAULT_HIT_DAMAGE, CombatAdjudicator
from .countdown import StartSequencer
from .registry import ConnectionRegistry, RoomRegistry


class Lobby:
    """Process-wide session state: both registries and the room services.

    Built once per application by ``create_app``. Every handler and every
    countdown tick runs under ``lock``.
    """

    def __init__(self, countdown_start: int = 3, hit_damage: int = DEFAULT_HIT_DAMAGE, **registry_kwargs):
        self.lock = threading.RLock()
        self.connections = ConnectionRegistry()
        self.rooms = RoomRegistry(self.connections, countdown_start=countdown_start, **registry_kwargs)
        self.broadcast = BroadcastService()
        self.combat = CombatAdjudicator(self.broadcast, damage=hit_damage)
        self.sequencer = StartSequencer(self.broadcast, countdown_start=countdown_start)

    @classmethod
    def from_config(cls, config) -> 'Lobby':
        return cls(
            countdown_start=int(config.get('COUNTDOWN_START', 3)),
            hit_damage=int(config.get('HIT_DAMAGE', DEFAULT_HIT_DAMAGE)),
        )

    def get_room(self, room_code: str) -> Room:
        room = self.rooms.get(room_code)
        if room is None:
            raise UnknownPlayerOrRoom(f"room {room_code} not found")
        return room
