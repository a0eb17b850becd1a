import random
import string
import time
from enum import Enum
from typing import Dict, List, Optional

from duelserver.errors import RoomFull, UnknownPlayerOrRoom

MAX_HEALTH = 100
MAX_PLAYERS = 2
SPAWN_POINTS = [(250, 300), (750, 300)]

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
PLAYER_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_room_code(length=4):
    """Generate a short room code. Collisions are not checked."""
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def generate_player_id():
    suffix = ''.join(random.choices(PLAYER_ID_ALPHABET, k=9))
    return f"player_{int(time.time() * 1000)}_{suffix}"


def _clamp_health(value) -> int:
    return max(0, min(MAX_HEALTH, int(round(value))))


class Player:
    def __init__(self, player_id: str, name: str, sid: Optional[str] = None, x=0.0, y=0.0):
        self.id = player_id
        self.name = name
        self.sid = sid
        self.x = x
        self.y = y
        self.velocity_x = 0.0
        self.velocity_y = 0.0
        self.is_dead = False
        self._health = MAX_HEALTH
        # Unset combat substates are filled with idle defaults in to_dict()
        self.shield: Optional[dict] = None
        self.sword: Optional[dict] = None
        self.sword_hitbox: Optional[dict] = None

    @property
    def health(self) -> int:
        return self._health

    @health.setter
    def health(self, value):
        self._health = _clamp_health(value)
        if self._health == 0:
            self.is_dead = True

    def take_damage(self, amount: int) -> bool:
        """Apply damage and return True when this hit killed the player."""
        was_dead = self.is_dead
        self.health = self._health - amount
        return self.is_dead and not was_dead

    def mark_dead(self) -> bool:
        was_dead = self.is_dead
        self.is_dead = True
        return not was_dead

    def respawn(self) -> None:
        self._health = MAX_HEALTH
        self.is_dead = False

    def apply_state(self, x, y, velocity_x=0.0, velocity_y=0.0, health=None, is_dead=False, shield=None) -> bool:
        """Overwrite movement state with a client report.

        Position, velocity and shield are taken as reported. Health is taken
        too but clamped; the death flag only ever moves from alive to dead here.
        Returns True when the report killed the player.
        """
        was_dead = self.is_dead
        self.x = x
        self.y = y
        self.velocity_x = velocity_x
        self.velocity_y = velocity_y
        if health is not None:
            self.health = health
        if is_dead:
            self.is_dead = True
        if shield is not None:
            self.shield = dict(shield)
        return self.is_dead and not was_dead

    def swing_sword(self, hitbox: dict) -> None:
        self.sword = {'active': True, 'isSwinging': True, 'swingAngle': 0}
        self.sword_hitbox = dict(hitbox)
        self.shield = {'active': False, 'angle': self._shield_angle()}

    def release_sword(self) -> None:
        self.sword = {'active': False, 'isSwinging': False, 'swingAngle': 0}
        if self.sword_hitbox is not None:
            self.sword_hitbox = dict(self.sword_hitbox, visible=False)
        self.shield = {'active': True, 'angle': self._shield_angle()}

    def _shield_angle(self):
        return (self.shield or {}).get('angle', 0)

    def to_dict(self):
        return {
            'name': self.name,
            'x': self.x,
            'y': self.y,
            'velocityX': self.velocity_x,
            'velocityY': self.velocity_y,
            'health': self.health,
            'isDead': self.is_dead,
            'shield': self.shield or {'active': True, 'angle': 0},
            'sword': self.sword or {'active': False, 'isSwinging': False, 'swingAngle': 0},
            'swordHitbox': self.sword_hitbox or {'visible': False, 'x': 0, 'y': 0, 'angle': 0},
        }


class RoomPhase(Enum):
    FORMING = 'forming'
    READY = 'ready'
    COUNTING = 'counting'
    ACTIVE = 'active'
    OVER = 'over'


class Room:
    def __init__(self, code: str, countdown: int = 3):
        self.code = code
        self.players: Dict[str, Player] = {}
        self.game_started = False
        self.countdown = countdown
        self.countdown_task = None
        self.winner_id: Optional[str] = None
        self.loser_id: Optional[str] = None

    @property
    def phase(self) -> RoomPhase:
        if self.winner_id is not None:
            return RoomPhase.OVER
        if self.countdown_task is not None:
            return RoomPhase.COUNTING
        if self.game_started:
            return RoomPhase.ACTIVE
        if len(self.players) == MAX_PLAYERS:
            return RoomPhase.READY
        return RoomPhase.FORMING

    @property
    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    @property
    def is_open(self) -> bool:
        """Open for matchmaking: one player waiting, no match running."""
        return len(self.players) == 1 and not self.game_started

    @property
    def is_over(self) -> bool:
        return self.winner_id is not None

    def get_player(self, player_id) -> Player:
        player = self.players.get(player_id)
        if player is None:
            raise UnknownPlayerOrRoom(f"player {player_id} not in room {self.code}")
        return player

    def alive_players(self) -> List[Player]:
        return [p for p in self.players.values() if not p.is_dead]

    def upsert_player(self, player: Player) -> Player:
        """Insert a player, or rebind an existing one to its new connection."""
        existing = self.players.get(player.id)
        if existing is not None:
            existing.sid = player.sid
            return existing
        if self.is_full:
            raise RoomFull(self.code)
        self.players[player.id] = player
        return player

    def apply_player_state(self, player_id, **report) -> bool:
        return self.get_player(player_id).apply_state(**report)

    def set_sword_swing(self, player_id, hitbox: dict) -> Player:
        player = self.get_player(player_id)
        player.swing_sword(hitbox)
        return player

    def clear_sword(self, player_id) -> Player:
        player = self.get_player(player_id)
        player.release_sword()
        return player

    def remove_player(self, player_id) -> Optional[Player]:
        return self.players.pop(player_id, None)

    def place_on_spawn_points(self) -> None:
        for player, (x, y) in zip(self.players.values(), SPAWN_POINTS):
            player.x = x
            player.y = y

    def to_dict(self):
        return {
            'room_code': self.code,
            'phase': self.phase.value,
            'player_count': len(self.players),
            'players': [{'id': p.id, 'name': p.name} for p in self.players.values()],
            'game_started': self.game_started,
            'countdown': self.countdown,
            'winner_id': self.winner_id,
            'loser_id': self.loser_id,
        }
