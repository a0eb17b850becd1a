"""Inbound message handlers.

Each handler takes ``(lobby, sid, message)`` and returns ``Effects``: the
events to emit, the room whose broadcast group the connection should join,
and the room whose countdown should start. Handlers never touch the
transport, so they can be exercised without a Socket.IO server.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Type

from pydantic import ValidationError

from duelserver import schemas
from duelserver.errors import IgnoredMessage, RoomFull, RoomNotFound
from duelserver.models import Player, Room
from duelserver.services.broadcast import Emit
from duelserver.services.lobby import Lobby
from duelserver.services.registry import ConnectionBinding

logger = logging.getLogger(__name__)


@dataclass
class Effects:
    emits: List[Emit] = field(default_factory=list)
    join: Optional[str] = None
    start_countdown: Optional[str] = None


def _joined(lobby: Lobby, sid: str, event: str, room: Room, player: Player) -> Effects:
    reply = lobby.broadcast.to_sender(sid, event, {'roomCode': room.code, 'playerId': player.id})
    return Effects(emits=[reply], join=room.code)


def _release(lobby: Lobby, sid: str, binding: ConnectionBinding) -> List[Emit]:
    """Take the bound player out of its room, notify the peer and drop the room if empty."""
    room = lobby.rooms.get(binding.room_code)
    if room is None:
        return []
    player = room.players.get(binding.player_id)
    # A player rebound to a newer connection stays in the room
    if player is None or player.sid != sid:
        return []

    room.remove_player(player.id)
    logger.info(f"[player-left] room={room.code} player={player.id} remaining={len(room.players)}")
    if not room.players:
        lobby.rooms.remove_room(room.code)
        return []
    data = {'playerId': player.id, 'playerName': player.name}
    return [lobby.broadcast.publish_to_others(room, sid, 'playerDisconnected', data)]


def _release_superseded(lobby: Lobby, sid: str, previous: Optional[ConnectionBinding], effects: Effects) -> Effects:
    # The connection now plays elsewhere; its old seat must not linger
    current = lobby.connections.get(sid)
    if previous is not None and current is not None and (
        (previous.room_code, previous.player_id) != (current.room_code, current.player_id)
    ):
        effects.emits.extend(_release(lobby, sid, previous))
    return effects


def _join_existing(lobby: Lobby, sid: str, room_code: str, player_name: str) -> Effects:
    previous = lobby.connections.get(sid)
    try:
        player = lobby.rooms.join_room(room_code, player_name, sid)
    except RoomNotFound:
        return Effects(emits=[lobby.broadcast.to_sender(sid, 'roomNotFound')])
    except RoomFull:
        return Effects(emits=[lobby.broadcast.to_sender(sid, 'roomFull')])
    effects = _joined(lobby, sid, 'roomJoined', lobby.rooms.get(room_code), player)
    return _release_superseded(lobby, sid, previous, effects)


def handle_create_room(lobby: Lobby, sid: str, msg: schemas.CreateRoom) -> Effects:
    previous = lobby.connections.get(sid)
    room, player = lobby.rooms.create_room(msg.player_name, sid)
    return _release_superseded(lobby, sid, previous, _joined(lobby, sid, 'roomCreated', room, player))


def handle_join_random_room(lobby: Lobby, sid: str, msg: schemas.JoinRandomRoom) -> Effects:
    # Leave first so matchmaking never pairs the connection with its own seat
    previous = lobby.connections.unbind(sid)
    released = _release(lobby, sid, previous) if previous is not None else []
    room_code = lobby.rooms.find_open_room()
    if room_code is not None:
        effects = _join_existing(lobby, sid, room_code, msg.player_name)
    else:
        room, player = lobby.rooms.create_room(msg.player_name, sid)
        effects = _joined(lobby, sid, 'roomJoined', room, player)
    effects.emits.extend(released)
    return effects


def handle_join_room(lobby: Lobby, sid: str, msg: schemas.JoinRoom) -> Effects:
    return _join_existing(lobby, sid, msg.room_code, msg.player_name)


def handle_join_game(lobby: Lobby, sid: str, msg: schemas.JoinGame) -> Effects:
    room = lobby.rooms.get(msg.room_code)
    if room is None:
        return Effects(emits=[lobby.broadcast.to_sender(sid, 'roomNotFound')])
    previous = lobby.connections.get(sid)
    try:
        room.upsert_player(Player(msg.player_id, msg.player_name, sid=sid))
    except RoomFull:
        return Effects(emits=[lobby.broadcast.to_sender(sid, 'roomFull')])
    lobby.connections.bind(sid, msg.player_id, room.code)

    effects = _release_superseded(lobby, sid, previous, Effects(join=room.code))
    effects.emits.append(lobby.broadcast.publish_to_room(room))
    if lobby.sequencer.begin(room) is not None:
        effects.start_countdown = room.code
    return effects


def handle_player_state(lobby: Lobby, sid: str, msg: schemas.PlayerState) -> Effects:
    room = lobby.get_room(msg.room_code)
    died = room.apply_player_state(
        msg.player_id,
        x=msg.x,
        y=msg.y,
        velocity_x=msg.velocity_x,
        velocity_y=msg.velocity_y,
        health=msg.health,
        is_dead=msg.is_dead,
        shield=msg.shield.model_dump() if msg.shield else None,
    )
    effects = Effects()
    if died:
        effects.emits.extend(lobby.combat.evaluate_survivors(room, msg.player_id).emits)
    effects.emits.insert(0, lobby.broadcast.state_to_others(room, sid))
    return effects


def handle_player_update(lobby: Lobby, sid: str, msg: schemas.PlayerUpdate) -> Effects:
    room = lobby.get_room(msg.room_code)
    data = {'playerId': msg.player_id, 'mouseX': msg.mouse_x, 'mouseY': msg.mouse_y}
    return Effects(emits=[lobby.broadcast.publish_to_others(room, sid, 'playerUpdate', data)])


def handle_sword_swing(lobby: Lobby, sid: str, msg: schemas.SwordSwing) -> Effects:
    room = lobby.get_room(msg.room_code)
    player = room.set_sword_swing(msg.player_id, msg.hitbox.model_dump())
    data = {'playerId': player.id, 'hitbox': player.sword_hitbox}
    return Effects(emits=[lobby.broadcast.publish_to_others(room, sid, 'swordSwing', data)])


def handle_sword_release(lobby: Lobby, sid: str, msg: schemas.SwordRelease) -> Effects:
    room = lobby.get_room(msg.room_code)
    player = room.clear_sword(msg.player_id)
    data = {'playerId': player.id}
    return Effects(emits=[lobby.broadcast.publish_to_others(room, sid, 'swordRelease', data)])


def handle_player_hit(lobby: Lobby, sid: str, msg: schemas.PlayerHit) -> Effects:
    room = lobby.get_room(msg.room_code)
    outcome = lobby.combat.apply_hit(room, msg.attacker_id, msg.target_id)
    return Effects(emits=outcome.emits)


def handle_player_died(lobby: Lobby, sid: str, msg: schemas.PlayerDied) -> Effects:
    room = lobby.get_room(msg.room_code)
    outcome = lobby.combat.apply_explicit_death(room, msg.player_id)
    return Effects(emits=outcome.emits)


def handle_player_respawn(lobby: Lobby, sid: str, msg: schemas.PlayerRespawn) -> Effects:
    room = lobby.get_room(msg.room_code)
    outcome = lobby.combat.respawn(room, msg.player_id, sid)
    return Effects(emits=outcome.emits)


def handle_disconnect(lobby: Lobby, sid: str) -> Effects:
    """Remove the connection's player, notify the peer and drop empty rooms."""
    binding = lobby.connections.unbind(sid)
    if binding is None:
        return Effects()
    return Effects(emits=_release(lobby, sid, binding))


Handler = Callable[[Lobby, str, schemas.Message], Effects]

HANDLERS: Dict[str, Tuple[Type[schemas.Message], Handler]] = {
    'createRoom': (schemas.CreateRoom, handle_create_room),
    'joinRandomRoom': (schemas.JoinRandomRoom, handle_join_random_room),
    'joinRoom': (schemas.JoinRoom, handle_join_room),
    'joinGame': (schemas.JoinGame, handle_join_game),
    'playerState': (schemas.PlayerState, handle_player_state),
    'playerUpdate': (schemas.PlayerUpdate, handle_player_update),
    'swordSwing': (schemas.SwordSwing, handle_sword_swing),
    'swordRelease': (schemas.SwordRelease, handle_sword_release),
    'playerHit': (schemas.PlayerHit, handle_player_hit),
    'playerDied': (schemas.PlayerDied, handle_player_died),
    'playerRespawn': (schemas.PlayerRespawn, handle_player_respawn),
}


def dispatch(lobby: Lobby, sid: str, event: str, payload) -> Effects:
    """Validate ``payload`` for ``event`` and run its handler.

    Malformed payloads and messages about rooms or players that are gone
    degrade to empty effects.
    """
    entry = HANDLERS.get(event)
    if entry is None:
        logger.warning(f"[unknown-event] sid={sid} event={event}")
        return Effects()
    schema, handler = entry
    try:
        message = schema.model_validate(payload if payload is not None else {})
    except ValidationError as exc:
        logger.warning(f"[invalid-payload] sid={sid} event={event} errors={exc.error_count()}")
        return Effects()
    try:
        return handler(lobby, sid, message)
    except IgnoredMessage as exc:
        logger.debug(f"[ignored] sid={sid} event={event} reason={exc}")
        return Effects()
