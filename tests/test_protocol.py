import pytest

from duelserver.protocol import HANDLERS, dispatch, handle_disconnect
from duelserver.services.lobby import Lobby


@pytest.fixture()
def lobby():
    return Lobby(code_factory=iter(['AB12', 'CD34', 'EF56']).__next__)


def _create(lobby, sid='sa', name='Alice'):
    effects = dispatch(lobby, sid, 'createRoom', {'playerName': name})
    return effects.emits[0].data


def _duel(lobby):
    """Two players in AB12 who have both joined the game page."""
    alice = _create(lobby)
    bob = dispatch(lobby, 'sb', 'joinRoom', {'playerName': 'Bob', 'roomCode': 'AB12'}).emits[0].data
    dispatch(lobby, 'sa', 'joinGame', {'playerId': alice['playerId'], 'playerName': 'Alice', 'roomCode': 'AB12'})
    dispatch(lobby, 'sb', 'joinGame', {'playerId': bob['playerId'], 'playerName': 'Bob', 'roomCode': 'AB12'})
    return alice['playerId'], bob['playerId']


def test_dispatch_table_covers_catalogue():
    assert set(HANDLERS) == {
        'createRoom', 'joinRandomRoom', 'joinRoom', 'joinGame', 'playerState', 'playerUpdate',
        'swordSwing', 'swordRelease', 'playerHit', 'playerDied', 'playerRespawn',
    }


def test_create_room_replies_to_sender_and_subscribes(lobby):
    effects = dispatch(lobby, 'sa', 'createRoom', {'playerName': 'Alice'})
    assert effects.join == 'AB12'
    reply = effects.emits[0]
    assert (reply.event, reply.to) == ('roomCreated', 'sa')
    assert reply.data['roomCode'] == 'AB12'
    assert reply.data['playerId'] in lobby.rooms.get('AB12').players


def test_blank_name_defaults(lobby):
    _create(lobby, name='   ')
    (player,) = lobby.rooms.get('AB12').players.values()
    assert player.name == 'Player'


def test_join_room_rejections(lobby):
    effects = dispatch(lobby, 'sx', 'joinRoom', {'playerName': 'X', 'roomCode': 'NOPE'})
    assert [(e.event, e.to, e.data) for e in effects.emits] == [('roomNotFound', 'sx', None)]
    _duel(lobby)
    effects = dispatch(lobby, 'sc', 'joinRoom', {'playerName': 'Carol', 'roomCode': 'ab12'})
    assert [e.event for e in effects.emits] == ['roomFull']
    assert effects.join is None
    assert len(lobby.rooms.get('AB12').players) == 2


def test_join_random_prefers_open_room(lobby):
    _create(lobby)
    effects = dispatch(lobby, 'sb', 'joinRandomRoom', {'playerName': 'Bob'})
    assert effects.emits[0].event == 'roomJoined'
    assert effects.emits[0].data['roomCode'] == 'AB12'
    assert len(lobby.rooms) == 1

    effects = dispatch(lobby, 'sc', 'joinRandomRoom', {'playerName': 'Carol'})
    assert effects.emits[0].event == 'roomJoined'
    assert effects.emits[0].data['roomCode'] == 'CD34'
    assert len(lobby.rooms) == 2


def test_join_game_broadcasts_and_starts_once(lobby):
    alice = _create(lobby)
    effects = dispatch(lobby, 'sa2', 'joinGame', {'playerId': alice['playerId'], 'roomCode': 'AB12'})
    assert effects.start_countdown is None
    state = effects.emits[0]
    assert (state.event, state.to) == ('gameState', 'AB12')
    assert lobby.rooms.get('AB12').players[alice['playerId']].sid == 'sa2'

    effects = dispatch(lobby, 'sb', 'joinGame', {'playerId': 'bob-id', 'playerName': 'Bob', 'roomCode': 'AB12'})
    assert effects.start_countdown == 'AB12'
    assert lobby.rooms.get('AB12').game_started
    again = dispatch(lobby, 'sb', 'joinGame', {'playerId': 'bob-id', 'playerName': 'Bob', 'roomCode': 'AB12'})
    assert again.start_countdown is None


def test_join_game_rejects_third_player(lobby):
    _duel(lobby)
    effects = dispatch(lobby, 'sc', 'joinGame', {'playerId': 'carol', 'playerName': 'Carol', 'roomCode': 'AB12'})
    assert [e.event for e in effects.emits] == ['roomFull']
    assert 'sc' not in lobby.connections


def test_join_game_unknown_room(lobby):
    effects = dispatch(lobby, 'sa', 'joinGame', {'playerId': 'p', 'roomCode': 'NOPE'})
    assert [e.event for e in effects.emits] == ['roomNotFound']


def test_player_state_overwrites_and_relays_to_others(lobby):
    alice, _ = _duel(lobby)
    effects = dispatch(lobby, 'sa', 'playerState', {
        'roomCode': 'AB12', 'playerId': alice, 'x': 120, 'y': 340,
        'velocityX': 2.5, 'velocityY': -1, 'health': 100, 'isDead': False,
        'shield': {'active': True, 'angle': 0.75},
    })
    player = lobby.rooms.get('AB12').players[alice]
    assert (player.x, player.y, player.velocity_x) == (120, 340, 2.5)
    assert player.shield == {'active': True, 'angle': 0.75}
    relay = effects.emits[0]
    assert (relay.event, relay.to, relay.skip_sid) == ('gameState', 'AB12', 'sa')
    assert relay.data['players'][alice]['x'] == 120


def test_player_state_reporting_death_ends_match(lobby):
    alice, bob = _duel(lobby)
    effects = dispatch(lobby, 'sa', 'playerState', {
        'roomCode': 'AB12', 'playerId': alice, 'x': 0, 'y': 900, 'isDead': True,
    })
    assert [e.event for e in effects.emits] == ['gameState', 'gameOver']
    assert effects.emits[1].data == {'winnerId': bob, 'loserId': alice}


def test_pointer_relay_does_not_mutate(lobby):
    alice, _ = _duel(lobby)
    before = lobby.broadcast.snapshot(lobby.rooms.get('AB12'))
    effects = dispatch(lobby, 'sa', 'playerUpdate', {'roomCode': 'AB12', 'playerId': alice, 'mouseX': 3, 'mouseY': 4})
    relay = effects.emits[0]
    assert relay.data == {'playerId': alice, 'mouseX': 3, 'mouseY': 4}
    assert relay.skip_sid == 'sa'
    assert lobby.broadcast.snapshot(lobby.rooms.get('AB12')) == before


def test_sword_swing_and_release(lobby):
    alice, _ = _duel(lobby)
    hitbox = {'visible': True, 'x': 10, 'y': 20, 'angle': 1.0}
    effects = dispatch(lobby, 'sa', 'swordSwing', {'roomCode': 'AB12', 'playerId': alice, 'hitbox': hitbox})
    relay = effects.emits[0]
    assert (relay.event, relay.skip_sid) == ('swordSwing', 'sa')
    assert relay.data['hitbox'] == hitbox
    snap = lobby.broadcast.snapshot(lobby.rooms.get('AB12'))[alice]
    assert snap['sword']['isSwinging'] is True
    assert snap['shield']['active'] is False

    effects = dispatch(lobby, 'sa', 'swordRelease', {'roomCode': 'AB12', 'playerId': alice})
    assert effects.emits[0].data == {'playerId': alice}
    snap = lobby.broadcast.snapshot(lobby.rooms.get('AB12'))[alice]
    assert snap['sword']['active'] is False
    assert snap['shield']['active'] is True


def test_hits_until_game_over(lobby):
    alice, bob = _duel(lobby)
    hit = {'roomCode': 'AB12', 'targetId': bob, 'attackerId': alice}
    events = []
    for _ in range(7):
        events.extend(e.event for e in dispatch(lobby, 'sa', 'playerHit', hit).emits)
    assert events.count('playerHit') == 7
    assert events.count('gameOver') == 1
    assert lobby.rooms.get('AB12').players[bob].health == 0
    # Dead target: silently ignored
    assert dispatch(lobby, 'sa', 'playerHit', hit).emits == []


def test_died_and_respawn(lobby):
    alice, bob = _duel(lobby)
    effects = dispatch(lobby, 'sb', 'playerDied', {'roomCode': 'AB12', 'playerId': bob})
    assert [e.event for e in effects.emits] == ['gameOver']
    effects = dispatch(lobby, 'sb', 'playerRespawn', {'roomCode': 'AB12', 'playerId': bob})
    assert [(e.event, e.skip_sid) for e in effects.emits] == [('playerRespawn', 'sb')]
    room = lobby.rooms.get('AB12')
    assert room.players[bob].health == 100
    assert room.game_started is False


def test_stale_and_malformed_messages_are_ignored(lobby):
    alice, _ = _duel(lobby)
    assert dispatch(lobby, 'sa', 'playerState', {'roomCode': 'ZZZZ', 'playerId': alice, 'x': 1, 'y': 1}).emits == []
    assert dispatch(lobby, 'sa', 'swordRelease', {'roomCode': 'AB12', 'playerId': 'ghost'}).emits == []
    assert dispatch(lobby, 'sa', 'playerState', {'roomCode': 'AB12', 'playerId': alice, 'x': 'left'}).emits == []
    assert dispatch(lobby, 'sa', 'playerHit', 'not a dict').emits == []
    assert dispatch(lobby, 'sa', 'joinRoom', None).emits == []
    assert dispatch(lobby, 'sa', 'noSuchEvent', {}).emits == []


def test_disconnect_notifies_peer_then_destroys_empty_room(lobby):
    alice, bob = _duel(lobby)
    effects = handle_disconnect(lobby, 'sa')
    notice = effects.emits[0]
    assert (notice.event, notice.to, notice.skip_sid) == ('playerDisconnected', 'AB12', 'sa')
    assert notice.data == {'playerId': alice, 'playerName': 'Alice'}
    assert list(lobby.rooms.get('AB12').players) == [bob]

    assert handle_disconnect(lobby, 'sb').emits == []
    assert 'AB12' not in lobby.rooms
    assert len(lobby.connections) == 0


def test_disconnect_of_superseded_connection_keeps_player(lobby):
    alice = _create(lobby)
    dispatch(lobby, 'sa-game', 'joinGame', {'playerId': alice['playerId'], 'playerName': 'Alice', 'roomCode': 'AB12'})
    assert handle_disconnect(lobby, 'sa').emits == []
    assert alice['playerId'] in lobby.rooms.get('AB12').players
    assert handle_disconnect(lobby, 'unknown').emits == []


def test_disconnect_during_countdown_cancels_it(lobby):
    _duel(lobby)
    handle = lobby.rooms.get('AB12').countdown_task
    handle_disconnect(lobby, 'sa')
    handle_disconnect(lobby, 'sb')
    assert handle.cancelled
    assert len(lobby.rooms) == 0


@pytest.mark.parametrize('report', [
    {'x': 999, 'y': 999, 'health': float('nan')},
    {'x': 999, 'y': 999, 'health': float('inf')},
    {'x': float('inf'), 'y': 999},
    {'x': 999, 'y': 999, 'shield': {'active': True, 'angle': float('nan')}},
])
def test_non_finite_player_state_changes_nothing(lobby, report):
    alice, _ = _duel(lobby)
    player = lobby.rooms.get('AB12').players[alice]
    before = player.to_dict()
    effects = dispatch(lobby, 'sa', 'playerState', dict(report, roomCode='AB12', playerId=alice))
    assert effects.emits == []
    assert player.to_dict() == before


def test_non_finite_hitbox_is_ignored(lobby):
    alice, _ = _duel(lobby)
    hitbox = {'visible': True, 'x': float('nan'), 'y': 0, 'angle': 0}
    effects = dispatch(lobby, 'sa', 'swordSwing', {'roomCode': 'AB12', 'playerId': alice, 'hitbox': hitbox})
    assert effects.emits == []
    assert lobby.rooms.get('AB12').players[alice].sword is None


def test_second_create_on_same_connection_drops_first_room(lobby):
    first = _create(lobby)
    second = _create(lobby)
    assert first['roomCode'] == 'AB12' and second['roomCode'] == 'CD34'
    assert 'AB12' not in lobby.rooms
    handle_disconnect(lobby, 'sa')
    assert len(lobby.rooms) == 0


def test_rejoin_random_does_not_match_own_or_abandoned_seat(lobby):
    _create(lobby)
    effects = dispatch(lobby, 'sa', 'joinRandomRoom', {'playerName': 'Alice'})
    assert effects.emits[0].data['roomCode'] == 'CD34'
    assert list(r.code for r in lobby.rooms) == ['CD34']

    effects = dispatch(lobby, 'sb', 'joinRandomRoom', {'playerName': 'Bob'})
    assert effects.emits[0].data['roomCode'] == 'CD34'
    assert len(lobby.rooms.get('CD34').players) == 2


def test_joining_another_room_notifies_old_peer(lobby):
    alice, bob = _duel(lobby)
    dispatch(lobby, 'sc', 'createRoom', {'playerName': 'Carol'})
    effects = dispatch(lobby, 'sb', 'joinRoom', {'playerName': 'Bob', 'roomCode': 'CD34'})
    assert [e.event for e in effects.emits] == ['roomJoined', 'playerDisconnected']
    notice = effects.emits[1]
    assert (notice.to, notice.data) == ('AB12', {'playerId': bob, 'playerName': 'Bob'})
    assert list(lobby.rooms.get('AB12').players) == [alice]


def test_failed_rejoin_keeps_current_seat(lobby):
    alice = _create(lobby)
    effects = dispatch(lobby, 'sa', 'joinRoom', {'playerName': 'Alice', 'roomCode': 'NOPE'})
    assert [e.event for e in effects.emits] == ['roomNotFound']
    assert alice['playerId'] in lobby.rooms.get('AB12').players
    assert lobby.connections.get('sa').room_code == 'AB12'
