import logging
from typing import Callable, List, Optional, Tuple

from duelserver import socketio
from duelserver.models import MAX_PLAYERS, Room
from .broadcast import BroadcastService, Emit

logger = logging.getLogger(__name__)


class CountdownHandle:
    """Cancellation handle for one room's running countdown."""

    def __init__(self, room_code: str):
        self.room_code = room_code
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class StartSequencer:
    def __init__(self, broadcast: BroadcastService, countdown_start: int = 3):
        self.broadcast = broadcast
        self.countdown_start = countdown_start

    def begin(self, room: Room) -> Optional[CountdownHandle]:
        """Start the match if the room just became full.

        Returns the countdown handle, or None when the room is not ready.
        """
        if room.game_started or len(room.players) != MAX_PLAYERS:
            return None
        room.game_started = True
        room.winner_id = None
        room.loser_id = None
        room.countdown = self.countdown_start
        room.countdown_task = CountdownHandle(room.code)
        logger.info(f"[countdown-start] room={room.code} from={room.countdown}")
        return room.countdown_task

    def tick(self, room: Room) -> Tuple[List[Emit], bool]:
        """Emit the current countdown value; returns (emits, finished)."""
        value = room.countdown
        emits = [self.broadcast.to_room(room, 'countdown', value)]
        if value > 0:
            room.countdown = value - 1
            return emits, False

        if room.countdown_task is not None:
            room.countdown_task.cancel()
            room.countdown_task = None
        for player in room.players.values():
            player.respawn()
        room.place_on_spawn_points()
        emits.append(self.broadcast.publish_to_room(room))
        logger.info(f"[countdown-done] room={room.code} players={list(room.players)}")
        return emits, True


def schedule_countdown(app, lobby, room_code: str, publish: Callable[[List[Emit]], None]) -> None:
    """Drive a room's countdown, one tick per COUNTDOWN_TICK_SEC.

    - Runs inline in TESTING mode, as a Socket.IO background task otherwise
    - Stops as soon as the room's handle is cancelled or the room is gone
    """
    interval = float(app.config.get('COUNTDOWN_TICK_SEC', 1.0))
    with lobby.lock:
        room = lobby.rooms.get(room_code)
        handle = room.countdown_task if room else None
    if handle is None:
        return

    def _worker(expected: CountdownHandle):
        while True:
            socketio.sleep(interval)
            with lobby.lock:
                current = lobby.rooms.get(expected.room_code)
                if expected.cancelled or current is None or current.countdown_task is not expected:
                    logger.info(f"[countdown-abort] room={expected.room_code}")
                    return
                emits, finished = lobby.sequencer.tick(current)
                publish(emits)
            if finished:
                return

    if app.config.get('TESTING'):
        _worker(handle)
    else:
        socketio.start_background_task(_worker, handle)
