import logging
from dataclasses import dataclass, field
from typing import List, Optional

from duelserver.errors import InvalidTargetState
from duelserver.models import Room
from .broadcast import BroadcastService, Emit

logger = logging.getLogger(__name__)

DEFAULT_HIT_DAMAGE = 15


@dataclass
class Outcome:
    """Result of a combat action and the events it produced."""
    player_id: str
    killed: bool = False
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    emits: List[Emit] = field(default_factory=list)

    @property
    def game_over(self) -> bool:
        return self.winner_id is not None


class CombatAdjudicator:
    def __init__(self, broadcast: BroadcastService, damage: int = DEFAULT_HIT_DAMAGE):
        self.broadcast = broadcast
        self.damage = damage

    def apply_hit(self, room: Room, attacker_id: str, target_id: str) -> Outcome:
        """Apply one sword hit from attacker to target.

        Raises UnknownPlayerOrRoom if either player is gone and
        InvalidTargetState if the target is already dead; neither emits.
        """
        room.get_player(attacker_id)
        target = room.get_player(target_id)
        if target.is_dead:
            raise InvalidTargetState(f"player {target_id} is already dead")

        outcome = Outcome(player_id=target_id)
        outcome.killed = target.take_damage(self.damage)
        logger.debug(
            f"[hit] room={room.code} attacker={attacker_id} target={target_id} health={target.health}"
        )
        if outcome.killed:
            self._evaluate_survivors(room, target_id, outcome)
        outcome.emits.append(
            self.broadcast.to_room(
                room,
                'playerHit',
                {'playerId': target_id, 'attackerId': attacker_id, 'damage': self.damage},
            )
        )
        return outcome

    def apply_explicit_death(self, room: Room, player_id: str) -> Outcome:
        """Client-reported death (falls, hazards); not gated on health."""
        player = room.get_player(player_id)
        outcome = Outcome(player_id=player_id, killed=player.mark_dead())
        self._evaluate_survivors(room, player_id, outcome)
        return outcome

    def evaluate_survivors(self, room: Room, loser_id: str) -> Outcome:
        outcome = Outcome(player_id=loser_id, killed=True)
        self._evaluate_survivors(room, loser_id, outcome)
        return outcome

    def respawn(self, room: Room, player_id: str, sid: str) -> Outcome:
        player = room.get_player(player_id)
        player.respawn()
        outcome = Outcome(player_id=player_id)
        outcome.emits.append(
            self.broadcast.publish_to_others(room, sid, 'playerRespawn', {'playerId': player_id})
        )
        return outcome

    def _evaluate_survivors(self, room: Room, loser_id: str, outcome: Outcome) -> None:
        # A room that already has a winner never ends a second time
        if room.is_over:
            return
        alive = room.alive_players()
        if len(alive) != 1:
            return
        winner = alive[0]
        room.winner_id = winner.id
        room.loser_id = loser_id
        room.game_started = False
        outcome.winner_id = winner.id
        outcome.loser_id = loser_id
        outcome.emits.append(
            self.broadcast.to_room(room, 'gameOver', {'winnerId': winner.id, 'loserId': loser_id})
        )
        logger.info(f"[game-over] room={room.code} winner={winner.id} loser={loser_id}")
