"""Invitation and matchmaking state machine.

invite -> accepted (pending game, both difficulties unset) -> each side
picks a difficulty -> game start (pending game removed, active match
opened in the relay).

Handlers run one at a time on the Socket.IO event path. Nothing in this
module yields between reading a pending game and writing it back; keep it
that way, or two near-simultaneous choices can overwrite each other.
"""
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from flappy.presence import PresenceRegistry
from flappy.protocol import Difficulty, ServerEvent, difficulty_value


@dataclass
class Slot:
    account_id: str
    connection_id: str
    display_name: str
    difficulty: Optional[Difficulty] = None


@dataclass
class PendingGame:
    game_id: str
    player1: Slot
    player2: Slot
    created_at: float = field(default_factory=time.monotonic)

    @property
    def slots(self):
        return (self.player1, self.player2)

    def slot_for_account(self, account_id: str) -> Optional[Slot]:
        for slot in self.slots:
            if slot.account_id == account_id:
                return slot
        return None

    def opponent_of(self, slot: Slot) -> Slot:
        return self.player2 if slot is self.player1 else self.player1

    def is_ready(self) -> bool:
        return all(slot.difficulty is not None for slot in self.slots)


class MatchCoordinator:

    def __init__(self, presence: PresenceRegistry, relay, notify: Callable,
                 ttl_sec: float = 120, clock: Callable[[], float] = time.monotonic, logger=None):
        self._presence = presence
        self._relay = relay
        self._notify = notify
        self._ttl = ttl_sec
        self._clock = clock
        self._log = logger
        self._pending: Dict[str, PendingGame] = {}

    def pending(self, game_id: str) -> Optional[PendingGame]:
        return self._pending.get(game_id)

    def pending_count(self) -> int:
        return len(self._pending)

    def send_invite(self, sender_conn: str, target_account_id: str) -> bool:
        sender = self._presence.lookup_by_connection(sender_conn)
        target = self._presence.lookup_by_account(target_account_id)
        if sender is None or target is None:
            return False
        self._notify(ServerEvent.INVITE_RECEIVED.value,
                     {'fromId': sender.account_id, 'fromName': sender.display_name},
                     to=target.connection_id)
        return True

    def accept_invite(self, accepter_conn: str, sender_account_id: str) -> Optional[PendingGame]:
        accepter = self._presence.lookup_by_connection(accepter_conn)
        sender = self._presence.lookup_by_account(sender_account_id)
        if accepter is None or sender is None:
            return None
        if accepter.account_id == sender.account_id:
            return None
        game = PendingGame(
            game_id=uuid.uuid4().hex,
            player1=Slot(sender.account_id, sender.connection_id, sender.display_name),
            player2=Slot(accepter.account_id, accepter.connection_id, accepter.display_name),
            created_at=self._clock(),
        )
        self._pending[game.game_id] = game
        self._info(f"[match] pending game={game.game_id} {sender.account_id} vs {accepter.account_id}")
        for slot in game.slots:
            self._notify(ServerEvent.SHOW_DIFFICULTY_SELECT.value, {'gameId': game.game_id}, to=slot.connection_id)
        return game

    def choose_difficulty(self, chooser_conn: str, game_id: str, difficulty: Difficulty) -> Optional[PendingGame]:
        game = self._live_pending(game_id)
        chooser = self._presence.lookup_by_connection(chooser_conn)
        if game is None or chooser is None:
            return None
        slot = game.slot_for_account(chooser.account_id)
        if slot is None:
            return None
        slot.difficulty = difficulty
        slot.connection_id = chooser.connection_id
        self._refresh_connection(game.opponent_of(slot))

        for me in game.slots:
            other = game.opponent_of(me)
            self._notify(ServerEvent.UPDATE_DIFFICULTY_CHOICES.value, {
                'myChoice': difficulty_value(me.difficulty),
                'opponentChoice': difficulty_value(other.difficulty),
                'opponentName': other.display_name,
            }, to=me.connection_id)

        if game.is_ready():
            # Each side plays its own pick; the two need not agree
            for me in game.slots:
                other = game.opponent_of(me)
                self._notify(ServerEvent.GAME_START.value, {
                    'gameId': game.game_id,
                    'opponentName': other.display_name,
                    'difficulty': difficulty_value(me.difficulty),
                }, to=me.connection_id)
            del self._pending[game.game_id]
            self._relay.start_match(game.game_id, game.player1.connection_id, game.player2.connection_id)
            self._info(f"[match] started game={game.game_id}")
        return game

    def rebind_account(self, account_id: str, connection_id: str) -> None:
        """Point pending slots for ``account_id`` at its new connection."""
        for game in self._pending.values():
            slot = game.slot_for_account(account_id)
            if slot is not None:
                slot.connection_id = connection_id

    def cancel_for_connection(self, connection_id: str) -> List[str]:
        cancelled = []
        for game in list(self._pending.values()):
            leaving = next((s for s in game.slots if s.connection_id == connection_id), None)
            if leaving is None:
                continue
            del self._pending[game.game_id]
            other = game.opponent_of(leaving)
            self._notify(ServerEvent.MATCH_CANCELLED.value,
                         {'gameId': game.game_id, 'reason': 'opponent_left'}, to=other.connection_id)
            cancelled.append(game.game_id)
        if cancelled:
            self._info(f"[match] cancelled {cancelled} after disconnect of {connection_id}")
        return cancelled

    def expire(self, now: Optional[float] = None) -> List[str]:
        now = self._clock() if now is None else now
        expired = [g for g in self._pending.values() if self._is_expired(g, now)]
        for game in expired:
            self._drop_expired(game)
        return [g.game_id for g in expired]

    def _live_pending(self, game_id: str) -> Optional[PendingGame]:
        game = self._pending.get(game_id)
        if game is not None and self._is_expired(game, self._clock()):
            self._drop_expired(game)
            return None
        return game

    def _is_expired(self, game: PendingGame, now: float) -> bool:
        return bool(self._ttl) and now - game.created_at >= self._ttl

    def _drop_expired(self, game: PendingGame) -> None:
        self._pending.pop(game.game_id, None)
        for slot in game.slots:
            self._notify(ServerEvent.MATCH_CANCELLED.value,
                         {'gameId': game.game_id, 'reason': 'expired'}, to=slot.connection_id)
        self._info(f"[match] expired game={game.game_id}")

    def _refresh_connection(self, slot: Slot) -> None:
        current = self._presence.lookup_by_account(slot.account_id)
        if current is not None:
            slot.connection_id = current.connection_id

    def _info(self, message: str) -> None:
        if self._log is not None:
            self._log.info(message)
