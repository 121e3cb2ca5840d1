from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set, Tuple

from flappy import db
from flappy.models import Score, User
from flappy.presence import OnlineUser
from flappy.protocol import GameMode, ServerEvent
from flappy.services.accounts import parse_account_pk


class ScoreStore:

    def add_score(self, account_id, username: str, score: int, mode: str = GameMode.SINGLE.value) -> Optional[Score]:
        pk = parse_account_pk(account_id)
        if pk is None:
            return None
        row = Score(user_id=pk, username=username, score=score, mode=mode)
        db.session.add(row)
        db.session.commit()
        return row

    def increment_wins(self, account_id) -> Optional[int]:
        pk = parse_account_pk(account_id)
        if pk is None:
            return None
        # Single UPDATE so two concurrent reports cannot lose an increment
        updated = User.query.filter_by(id=pk).update({User.wins: User.wins + 1})
        db.session.commit()
        if not updated:
            return None
        return db.session.get(User, pk).wins


@dataclass
class ActiveMatch:
    game_id: str
    connections: Tuple[str, str]
    finished: Set[str] = field(default_factory=set)

    def opponent_of(self, connection_id: str) -> Optional[str]:
        first, second = self.connections
        if connection_id == first:
            return second
        if connection_id == second:
            return first
        return None


class MatchRelay:
    """Forwards live scores between the two sides of a started match.

    Outcomes are whatever each client reports: a multiplayer win is
    credited to any reporter that says ``won``, with no cross-check
    against the opponent's report.
    """

    def __init__(self, notify: Callable, scores: ScoreStore):
        self._notify = notify
        self._scores = scores
        self._matches: Dict[str, ActiveMatch] = {}
        self._by_connection: Dict[str, str] = {}

    def start_match(self, game_id: str, first_conn: str, second_conn: str) -> ActiveMatch:
        # A connection plays one match at a time; an older one is abandoned
        for conn in (first_conn, second_conn):
            self.drop_connection(conn)
        match = ActiveMatch(game_id=game_id, connections=(first_conn, second_conn))
        self._matches[game_id] = match
        self._by_connection[first_conn] = game_id
        self._by_connection[second_conn] = game_id
        return match

    def match_for(self, connection_id: str) -> Optional[ActiveMatch]:
        game_id = self._by_connection.get(connection_id)
        return self._matches.get(game_id) if game_id else None

    def report_score(self, reporter_conn: str, score: int) -> bool:
        match = self.match_for(reporter_conn)
        if match is None:
            return False
        opponent = match.opponent_of(reporter_conn)
        if opponent is None:
            return False
        self._notify(ServerEvent.OPPONENT_SCORE_UPDATE.value, score, to=opponent)
        return True

    def report_game_over(self, reporter: OnlineUser, score: int, mode: GameMode, won: bool = False) -> None:
        if reporter is None:
            return
        if mode is GameMode.MULTI:
            self._finish(reporter.connection_id)
        if reporter.is_guest:
            return
        if mode is GameMode.SINGLE:
            self._scores.add_score(reporter.account_id, reporter.display_name, score, mode.value)
        elif won:
            wins = self._scores.increment_wins(reporter.account_id)
            if wins is not None:
                reporter.wins = wins

    def drop_connection(self, connection_id: str) -> Optional[str]:
        """Tear down the match a disconnecting player was in; returns its game id."""
        match = self.match_for(connection_id)
        if match is None:
            return None
        opponent = match.opponent_of(connection_id)
        if opponent is not None and opponent not in match.finished:
            self._notify(ServerEvent.MATCH_CANCELLED.value,
                         {'gameId': match.game_id, 'reason': 'opponent_left'}, to=opponent)
        self._remove(match)
        return match.game_id

    def _finish(self, connection_id: str) -> None:
        match = self.match_for(connection_id)
        if match is None:
            return
        match.finished.add(connection_id)
        self._by_connection.pop(connection_id, None)
        if set(match.connections) <= match.finished:
            self._remove(match)

    def _remove(self, match: ActiveMatch) -> None:
        self._matches.pop(match.game_id, None)
        for conn in match.connections:
            if self._by_connection.get(conn) == match.game_id:
                self._by_connection.pop(conn, None)

    def __len__(self) -> int:
        return len(self._matches)
