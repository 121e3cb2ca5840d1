"""Socket.IO wire protocol: event names and inbound payload schemas.

Every client event has a parser that either returns a typed payload or
raises ``ProtocolError``. Handlers log and drop non-conforming messages
instead of passing ad hoc shapes into the services.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ProtocolError(ValueError):
    """Raised when an inbound payload does not match its event schema."""


class ClientEvent(str, Enum):
    GUEST_LOGIN = 'guestLogin'
    SET_USERNAME = 'setUsername'
    REQUEST_INITIAL_DATA = 'requestInitialData'
    ADD_FRIEND = 'addFriend'
    SEND_INVITE = 'sendInvite'
    ACCEPT_INVITE = 'acceptInvite'
    DIFFICULTY_SELECTED = 'difficultySelected'
    SCORE_UPDATE = 'scoreUpdate'
    GAME_OVER = 'gameOver'
    GET_LEADERBOARDS = 'getLeaderboards'


class ServerEvent(str, Enum):
    LOGIN_SUCCESS = 'loginSuccess'
    FRIENDS_LIST = 'friendsList'
    FRIEND_ADDED = 'friendAdded'
    INVITE_RECEIVED = 'inviteReceived'
    SHOW_DIFFICULTY_SELECT = 'showDifficultySelect'
    UPDATE_DIFFICULTY_CHOICES = 'updateDifficultyChoices'
    GAME_START = 'gameStart'
    OPPONENT_SCORE_UPDATE = 'opponentScoreUpdate'
    LEADERBOARDS = 'leaderboards'
    SESSION_REPLACED = 'sessionReplaced'
    MATCH_CANCELLED = 'matchCancelled'


class Difficulty(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'


class GameMode(str, Enum):
    SINGLE = 'single'
    MULTI = 'multi'


@dataclass(frozen=True)
class InvitePayload:
    to_user_id: str


@dataclass(frozen=True)
class DifficultyPayload:
    game_id: str
    difficulty: Difficulty


@dataclass(frozen=True)
class GameOverPayload:
    score: int
    mode: GameMode
    won: bool = False


def _require_str(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ProtocolError(f'{field} must be a non-empty string')
    return value.strip()


def _require_int(value: Any, field: str) -> int:
    # bool is an int subclass; a score of True is not a score
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f'{field} must be an integer')
    return value


def _require_mapping(value: Any, event: ClientEvent) -> dict:
    if not isinstance(value, dict):
        raise ProtocolError(f'{event.value} payload must be an object')
    return value


def parse_username(data: Any) -> str:
    return _require_str(data, 'username')


def parse_account_id(data: Any) -> str:
    return _require_str(data, 'account id')


def parse_invite(data: Any) -> InvitePayload:
    data = _require_mapping(data, ClientEvent.SEND_INVITE)
    return InvitePayload(to_user_id=_require_str(data.get('toUserId'), 'toUserId'))


def parse_difficulty(data: Any) -> DifficultyPayload:
    data = _require_mapping(data, ClientEvent.DIFFICULTY_SELECTED)
    game_id = _require_str(data.get('gameId'), 'gameId')
    try:
        difficulty = Difficulty(data.get('difficulty'))
    except ValueError:
        raise ProtocolError(f"unknown difficulty {data.get('difficulty')!r}")
    return DifficultyPayload(game_id=game_id, difficulty=difficulty)


def parse_score(data: Any) -> int:
    return _require_int(data, 'score')


def parse_game_over(data: Any) -> GameOverPayload:
    data = _require_mapping(data, ClientEvent.GAME_OVER)
    score = _require_int(data.get('score'), 'score')
    try:
        mode = GameMode(data.get('mode'))
    except ValueError:
        raise ProtocolError(f"unknown mode {data.get('mode')!r}")
    won = data.get('won', False)
    if not isinstance(won, bool):
        raise ProtocolError('won must be a boolean')
    return GameOverPayload(score=score, mode=mode, won=won)


def difficulty_value(difficulty: Optional[Difficulty]) -> Optional[str]:
    return difficulty.value if difficulty is not None else None
