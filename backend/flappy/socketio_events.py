from functools import wraps

from flask import current_app, request
from flask_socketio import disconnect, emit
from sqlalchemy.exc import SQLAlchemyError

from flappy import db, socketio
from flappy.identity import new_guest, online_user_for, resolve_connection_account
from flappy.protocol import (ClientEvent, ProtocolError, ServerEvent, parse_account_id,
                             parse_difficulty, parse_game_over, parse_invite, parse_score,
                             parse_username)
from flappy.services.leaderboard import get_leaderboards


def _hub():
    return current_app.extensions['flappy']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _guarded(handler):
    """Run under the hub lock; drop malformed payloads and swallow storage errors after logging."""
    @wraps(handler)
    def wrapper(*args):
        try:
            with _hub().lock:
                return handler(*args)
        except ProtocolError as exc:
            current_app.logger.warning(f"[protocol] {handler.__name__} sid={_get_sid()} rejected: {exc}")
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f"[storage] {handler.__name__} sid={_get_sid()} failed")
    return wrapper


def _register_online(user) -> None:
    hub = _hub()
    evicted = hub.presence.register(user.connection_id, user)
    if evicted is None:
        return
    current_app.logger.info(
        f"[presence] account={user.account_id} moved {evicted.connection_id} -> {user.connection_id}")
    hub.coordinator.rebind_account(user.account_id, user.connection_id)
    hub.relay.drop_connection(evicted.connection_id)
    hub.notify(ServerEvent.SESSION_REPLACED.value, {'connectionId': user.connection_id}, to=evicted.connection_id)
    disconnect(sid=evicted.connection_id, namespace=request.namespace)


@_guarded
def handle_connect(auth=None):
    account = resolve_connection_account()
    if account is None:
        return
    user = online_user_for(account, _get_sid())
    _register_online(user)
    current_app.logger.info(f"[presence] connected {user.display_name} ({user.connection_id})")


@_guarded
def handle_disconnect(reason=None):
    hub = _hub()
    sid = _get_sid()
    if sid not in hub.presence:
        return
    hub.coordinator.cancel_for_connection(sid)
    hub.relay.drop_connection(sid)
    user = hub.presence.unregister(sid)
    current_app.logger.info(f"[presence] disconnected {user.display_name if user else 'unknown'} ({sid})")


@_guarded
def handle_guest_login(data=None):
    user = new_guest(_get_sid())
    _register_online(user)
    emit(ServerEvent.LOGIN_SUCCESS.value, user.summary())


@_guarded
def handle_set_username(data=None):
    name = parse_username(data)
    lo = current_app.config.get('USERNAME_MIN_LENGTH', 3)
    hi = current_app.config.get('USERNAME_MAX_LENGTH', 64)
    if not lo <= len(name) <= hi:
        raise ProtocolError(f'username length must be within {lo}..{hi}')
    user = _hub().presence.rename(_get_sid(), name)
    if user is not None:
        emit(ServerEvent.LOGIN_SUCCESS.value, user.summary())


@_guarded
def handle_request_initial_data(data=None):
    hub = _hub()
    payload = hub.social.friends_payload(hub.presence.lookup_by_connection(_get_sid()), hub.presence)
    if payload is not None:
        emit(ServerEvent.FRIENDS_LIST.value, payload)


@_guarded
def handle_add_friend(data=None):
    hub = _hub()
    friend_id = parse_account_id(data)
    requester = hub.presence.lookup_by_connection(_get_sid())
    recipient = hub.social.add_friend(requester, friend_id)
    if recipient is None:
        return
    emit(ServerEvent.FRIEND_ADDED.value, recipient.to_dict())
    if recipient.socket_id:
        hub.notify(ServerEvent.FRIEND_ADDED.value, requester.summary(), to=recipient.socket_id)


@_guarded
def handle_send_invite(data=None):
    payload = parse_invite(data)
    _hub().coordinator.send_invite(_get_sid(), payload.to_user_id)


@_guarded
def handle_accept_invite(data=None):
    _hub().coordinator.accept_invite(_get_sid(), parse_account_id(data))


@_guarded
def handle_difficulty_selected(data=None):
    payload = parse_difficulty(data)
    _hub().coordinator.choose_difficulty(_get_sid(), payload.game_id, payload.difficulty)


@_guarded
def handle_score_update(data=None):
    _hub().relay.report_score(_get_sid(), parse_score(data))


@_guarded
def handle_game_over(data=None):
    payload = parse_game_over(data)
    hub = _hub()
    reporter = hub.presence.lookup_by_connection(_get_sid())
    hub.relay.report_game_over(reporter, payload.score, payload.mode, payload.won)


@_guarded
def handle_get_leaderboards(data=None):
    limit = current_app.config.get('LEADERBOARD_LIMIT', 10)
    emit(ServerEvent.LEADERBOARDS.value, get_leaderboards(limit))


_HANDLERS = {
    ClientEvent.GUEST_LOGIN: handle_guest_login,
    ClientEvent.SET_USERNAME: handle_set_username,
    ClientEvent.REQUEST_INITIAL_DATA: handle_request_initial_data,
    ClientEvent.ADD_FRIEND: handle_add_friend,
    ClientEvent.SEND_INVITE: handle_send_invite,
    ClientEvent.ACCEPT_INVITE: handle_accept_invite,
    ClientEvent.DIFFICULTY_SELECTED: handle_difficulty_selected,
    ClientEvent.SCORE_UPDATE: handle_score_update,
    ClientEvent.GAME_OVER: handle_game_over,
    ClientEvent.GET_LEADERBOARDS: handle_get_leaderboards,
}


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for event, handler in _HANDLERS.items():
        socketio.on_event(event.value, handler, namespace=namespace)
