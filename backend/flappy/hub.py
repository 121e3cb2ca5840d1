import threading

from flappy.presence import PresenceRegistry
from flappy.services.accounts import AccountStore
from flappy.services.matchmaking import MatchCoordinator
from flappy.services.relay import MatchRelay, ScoreStore
from flappy.services.social import SocialGraph


class SessionHub:
    """Per-application owner of presence, pending games and active matches.

    Lives in ``app.extensions['flappy']``; handlers reach it through
    ``current_app`` rather than module globals. Socket.IO handlers, the
    sweeper and the logout route all hold ``lock`` while touching it.
    """

    def __init__(self, notify, ttl_sec=120, logger=None):
        self.notify = notify
        # Reentrant: a handler that disconnects another sid runs that
        # sid's disconnect handler on the same thread
        self.lock = threading.RLock()
        self.accounts = AccountStore()
        self.scores = ScoreStore()
        self.social = SocialGraph()
        self.presence = PresenceRegistry(self.accounts)
        self.relay = MatchRelay(notify, self.scores)
        self.coordinator = MatchCoordinator(self.presence, self.relay, notify,
                                            ttl_sec=ttl_sec, logger=logger)


def socketio_notify(socketio, namespace):
    def notify(event, payload, to):
        socketio.emit(event, payload, to=to, namespace=namespace)
    return notify
