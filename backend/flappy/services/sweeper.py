import time

from flappy import socketio


def sweep_pending_games(app) -> list:
    """Expire stale pending games once; returns the expired game ids."""
    with app.app_context():
        hub = app.extensions['flappy']
        try:
            with hub.lock:
                expired = hub.coordinator.expire()
        except Exception:
            app.logger.exception("[sweep] pending game sweep failed")
            return []
        if expired:
            app.logger.info(f"[sweep] expired {len(expired)} pending game(s) at {time.time():.0f}")
        return expired


def start_pending_game_sweeper(app) -> bool:
    """Periodically expire stale pending games.

    - No-ops in TESTING mode (tests call ``sweep_pending_games`` directly)
    - No-ops when PENDING_SWEEP_INTERVAL_SEC is 0; expiry then only happens
      lazily when a pending game is looked up
    """
    if app.config.get('TESTING'):
        return False
    interval = int(app.config.get('PENDING_SWEEP_INTERVAL_SEC', 0))
    if interval <= 0:
        return False

    def _worker(delay: int):
        while True:
            socketio.sleep(delay)
            sweep_pending_games(app)

    socketio.start_background_task(_worker, interval)
    app.logger.info(f"[sweep] pending game sweeper every {interval}s")
    return True
