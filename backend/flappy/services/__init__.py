"""Domain services: social graph, matchmaking, live relay, leaderboards.

Socket handlers and HTTP routes call into these; transport concerns stay in
``flappy.socketio_events`` and ``flappy.main``.
"""
