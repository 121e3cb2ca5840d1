import pytest

from flappy import db
from flappy.models import Friendship, Score, User
from flappy.presence import OnlineUser
from flappy.services.leaderboard import get_leaderboards
from flappy.services.social import SocialGraph


def online(account, sid='s'):
    return OnlineUser(sid, str(account.id), account.username)


def test_empty_leaderboards(flask_app):
    assert get_leaderboards() == {'singlePlayer': [], 'multiPlayer': []}


def test_leaderboards_order_and_limit(flask_app, make_account):
    ann = make_account('Ann', wins=3)
    bob = make_account('Bob', wins=0)
    make_account('Cy', wins=5)
    for i in range(12):
        db.session.add(Score(user_id=ann.id, username='Ann', score=i, mode='single'))
    db.session.add(Score(user_id=bob.id, username='Bob', score=999, mode='multi'))
    db.session.commit()

    boards = get_leaderboards(limit=10)
    assert [s['score'] for s in boards['singlePlayer']] == list(range(11, 1, -1))
    assert [u['customUsername'] for u in boards['multiPlayer']] == ['Cy', 'Ann']


def test_add_friend_is_visible_from_both_sides(flask_app, make_account):
    ann, bob = make_account('Ann'), make_account('Bob')
    graph = SocialGraph()
    assert graph.add_friend(online(ann), str(bob.id)).id == bob.id
    assert [u.id for u in graph.list_friends(ann.id)] == [bob.id]
    assert [u.id for u in graph.list_friends(bob.id)] == [ann.id]
    assert Friendship.query.one().status == 'accepted'


def test_duplicate_friend_edges_are_kept(flask_app, make_account):
    ann, bob = make_account('Ann'), make_account('Bob')
    graph = SocialGraph()
    graph.add_friend(online(ann), str(bob.id))
    graph.add_friend(online(ann), str(bob.id))
    assert [u.id for u in graph.list_friends(ann.id)] == [bob.id, bob.id]


def test_add_friend_rejections(flask_app, make_account):
    ann = make_account('Ann')
    graph = SocialGraph()
    guest = OnlineUser('g', 'guest_1', 'Guest-0001', is_guest=True)
    assert graph.add_friend(online(ann), str(ann.id)) is None
    assert graph.add_friend(guest, str(ann.id)) is None
    assert graph.add_friend(online(ann), '424242') is None
    assert graph.add_friend(online(ann), 'not-an-id') is None
    assert graph.add_friend(None, str(ann.id)) is None
    assert Friendship.query.count() == 0


def test_friends_payload_marks_online(flask_app, make_account, hub):
    ann, bob, cy = make_account('Ann'), make_account('Bob'), make_account('Cy')
    graph = SocialGraph()
    graph.add_friend(online(ann), str(bob.id))
    graph.add_friend(online(cy), str(ann.id))
    me = online(ann, 'sa')
    hub.presence.register('sa', me)
    hub.presence.register('sb', online(bob, 'sb'))

    payload = graph.friends_payload(me, hub.presence)
    assert sorted(f['customUsername'] for f in payload['friends']) == ['Bob', 'Cy']
    assert payload['onlineFriendIds'] == [str(bob.id)]
    assert graph.friends_payload(OnlineUser('g', 'guest_1', 'G', is_guest=True), hub.presence) is None


def test_sweeper_is_off_under_testing(flask_app):
    from flappy.services.sweeper import start_pending_game_sweeper
    assert start_pending_game_sweeper(flask_app) is False


def stale_guest_game(hub):
    hub.presence.register('sa', OnlineUser('sa', 'guest_a', 'Guest-000a', is_guest=True))
    hub.presence.register('sb', OnlineUser('sb', 'guest_b', 'Guest-000b', is_guest=True))
    game = hub.coordinator.accept_invite('sb', 'guest_a')
    game.created_at -= 10 * 60
    return game


def test_sweep_expires_stale_pending_games(flask_app, hub):
    from flappy.services.sweeper import sweep_pending_games
    game = stale_guest_game(hub)
    assert sweep_pending_games(flask_app) == [game.game_id]
    assert hub.coordinator.pending_count() == 0
    assert sweep_pending_games(flask_app) == []


def test_sweeper_loop_runs_on_interval(flask_app, hub, monkeypatch):
    from flappy import socketio
    from flappy.services.sweeper import start_pending_game_sweeper

    class Stop(Exception):
        pass

    tasks, sleeps = [], []

    def fake_sleep(delay):
        sleeps.append(delay)
        if len(sleeps) > 1:
            raise Stop()

    monkeypatch.setattr(socketio, 'start_background_task', lambda fn, *args: tasks.append((fn, args)))
    monkeypatch.setattr(socketio, 'sleep', fake_sleep)
    flask_app.config.update(TESTING=False, PENDING_SWEEP_INTERVAL_SEC=5)
    game = stale_guest_game(hub)

    assert start_pending_game_sweeper(flask_app) is True
    [(worker, args)] = tasks
    with pytest.raises(Stop):
        worker(*args)
    assert sleeps == [5, 5]
    assert hub.coordinator.pending(game.game_id) is None


def test_sweep_failure_is_logged_and_skipped(flask_app, hub, monkeypatch):
    from flappy.services.sweeper import sweep_pending_games

    def broken(now=None):
        raise RuntimeError('boom')
    monkeypatch.setattr(hub.coordinator, 'expire', broken)
    assert sweep_pending_games(flask_app) == []


def test_online_summary_matches_account_dict(flask_app):
    from flappy.identity import online_user_for
    account = User(id=5, google_id='g-5', display_name='Ann Example', custom_username='Skybird', wins=2)
    assert online_user_for(account, 's5').summary() == account.to_dict()


def test_score_name_fits_any_account_name():
    assert Score.__table__.c.username.type.length >= User.__table__.c.display_name.type.length
