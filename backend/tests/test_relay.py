import pytest

from flappy.models import Score
from flappy.presence import OnlineUser
from flappy.protocol import GameMode
from flappy.services.relay import MatchRelay, ScoreStore
from fakes import FakeScores, Recorder


@pytest.fixture()
def notify():
    return Recorder()


@pytest.fixture()
def scores():
    return FakeScores()


@pytest.fixture()
def relay(notify, scores):
    r = MatchRelay(notify, scores)
    r.start_match('g1', 'sa', 'sb')
    return r


def test_score_goes_to_opponent_only(relay, notify):
    assert relay.report_score('sa', 7)
    assert notify.sent == [('opponentScoreUpdate', 7, 'sb')]


def test_score_from_outsider_is_dropped(relay, notify):
    assert not relay.report_score('sz', 3)
    assert notify.sent == []


def test_single_player_game_over_appends_score(relay, scores):
    relay.report_game_over(OnlineUser('solo', '5', 'Ann'), 42, GameMode.SINGLE)
    assert scores.scores == [('5', 'Ann', 42, 'single')]
    assert scores.wins == {}


def test_multiplayer_win_increments_reporter(relay, scores):
    reporter = OnlineUser('sa', '1', 'Ann')
    relay.report_game_over(reporter, 9, GameMode.MULTI, won=True)
    assert scores.wins == {'1': 1}
    assert reporter.wins == 1
    assert scores.scores == []


def test_both_sides_may_claim_the_win(relay, scores):
    relay.report_game_over(OnlineUser('sa', '1', 'Ann'), 9, GameMode.MULTI, won=True)
    relay.report_game_over(OnlineUser('sb', '2', 'Bob'), 9, GameMode.MULTI, won=True)
    assert scores.wins == {'1': 1, '2': 1}


def test_match_closes_once_both_sides_report(relay):
    relay.report_game_over(OnlineUser('sa', '1', 'Ann'), 3, GameMode.MULTI, won=False)
    assert len(relay) == 1
    assert relay.match_for('sa') is None
    relay.report_game_over(OnlineUser('sb', '2', 'Bob'), 5, GameMode.MULTI, won=True)
    assert len(relay) == 0


def test_guest_outcomes_are_not_persisted(relay, scores):
    guest = OnlineUser('sa', 'guest_1', 'Guest-0001', is_guest=True)
    relay.report_game_over(guest, 50, GameMode.SINGLE)
    relay.report_game_over(guest, 50, GameMode.MULTI, won=True)
    assert scores.scores == [] and scores.wins == {}
    assert relay.match_for('sa') is None


def test_drop_connection_notifies_remaining_player(relay, notify):
    assert relay.drop_connection('sb') == 'g1'
    assert notify.sent == [('matchCancelled', {'gameId': 'g1', 'reason': 'opponent_left'}, 'sa')]
    assert len(relay) == 0
    assert relay.drop_connection('sa') is None


def test_score_store_writes_rows(flask_app, make_account):
    ann = make_account('Ann')
    store = ScoreStore()
    store.add_score(str(ann.id), 'Ann', 12)
    assert [s.score for s in Score.query.all()] == [12]
    assert store.increment_wins(str(ann.id)) == 1
    assert store.increment_wins(str(ann.id)) == 2
    assert store.increment_wins('9999') is None
    assert store.add_score('guest_x', 'Guest', 1) is None


def test_new_match_replaces_older_one_for_same_connection(relay, notify):
    relay.start_match('g2', 'sa', 'sc')
    assert notify.sent == [('matchCancelled', {'gameId': 'g1', 'reason': 'opponent_left'}, 'sb')]
    assert len(relay) == 1
    assert relay.match_for('sb') is None
    notify.clear()

    assert not relay.report_score('sb', 4)
    assert relay.report_score('sa', 4)
    assert notify.sent == [('opponentScoreUpdate', 4, 'sc')]
    assert relay.drop_connection('sa') == 'g2'
    assert len(relay) == 0
