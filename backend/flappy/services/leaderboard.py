from flappy.models import Score, User
from flappy.protocol import GameMode


def get_leaderboards(limit: int = 10) -> dict:
    """Top single-player scores and top multiplayer winners.

    Read only. Accounts with no wins are left off the multiplayer board.
    """
    single = (Score.query
              .filter_by(mode=GameMode.SINGLE.value)
              .order_by(Score.score.desc(), Score.created_at.asc())
              .limit(limit)
              .all())
    winners = (User.query
               .filter(User.wins > 0)
               .order_by(User.wins.desc(), User.id.asc())
               .limit(limit)
               .all())
    return {
        'singlePlayer': [s.to_dict() for s in single],
        'multiPlayer': [u.to_dict() for u in winners],
    }
