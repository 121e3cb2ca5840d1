from typing import Optional

from flappy import db
from flappy.models import User


def parse_account_pk(account_id) -> Optional[int]:
    """Persisted accounts use integer keys; guest ids and junk map to None."""
    try:
        return int(account_id)
    except (TypeError, ValueError):
        return None


class AccountStore:
    """Account reads and the writes the presence registry needs."""

    def get(self, account_id) -> Optional[User]:
        pk = parse_account_pk(account_id)
        if pk is None:
            return None
        return db.session.get(User, pk)

    def set_connection(self, account_id, connection_id: str) -> None:
        user = self.get(account_id)
        if user is None:
            return
        user.socket_id = connection_id
        db.session.add(user)
        db.session.commit()

    def clear_connection(self, account_id) -> None:
        user = self.get(account_id)
        if user is None:
            return
        user.socket_id = None
        db.session.add(user)
        db.session.commit()

    def rename(self, account_id, new_name: str) -> None:
        user = self.get(account_id)
        if user is None:
            return
        user.custom_username = new_name
        db.session.add(user)
        db.session.commit()

    def upsert_google_user(self, google_id: str, display_name: str) -> User:
        user = User.query.filter_by(google_id=google_id).first()
        if user is None:
            user = User(google_id=google_id, display_name=display_name,
                        custom_username=display_name, wins=0)
            db.session.add(user)
            db.session.commit()
        return user
