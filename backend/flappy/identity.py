"""Bridge between the cookie session (Flask-Login) and Socket.IO connections.

The login itself is an external redirect flow. This app only sees the
resulting profile, through whatever ``IdentityProvider`` is installed in
``app.extensions['identity_provider']``.
"""
import secrets
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from flask_login import current_user, login_user

from flappy import db
from flappy.models import User
from flappy.presence import OnlineUser


@dataclass(frozen=True)
class GoogleProfile:
    google_id: str
    display_name: str


class IdentityProvider:
    """Turns callback query args into a verified profile, or None."""

    def fetch_profile(self, args) -> Optional[GoogleProfile]:
        raise NotImplementedError


def resolve_connection_account() -> Optional[User]:
    """Account behind the current Socket.IO handshake, if any.

    Any lookup error is logged and treated as an anonymous connection.
    """
    try:
        if not current_user or not current_user.is_authenticated:
            return None
        return current_user._get_current_object()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[identity] account lookup failed")
        return None


def online_user_for(account: User, connection_id: str) -> OnlineUser:
    return OnlineUser(
        connection_id=connection_id,
        account_id=str(account.id),
        display_name=account.username,
        is_guest=False,
        wins=account.wins or 0,
        provider_name=account.display_name,
    )


def new_guest(connection_id: str) -> OnlineUser:
    guest_id = f"guest_{secrets.token_hex(12)}"
    return OnlineUser(
        connection_id=connection_id,
        account_id=guest_id,
        display_name=f"Guest-{guest_id[-4:]}",
        is_guest=True,
    )


def complete_login(profile: GoogleProfile) -> User:
    user = current_app.extensions['flappy'].accounts.upsert_google_user(
        profile.google_id, profile.display_name)
    login_user(user, remember=True)
    return user
