"""In-memory registry of who is online, keyed by Socket.IO connection id."""
from dataclasses import dataclass
from typing import Dict, Optional, Set


@dataclass
class OnlineUser:
    connection_id: str
    account_id: str
    display_name: str
    is_guest: bool = False
    wins: int = 0
    # Name from the identity provider; display_name is the chosen username
    provider_name: Optional[str] = None

    def summary(self) -> dict:
        return {
            'id': self.account_id,
            'displayName': self.provider_name or self.display_name,
            'customUsername': self.display_name,
            'wins': self.wins,
            'isGuest': self.is_guest,
        }


class PresenceRegistry:
    """connection id -> OnlineUser.

    At most one non-guest record exists per account: registering an account
    that is already online evicts the older record. Persisted side effects
    (connection marker, rename) go through ``accounts`` and are skipped for
    guests.
    """

    def __init__(self, accounts):
        self._accounts = accounts
        self._by_connection: Dict[str, OnlineUser] = {}

    def register(self, connection_id: str, user: OnlineUser) -> Optional[OnlineUser]:
        """Store ``user`` for ``connection_id`` and return any evicted record.

        An account record overwritten on the same connection (a signed-in
        socket turning guest) loses its persisted marker.
        """
        user.connection_id = connection_id
        evicted = None
        if not user.is_guest:
            for sid, existing in list(self._by_connection.items()):
                if sid != connection_id and not existing.is_guest and existing.account_id == user.account_id:
                    evicted = self._by_connection.pop(sid)
                    break
        replaced = self._by_connection.get(connection_id)
        self._by_connection[connection_id] = user
        if not user.is_guest:
            self._accounts.set_connection(user.account_id, connection_id)
        if (replaced is not None and not replaced.is_guest
                and replaced.account_id != user.account_id
                and self.lookup_by_account(replaced.account_id) is None):
            self._accounts.clear_connection(replaced.account_id)
        return evicted

    def rename(self, connection_id: str, new_name: str) -> Optional[OnlineUser]:
        user = self._by_connection.get(connection_id)
        if user is None:
            return None
        user.display_name = new_name
        if not user.is_guest:
            self._accounts.rename(user.account_id, new_name)
        return user

    def lookup_by_connection(self, connection_id: str) -> Optional[OnlineUser]:
        return self._by_connection.get(connection_id)

    def lookup_by_account(self, account_id) -> Optional[OnlineUser]:
        account_id = str(account_id)
        for user in self._by_connection.values():
            if user.account_id == account_id:
                return user
        return None

    def unregister(self, connection_id: str) -> Optional[OnlineUser]:
        user = self._by_connection.pop(connection_id, None)
        if user is not None and not user.is_guest:
            # A newer connection for the same account keeps its marker
            if self.lookup_by_account(user.account_id) is None:
                self._accounts.clear_connection(user.account_id)
        return user

    def online_account_ids(self) -> Set[str]:
        return {u.account_id for u in self._by_connection.values() if not u.is_guest}

    def __len__(self) -> int:
        return len(self._by_connection)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._by_connection
