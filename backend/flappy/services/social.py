from typing import List, Optional

from sqlalchemy import or_

from flappy import db
from flappy.models import Friendship, User
from flappy.presence import OnlineUser, PresenceRegistry
from flappy.services.accounts import parse_account_pk


class SocialGraph:
    """Friend edges. Either side may add; both sides see each other.

    Edges are not deduplicated: adding the same friend twice stores two
    rows and ``list_friends`` reports both.
    """

    def list_friends(self, account_id) -> List[User]:
        pk = parse_account_pk(account_id)
        if pk is None:
            return []
        edges = (Friendship.query
                 .filter(or_(Friendship.requester_id == pk, Friendship.recipient_id == pk))
                 .order_by(Friendship.id)
                 .all())
        return [edge.other_side(pk) for edge in edges]

    def add_friend(self, requester: OnlineUser, recipient_id) -> Optional[User]:
        if requester is None or requester.is_guest:
            return None
        if str(recipient_id) == requester.account_id:
            return None
        pk = parse_account_pk(recipient_id)
        requester_pk = parse_account_pk(requester.account_id)
        if pk is None or requester_pk is None:
            return None
        recipient = db.session.get(User, pk)
        if recipient is None:
            return None
        db.session.add(Friendship(requester_id=requester_pk, recipient_id=pk, status='accepted'))
        db.session.commit()
        return recipient

    def friends_payload(self, user: OnlineUser, presence: PresenceRegistry) -> Optional[dict]:
        """Build the ``friendsList`` push for a registered account."""
        if user is None or user.is_guest:
            return None
        friends = self.list_friends(user.account_id)
        online = presence.online_account_ids()
        return {
            'friends': [f.to_dict() for f in friends],
            'onlineFriendIds': sorted({str(f.id) for f in friends if str(f.id) in online}),
        }
