from datetime import datetime

from flask_login import UserMixin

from flappy import db


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    google_id = db.Column(db.String(128), unique=True, nullable=True, index=True)
    display_name = db.Column(db.String(128), nullable=False, default='')
    custom_username = db.Column(db.String(64), nullable=True)
    wins = db.Column(db.Integer, default=0, nullable=False)
    # Socket.IO sid of the account's live connection, cleared on disconnect
    socket_id = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def username(self):
        return self.custom_username or self.display_name

    def to_dict(self):
        return {
            'id': str(self.id),
            'displayName': self.display_name,
            'customUsername': self.username,
            'wins': self.wins or 0,
            'isGuest': False,
        }


class Friendship(db.Model):
    __tablename__ = 'friendship'
    id = db.Column(db.Integer, primary_key=True)
    requester_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    status = db.Column(db.String(16), default='accepted', nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    requester = db.relationship('User', foreign_keys=[requester_id])
    recipient = db.relationship('User', foreign_keys=[recipient_id])

    def other_side(self, account_id):
        """Return the user on the opposite end of this edge from ``account_id``."""
        return self.recipient if self.requester_id == account_id else self.requester


class Score(db.Model):
    __tablename__ = 'score'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    username = db.Column(db.String(128), nullable=False)
    score = db.Column(db.Integer, nullable=False, index=True)
    mode = db.Column(db.String(16), nullable=False, default='single')
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': str(self.user_id),
            'username': self.username,
            'score': self.score,
            'mode': self.mode,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
