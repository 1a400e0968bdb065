from datetime import datetime, timezone

from flask_login import UserMixin

from impostor import bcrypt, db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(64), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    @property
    def player_id(self):
        return str(self.id)

    def to_dict(self):
        return {
            'id': self.player_id,
            'username': self.username,
            'display_name': self.display_name,
        }


class RoomRecord(db.Model):
    """Persisted Room aggregate. ``version`` backs compare-and-swap saves."""

    __tablename__ = 'room'
    id = db.Column(db.String(36), primary_key=True)
    code = db.Column(db.String(4), unique=True, nullable=False, index=True)
    admin_id = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(32), nullable=False, default='lobby')  # lobby, collecting_words, playing, voting, finished
    language = db.Column(db.String(8), nullable=False, default='es')
    current_word = db.Column(db.String(128), nullable=True)
    impostor_ids = db.Column(db.Text, nullable=True)  # JSON-encoded list of player ids
    turn_order = db.Column(db.Text, nullable=True)  # JSON-encoded list of player ids
    current_round = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(128), nullable=True)
    win_condition = db.Column(db.String(32), nullable=True)
    submitted_words = db.Column(db.Text, nullable=True)  # JSON-encoded {player_id: word}
    requested_impostors = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    last_activity = db.Column(db.DateTime, nullable=False, default=_utcnow, index=True)
    version = db.Column(db.Integer, nullable=False, default=1)
    players = db.relationship(
        'RoomPlayerRecord',
        back_populates='room',
        order_by='RoomPlayerRecord.position',
        cascade='all, delete-orphan',
        passive_deletes=True,
    )


class RoomPlayerRecord(db.Model):
    __tablename__ = 'room_player'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(36), db.ForeignKey('room.id', ondelete='CASCADE'), nullable=False, index=True)
    # A player sits in at most one room at a time.
    user_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    position = db.Column(db.Integer, nullable=False)
    display_name = db.Column(db.String(64), nullable=False)
    is_connected = db.Column(db.Boolean, default=True, nullable=False)
    is_eliminated = db.Column(db.Boolean, default=False, nullable=False)
    has_voted = db.Column(db.Boolean, default=False, nullable=False)
    voted_for = db.Column(db.String(64), nullable=True)
    room = db.relationship('RoomRecord', back_populates='players')


class Category(db.Model):
    __tablename__ = 'category'
    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    words = db.relationship('Word', back_populates='category', lazy='dynamic')

    def to_dict(self):
        return {'id': self.slug, 'name': self.name}


class Word(db.Model):
    __tablename__ = 'word'
    id = db.Column(db.Integer, primary_key=True)
    word = db.Column(db.String(128), nullable=False)
    language = db.Column(db.String(8), nullable=False, default='es', index=True)
    approved = db.Column(db.Boolean, default=False, nullable=False, index=True)
    suggested_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    category_id = db.Column(db.Integer, db.ForeignKey('category.id'), nullable=False)
    category = db.relationship('Category', back_populates='words')

    def to_dict(self):
        return {
            'id': self.id,
            'word': self.word,
            'language': self.language,
            'approved': self.approved,
            'category_id': self.category.slug if self.category else None,
            'category_name': self.category.name if self.category else None,
            'suggested_by': self.suggested_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
