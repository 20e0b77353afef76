from scoreboard import db, bcrypt
from scoreboard.errors import Conflict, InvalidRequest
from flask import current_app
from flask_login import UserMixin
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime, timezone
import json
import uuid

GAME_STATUSES = ('ACTIVE', 'COMPLETED', 'CANCELLED')
WIN_CONDITIONS = ('HIGHEST_SCORE', 'LOWEST_SCORE')


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _isoformat(value):
    return value.isoformat() + 'Z' if value else None


def commit_session(tag, **context):
    """Commit the session; database failures roll back and become JSON errors."""
    detail = ' '.join(f'{k}={v}' for k, v in context.items())
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.exception(f"[{tag}] {detail} commit conflict")
        raise Conflict('This change conflicts with existing data. Please try again.')
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"[{tag}] {detail} commit failed")
        raise InvalidRequest('Could not save changes')


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False, default='')
    password_hash = db.Column(db.String(256), nullable=True)
    is_guest = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not self.password_hash:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'is_guest': self.is_guest,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        }


def generate_game_id(code_length=6):
    """Generate a game id whose leading characters are a unique join code."""
    while True:
        candidate = str(uuid.uuid4())
        prefix = candidate[:code_length]
        if not Game.query.filter(Game.id.like(f'{prefix}%')).first():
            return candidate


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.String(36), primary_key=True)
    game_name = db.Column(db.String(128), nullable=True)
    host_user_id = db.Column(db.String(64), nullable=False, index=True)
    player_ids_json = db.Column('player_ids', db.Text, nullable=False, default='[]')
    rounds = db.Column(db.Integer, nullable=False, default=1)
    custom_rules = db.Column(db.Text, nullable=True)  # JSON list of {letter, value}
    final_scores_json = db.Column('final_scores', db.Text, nullable=False, default='[]')
    game_status = db.Column(db.String(16), nullable=False, default='ACTIVE')
    win_condition = db.Column(db.String(16), nullable=True, default='HIGHEST_SCORE')
    max_score = db.Column(db.Integer, nullable=True)
    max_rounds = db.Column(db.Integer, nullable=True)
    player_hierarchy = db.Column(db.Text, nullable=True)  # JSON parent -> [children]
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    # Score rows are deleted explicitly by the game services
    scores = db.relationship('Score', back_populates='game', lazy='dynamic')

    def __init__(self, code_length=6, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.id:
            self.id = generate_game_id(code_length)

    @property
    def player_ids(self):
        try:
            return list(json.loads(self.player_ids_json or '[]'))
        except ValueError:
            return []

    @player_ids.setter
    def player_ids(self, value):
        self.player_ids_json = json.dumps(list(value or []))

    @property
    def final_scores(self):
        try:
            return json.loads(self.final_scores_json or '[]')
        except ValueError:
            return []

    @final_scores.setter
    def final_scores(self, value):
        self.final_scores_json = json.dumps(list(value or []))

    def join_code(self, length=6):
        return self.id[:length].upper()

    def to_dict(self, code_length=6):
        from scoreboard.services.games import hierarchy
        return {
            'id': self.id,
            'join_code': self.join_code(code_length),
            'game_name': self.game_name,
            'host_user_id': self.host_user_id,
            'player_ids': self.player_ids,
            'rounds': self.rounds,
            'custom_rules': self.custom_rules,
            'final_scores': self.final_scores,
            'game_status': self.game_status,
            'win_condition': self.win_condition,
            'max_score': self.max_score,
            'max_rounds': self.max_rounds,
            'player_hierarchy': hierarchy.decode(self.player_hierarchy),
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        }


class Score(db.Model):
    __tablename__ = 'score'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'player_id', 'round_number', name='uq_score_game_player_round'),
    )
    id = db.Column(db.String(512), primary_key=True)
    game_id = db.Column(db.String(36), db.ForeignKey('game.id'), nullable=False, index=True)
    player_id = db.Column(db.String(256), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    score = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    game = db.relationship('Game', back_populates='scores')

    @staticmethod
    def make_id(game_id, player_id, round_number):
        return f'{game_id}-{player_id}-{round_number}'

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'player_id': self.player_id,
            'round_number': self.round_number,
            'score': self.score,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        }
