from datetime import datetime, timezone

from turntracker import db

PLAYER1 = 'player1'
PLAYER2 = 'player2'

READY = 'ready'
BUSY = 'busy'
UNAVAILABLE = 'unavailable'
STATUSES = (READY, BUSY, UNAVAILABLE)


def utcnow():
    return datetime.now(timezone.utc)


def isoformat(value):
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def other_turn(turn):
    return PLAYER2 if turn == PLAYER1 else PLAYER1


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    code = db.Column(db.String(6), unique=True, nullable=False, index=True)
    player1_steam_id = db.Column(db.String(64), nullable=False)
    player2_steam_id = db.Column(db.String(64), nullable=False)
    current_turn = db.Column(db.String(16), nullable=False, default=PLAYER1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def is_member(self, steam_id):
        return steam_id in (self.player1_steam_id, self.player2_steam_id)

    def steam_id_for(self, slot):
        return self.player1_steam_id if slot == PLAYER1 else self.player2_steam_id

    def opponent_of(self, steam_id):
        return self.player2_steam_id if steam_id == self.player1_steam_id else self.player1_steam_id

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'player1SteamId': self.player1_steam_id,
            'player2SteamId': self.player2_steam_id,
            'currentTurn': self.current_turn,
            'createdAt': isoformat(self.created_at),
        }

    def to_dict_with_players(self, player1_status, player2_status):
        payload = self.to_dict()
        payload['player1Status'] = player1_status.to_dict() if player1_status else None
        payload['player2Status'] = player2_status.to_dict() if player2_status else None
        return payload


class PlayerStatus(db.Model):
    __tablename__ = 'player_status'
    __table_args__ = (
        db.UniqueConstraint('game_session_id', 'steam_id', name='uq_player_status_session_steam'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    steam_id = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=READY)
    message = db.Column(db.Text, nullable=True)
    last_turn_completed = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'gameSessionId': self.game_session_id,
            'steamId': self.steam_id,
            'status': self.status,
            'message': self.message,
            'lastTurnCompleted': isoformat(self.last_turn_completed),
            'updatedAt': isoformat(self.updated_at),
        }


class Subscription(db.Model):
    __tablename__ = 'subscription'
    id = db.Column(db.Integer, primary_key=True)
    steam_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    endpoint = db.Column(db.Text, nullable=False)
    p256dh = db.Column(db.String(256), nullable=False)
    auth = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_push_info(self):
        """Shape expected by the Web Push client."""
        return {
            'endpoint': self.endpoint,
            'keys': {'p256dh': self.p256dh, 'auth': self.auth},
        }
