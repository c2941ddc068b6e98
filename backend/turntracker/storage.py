"""Persistence for sessions, player statuses and push subscriptions.

TurnService only talks to the TurnStore interface. SqlAlchemyStore is the
durable backend used by the web app; MemoryStore keeps everything in-process
and is used for tests and throwaway runs.
"""

import itertools
import logging
import threading

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from turntracker.models import GameSession, PlayerStatus, Subscription, READY
from turntracker.services.sessions.errors import ConflictError

logger = logging.getLogger(__name__)


class TurnStore:
    """Repository interface consumed by TurnService."""

    def create_session(self, name, code, player1_steam_id, player2_steam_id, current_turn, initial_statuses, now):
        """Persist a session together with its initial PlayerStatus rows.

        ``initial_statuses`` maps steam id -> status. Raises ConflictError if
        the code is taken.
        """
        raise NotImplementedError

    def get_session(self, session_id):
        raise NotImplementedError

    def get_session_by_code(self, code):
        raise NotImplementedError

    def get_session_with_statuses(self, session_id):
        """Return (session, player1 status, player2 status) read as one snapshot.

        Returns None when the session does not exist. A status is None when
        that player has no row.
        """
        raise NotImplementedError

    def create_status(self, session_id, steam_id, status, now):
        raise NotImplementedError

    def get_status(self, session_id, steam_id):
        raise NotImplementedError

    def update_status(self, session_id, steam_id, status, message, replace_message, now):
        """Overwrite a status row. Returns None when the row does not exist."""
        raise NotImplementedError

    def complete_turn(self, session_id, steam_id, expected_turn, next_turn, now):
        """Flip the turn and stamp the completer's row as one unit.

        The flip only happens while the session still holds ``expected_turn``.
        Returns False, with nothing written, when another request got there
        first.
        """
        raise NotImplementedError

    def save_subscription(self, steam_id, endpoint, p256dh, auth, now):
        raise NotImplementedError

    def get_subscription(self, steam_id):
        raise NotImplementedError


class SqlAlchemyStore(TurnStore):
    def __init__(self, db):
        self.db = db

    def create_session(self, name, code, player1_steam_id, player2_steam_id, current_turn, initial_statuses, now):
        session = GameSession(
            name=name,
            code=code,
            player1_steam_id=player1_steam_id,
            player2_steam_id=player2_steam_id,
            current_turn=current_turn,
            created_at=now,
        )
        self.db.session.add(session)
        try:
            # Flush to get the id before the status rows reference it
            self.db.session.flush()
            for steam_id, status in initial_statuses.items():
                self.db.session.add(PlayerStatus(
                    game_session_id=session.id,
                    steam_id=steam_id,
                    status=status,
                    updated_at=now,
                ))
            self.db.session.commit()
        except IntegrityError:
            self.db.session.rollback()
            raise ConflictError('Game code already in use')
        return session

    def get_session(self, session_id):
        return self.db.session.get(GameSession, session_id)

    def get_session_by_code(self, code):
        return GameSession.query.filter_by(code=code).first()

    def get_session_with_statuses(self, session_id):
        session = self.get_session(session_id)
        if session is None:
            return None
        return (
            session,
            self.get_status(session_id, session.player1_steam_id),
            self.get_status(session_id, session.player2_steam_id),
        )

    def create_status(self, session_id, steam_id, status, now):
        row = PlayerStatus(game_session_id=session_id, steam_id=steam_id, status=status, updated_at=now)
        self.db.session.add(row)
        try:
            self.db.session.commit()
        except IntegrityError:
            # A concurrent join created the row first
            self.db.session.rollback()
            return self.get_status(session_id, steam_id)
        return row

    def get_status(self, session_id, steam_id):
        return PlayerStatus.query.filter_by(game_session_id=session_id, steam_id=steam_id).first()

    def update_status(self, session_id, steam_id, status, message, replace_message, now):
        row = self.get_status(session_id, steam_id)
        if row is None:
            return None
        row.status = status
        if replace_message:
            row.message = message
        row.updated_at = now
        self.db.session.add(row)
        self.db.session.commit()
        return row

    def complete_turn(self, session_id, steam_id, expected_turn, next_turn, now):
        result = self.db.session.execute(
            update(GameSession)
            .where(GameSession.id == session_id, GameSession.current_turn == expected_turn)
            .values(current_turn=next_turn)
        )
        if result.rowcount != 1:
            self.db.session.rollback()
            logger.info(f"[turn-race] session={session_id} no longer on {expected_turn}")
            return False
        row = self.get_status(session_id, steam_id)
        if row is None:
            row = PlayerStatus(game_session_id=session_id, steam_id=steam_id, status=READY)
        row.last_turn_completed = now
        row.updated_at = now
        self.db.session.add(row)
        self.db.session.commit()
        return True

    def save_subscription(self, steam_id, endpoint, p256dh, auth, now):
        sub = Subscription.query.filter_by(steam_id=steam_id).first()
        if sub is None:
            sub = Subscription(steam_id=steam_id)
        sub.endpoint = endpoint
        sub.p256dh = p256dh
        sub.auth = auth
        sub.created_at = now
        self.db.session.add(sub)
        self.db.session.commit()
        return sub

    def get_subscription(self, steam_id):
        return Subscription.query.filter_by(steam_id=steam_id).first()


def _detached_copy(obj):
    if obj is None:
        return None
    return type(obj)(**{col.key: getattr(obj, col.key) for col in obj.__table__.columns})


class MemoryStore(TurnStore):
    """In-process store. Returns copies so callers never share rows."""

    def __init__(self):
        self._lock = threading.Lock()
        self._session_locks = {}
        self._sessions = {}
        self._codes = {}
        self._statuses = {}
        self._subscriptions = {}
        self._session_ids = itertools.count(1)
        self._status_ids = itertools.count(1)
        self._subscription_ids = itertools.count(1)

    def _lock_for(self, session_id):
        with self._lock:
            return self._session_locks.setdefault(session_id, threading.Lock())

    def _new_status(self, session_id, steam_id, status, now):
        return PlayerStatus(
            id=next(self._status_ids),
            game_session_id=session_id,
            steam_id=steam_id,
            status=status,
            message=None,
            last_turn_completed=None,
            updated_at=now,
        )

    def create_session(self, name, code, player1_steam_id, player2_steam_id, current_turn, initial_statuses, now):
        with self._lock:
            if code in self._codes:
                raise ConflictError('Game code already in use')
            session = GameSession(
                id=next(self._session_ids),
                name=name,
                code=code,
                player1_steam_id=player1_steam_id,
                player2_steam_id=player2_steam_id,
                current_turn=current_turn,
                created_at=now,
            )
            self._sessions[session.id] = session
            self._codes[code] = session.id
            for steam_id, status in initial_statuses.items():
                self._statuses[(session.id, steam_id)] = self._new_status(session.id, steam_id, status, now)
            return _detached_copy(session)

    def get_session(self, session_id):
        return _detached_copy(self._sessions.get(session_id))

    def get_session_by_code(self, code):
        session_id = self._codes.get(code)
        if session_id is None:
            return None
        return self.get_session(session_id)

    def get_session_with_statuses(self, session_id):
        # Same lock as complete_turn so the turn and its stamp are seen together
        with self._lock_for(session_id):
            session = self._sessions.get(session_id)
            if session is None:
                return None
            return (
                _detached_copy(session),
                _detached_copy(self._statuses.get((session_id, session.player1_steam_id))),
                _detached_copy(self._statuses.get((session_id, session.player2_steam_id))),
            )

    def create_status(self, session_id, steam_id, status, now):
        with self._lock_for(session_id):
            key = (session_id, steam_id)
            if key not in self._statuses:
                self._statuses[key] = self._new_status(session_id, steam_id, status, now)
            return _detached_copy(self._statuses[key])

    def get_status(self, session_id, steam_id):
        return _detached_copy(self._statuses.get((session_id, steam_id)))

    def update_status(self, session_id, steam_id, status, message, replace_message, now):
        with self._lock_for(session_id):
            row = self._statuses.get((session_id, steam_id))
            if row is None:
                return None
            row.status = status
            if replace_message:
                row.message = message
            row.updated_at = now
            return _detached_copy(row)

    def complete_turn(self, session_id, steam_id, expected_turn, next_turn, now):
        with self._lock_for(session_id):
            session = self._sessions.get(session_id)
            if session is None or session.current_turn != expected_turn:
                logger.info(f"[turn-race] session={session_id} no longer on {expected_turn}")
                return False
            key = (session_id, steam_id)
            row = self._statuses.get(key)
            if row is None:
                row = self._statuses[key] = self._new_status(session_id, steam_id, READY, now)
            row.last_turn_completed = now
            row.updated_at = now
            session.current_turn = next_turn
            return True

    def save_subscription(self, steam_id, endpoint, p256dh, auth, now):
        sub = Subscription(
            id=next(self._subscription_ids),
            steam_id=steam_id,
            endpoint=endpoint,
            p256dh=p256dh,
            auth=auth,
            created_at=now,
        )
        with self._lock:
            self._subscriptions[steam_id] = sub
        return _detached_copy(sub)

    def get_subscription(self, steam_id):
        return _detached_copy(self._subscriptions.get(steam_id))
