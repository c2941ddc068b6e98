"""Session lifecycle and the two-player turn hand-off.

A session's ``current_turn`` is either ``player1`` or ``player2``. The only
transition is a completed turn by the player holding it, which stamps that
player's ``last_turn_completed`` and hands the turn to the other slot. Status
changes are independent of the turn and only touch the caller's own row.
"""

import logging

from turntracker.models import (
    PLAYER1,
    READY,
    STATUSES,
    UNAVAILABLE,
    other_turn,
    utcnow,
)
from turntracker.services.notifications.push import NOTIFICATION_TITLE
from .codes import CODE_LENGTH, generate_code, is_valid_code, normalize_code
from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidTurnError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Sentinel for "message not supplied" so an explicit None can still clear it
MISSING = object()


def _require_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} is required')
    return value.strip()


class TurnService:
    def __init__(self, store, notifier):
        self.store = store
        self.notifier = notifier

    def generate_code(self) -> str:
        return generate_code()

    def create_session(self, name, code, player1_steam_id, player2_steam_id):
        name = _require_text(name, 'name')
        code = normalize_code(_require_text(code, 'code'))
        player1_steam_id = _require_text(player1_steam_id, 'player1SteamId')
        player2_steam_id = _require_text(player2_steam_id, 'player2SteamId')
        if not is_valid_code(code):
            raise ValidationError('code must be 6 letters or digits')
        if player1_steam_id == player2_steam_id:
            raise ValidationError('player1SteamId and player2SteamId must differ')

        # The store re-checks under its own unique index
        if self.store.get_session_by_code(code) is not None:
            raise ConflictError('Game code already in use')

        session = self.store.create_session(
            name=name,
            code=code,
            player1_steam_id=player1_steam_id,
            player2_steam_id=player2_steam_id,
            current_turn=PLAYER1,
            # The creator is present; the invitee has not confirmed yet
            initial_statuses={player1_steam_id: READY, player2_steam_id: UNAVAILABLE},
            now=utcnow(),
        )
        logger.info(f"[create] session={session.id} code={session.code}")
        return session

    def _with_players(self, game_session_id):
        snapshot = self.store.get_session_with_statuses(game_session_id)
        if snapshot is None:
            raise NotFoundError('Game session not found')
        session, player1_status, player2_status = snapshot
        return session.to_dict_with_players(player1_status, player2_status)

    def get_session(self, game_session_id):
        return self._with_players(game_session_id)

    def get_session_by_code(self, code):
        session = self.store.get_session_by_code(normalize_code(code))
        if session is None:
            raise NotFoundError('Game session not found')
        return self._with_players(session.id)

    def join_session(self, code, steam_id):
        """Return (session with players, the caller's status), creating the status on first join."""
        code = normalize_code(_require_text(code, 'code'))
        steam_id = _require_text(steam_id, 'steamId')
        if len(code) != CODE_LENGTH:
            raise ValidationError('code must be 6 characters')

        session = self.store.get_session_by_code(code)
        if session is None:
            raise NotFoundError('Game session not found')
        if not session.is_member(steam_id):
            raise ForbiddenError('Not authorized to join this game')

        status = self.store.get_status(session.id, steam_id)
        if status is None:
            status = self.store.create_status(session.id, steam_id, READY, utcnow())
            logger.info(f"[join] session={session.id} steam_id={steam_id} status created")
        return self._with_players(session.id), status

    def update_status(self, game_session_id, steam_id, status, message=MISSING):
        steam_id = _require_text(steam_id, 'steamId')
        if status not in STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(STATUSES)}")
        if message is not MISSING and message is not None and not isinstance(message, str):
            raise ValidationError('message must be a string')

        session = self.store.get_session(game_session_id)
        if session is None:
            raise NotFoundError('Game session not found')
        if not session.is_member(steam_id):
            raise ForbiddenError('Not authorized to update status in this game')

        row = self.store.update_status(
            session.id,
            steam_id,
            status,
            message=None if message is MISSING else message,
            replace_message=message is not MISSING,
            now=utcnow(),
        )
        if row is None:
            raise NotFoundError('Player status not found')
        logger.info(f"[status] session={session.id} steam_id={steam_id} status={status}")

        self.notifier.notify(
            session.opponent_of(steam_id),
            title=NOTIFICATION_TITLE,
            body=f'Your opponent is {status}',
            tag='status-update',
            game_id=session.id,
        )
        return row

    def complete_turn(self, game_session_id, steam_id):
        steam_id = _require_text(steam_id, 'steamId')
        session = self.store.get_session(game_session_id)
        if session is None:
            raise NotFoundError('Game session not found')
        if session.steam_id_for(session.current_turn) != steam_id:
            raise InvalidTurnError("It's not your turn")

        current = session.current_turn
        next_turn = other_turn(current)
        if not self.store.complete_turn(session.id, steam_id, current, next_turn, utcnow()):
            # Lost a race with a concurrent completion of the same turn
            raise InvalidTurnError("It's not your turn")
        logger.info(f"[turn] session={session.id} {current} -> {next_turn}")

        self.notifier.notify(
            session.opponent_of(steam_id),
            title=NOTIFICATION_TITLE,
            body="Your opponent has completed their turn. It's your turn now!",
            tag='turn-complete',
            game_id=session.id,
        )
        return self.get_session(session.id)

    def save_subscription(self, steam_id, endpoint, p256dh, auth):
        steam_id = _require_text(steam_id, 'steamId')
        endpoint = _require_text(endpoint, 'endpoint')
        p256dh = _require_text(p256dh, 'p256dh')
        auth = _require_text(auth, 'auth')
        sub = self.store.save_subscription(steam_id, endpoint, p256dh, auth, utcnow())
        logger.info(f"[subscribe] steam_id={steam_id}")
        return sub
