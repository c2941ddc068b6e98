from flask import Blueprint, jsonify, request, current_app

from turntracker import get_turn_service
from turntracker.services.sessions.errors import ValidationError
from turntracker.services.sessions.turns import MISSING


games = Blueprint('games', __name__)

# Ids are stored as signed 64-bit integers
MAX_ID = 2 ** 63 - 1


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def require_int(data: dict, field: str) -> int:
    value = data.get(field)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{field} must be an integer')
    if not 0 < value <= MAX_ID:
        raise ValidationError('Invalid game ID')
    return value


@games.route('/game', methods=['POST'])
def create_game():
    data = json_body()
    # currentTurn is accepted for client compatibility; new games always start with player1
    session = get_turn_service().create_session(
        name=data.get('name'),
        code=data.get('code'),
        player1_steam_id=data.get('player1SteamId'),
        player2_steam_id=data.get('player2SteamId'),
    )
    return jsonify(session.to_dict()), 201


@games.route('/game/join', methods=['POST'])
def join_game():
    data = json_body()
    session, status = get_turn_service().join_session(data.get('code'), data.get('steamId'))
    return jsonify({'gameSession': session, 'playerStatus': status.to_dict()})


@games.route('/game/<game_id>', methods=['GET'])
def get_game(game_id):
    try:
        session_id = int(game_id)
    except ValueError:
        raise ValidationError('Invalid game ID')
    if not 0 < session_id <= MAX_ID:
        raise ValidationError('Invalid game ID')
    return jsonify(get_turn_service().get_session(session_id))


@games.route('/game/code/<string:code>', methods=['GET'])
def get_game_by_code(code):
    return jsonify(get_turn_service().get_session_by_code(code))


@games.route('/generate-code', methods=['GET'])
def generate_code():
    return jsonify({'code': get_turn_service().generate_code()})


@games.route('/status', methods=['POST'])
def update_status():
    data = json_body()
    status = get_turn_service().update_status(
        require_int(data, 'gameSessionId'),
        data.get('steamId'),
        data.get('status'),
        message=data['message'] if 'message' in data else MISSING,
    )
    return jsonify(status.to_dict())


@games.route('/complete-turn', methods=['POST'])
def complete_turn():
    data = json_body()
    session = get_turn_service().complete_turn(require_int(data, 'gameSessionId'), data.get('steamId'))
    current_app.logger.info(f"[complete-turn] game={session['id']} now={session['currentTurn']}")
    return jsonify(session)
