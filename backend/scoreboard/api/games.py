from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from scoreboard.errors import InvalidRequest
from scoreboard.services.games import lifecycle
from scoreboard.socketio_events import broadcast_game_update


games = Blueprint('games', __name__)


def _code_length() -> int:
    return int(current_app.config.get('JOIN_CODE_LENGTH', 6))


def _game_payload(game, **extra):
    payload = game.to_dict(_code_length())
    payload.update(extra)
    return payload


def _body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRequest('Request body must be a JSON object')
    return data


@games.route('/create', methods=['POST'])
@login_required
def create_game():
    data = _body()
    game = lifecycle.create_game(current_user, data)
    return jsonify({
        'message': 'New game created!',
        'game': _game_payload(game),
        'game_code': game.join_code(_code_length()),
    }), 201


@games.route('/mine', methods=['GET'])
@login_required
def my_games():
    status = request.args.get('status')
    found = lifecycle.games_for_user(current_user.id)
    if status:
        found = [g for g in found if g.game_status == status]
    return jsonify([_game_payload(g) for g in found])


@games.route('/join', methods=['POST'])
@login_required
def join_game():
    data = _body()
    game_code = data.get('game_code')
    if not game_code:
        return jsonify({'error': 'Game code is required'}), 400
    game = lifecycle.find_game_by_code(game_code)
    game, outcome = lifecycle.join_game(game, current_user, data.get('display_name'), data.get('parent_player'))
    if outcome != 'already_joined':
        broadcast_game_update(game.id)
    return jsonify({'message': outcome, 'game': _game_payload(game)})


@games.route('/code/<string:code>', methods=['GET'])
@login_required
def game_by_code(code):
    game = lifecycle.find_game_by_code(code)
    return jsonify(_game_payload(game))


@games.route('/<string:game_id>', methods=['GET'])
@login_required
def get_game(game_id):
    game = lifecycle.get_game(game_id)
    return jsonify(_game_payload(game, is_host=lifecycle.is_host(game, current_user.id)))


@games.route('/<string:game_id>', methods=['PATCH'])
@login_required
def update_game(game_id):
    game = lifecycle.get_game(game_id)
    game = lifecycle.update_game(game, current_user.id, _body())
    broadcast_game_update(game.id)
    return jsonify(_game_payload(game))


@games.route('/<string:game_id>', methods=['DELETE'])
@login_required
def delete_game(game_id):
    lifecycle.delete_game(lifecycle.get_game(game_id), current_user.id)
    broadcast_game_update(game_id, event='game_deleted')
    return jsonify({'message': 'Game deleted'})


@games.route('/<string:game_id>/scores', methods=['GET'])
@login_required
def get_scores(game_id):
    game = lifecycle.get_game(game_id)
    return jsonify(lifecycle.scoreboard_state(game))


@games.route('/<string:game_id>/scores', methods=['POST'])
@login_required
def save_scores(game_id):
    game = lifecycle.get_game(game_id)
    editor, diff = lifecycle.save_scores(game, current_user.id, _body().get('scores'))
    broadcast_game_update(game.id)
    state = lifecycle.scoreboard_state(game, editor)
    state['saved'] = len(diff.upserts)
    state['deleted'] = len(diff.deletes)
    return jsonify(state)


@games.route('/<string:game_id>/rounds', methods=['POST'])
@login_required
def add_round(game_id):
    game = lifecycle.add_round(lifecycle.get_game(game_id), current_user.id)
    broadcast_game_update(game.id)
    return jsonify(lifecycle.scoreboard_state(game))


@games.route('/<string:game_id>/rounds', methods=['DELETE'])
@login_required
def remove_last_round(game_id):
    game = lifecycle.remove_round(lifecycle.get_game(game_id), current_user.id)
    broadcast_game_update(game.id)
    return jsonify(lifecycle.scoreboard_state(game))


@games.route('/<string:game_id>/rounds/<int:round_number>', methods=['DELETE'])
@login_required
def delete_round(game_id, round_number):
    game = lifecycle.delete_round(lifecycle.get_game(game_id), current_user.id, round_number)
    broadcast_game_update(game.id)
    return jsonify(lifecycle.scoreboard_state(game))


@games.route('/<string:game_id>/players/<path:player_id>', methods=['DELETE'])
@login_required
def delete_player(game_id, player_id):
    game = lifecycle.delete_player(lifecycle.get_game(game_id), current_user.id, player_id)
    broadcast_game_update(game.id)
    return jsonify(lifecycle.scoreboard_state(game))


@games.route('/<string:game_id>/players/rename', methods=['POST'])
@login_required
def rename_player(game_id):
    data = _body()
    old = data.get('player_id')
    new = data.get('new_name')
    if not old or not new:
        return jsonify({'error': 'player_id and new_name are required'}), 400
    game = lifecycle.rename_player(lifecycle.get_game(game_id), current_user.id, old, new)
    broadcast_game_update(game.id)
    return jsonify(lifecycle.scoreboard_state(game))


@games.route('/<string:game_id>/complete', methods=['POST'])
@login_required
def complete_game(game_id):
    game = lifecycle.get_game(game_id)
    winner = lifecycle.complete_game(game, current_user.id)
    broadcast_game_update(game.id)
    return jsonify({'game': _game_payload(game), 'winner': winner})


@games.route('/<string:game_id>/winner', methods=['GET'])
@login_required
def get_winner(game_id):
    game = lifecycle.get_game(game_id)
    return jsonify(lifecycle.winner_info(game))
