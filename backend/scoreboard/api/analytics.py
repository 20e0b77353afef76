from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user
from scoreboard import db
from scoreboard.models import Game, Score, User
from scoreboard.services.games import analytics as svc
from scoreboard.services.games.lifecycle import games_for_user


analytics = Blueprint('analytics', __name__)


def _stats_for(user_id):
    found = games_for_user(user_id)
    if not found:
        return None
    rows = Score.query.filter(Score.game_id.in_([g.id for g in found])).all()
    return svc.player_stats(found, rows, user_id)


@analytics.route('/me', methods=['GET'])
@login_required
def my_stats():
    stats = _stats_for(current_user.id)
    return jsonify({'stats': stats.to_dict() if stats else None})


@analytics.route('/users/<string:user_id>', methods=['GET'])
@login_required
def user_stats(user_id):
    if not db.session.get(User, user_id):
        return jsonify({'error': 'User not found'}), 404
    stats = _stats_for(user_id)
    return jsonify({'stats': stats.to_dict() if stats else None})


@analytics.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    limit = int(current_app.config.get('LEADERBOARD_LIMIT', 100))
    rows = Score.query.all()
    all_games = Game.query.all()
    usernames = {u.id: u.username for u in User.query.all()}
    entries = svc.leaderboard(rows, all_games, usernames, limit=limit)
    current_app.logger.info(f"[leaderboard] entries={len(entries)}")
    return jsonify(entries)
