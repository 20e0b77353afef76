from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
import uuid
from scoreboard import db
from scoreboard.models import User, commit_session
from scoreboard.services import users as user_service

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the ScoreBoard server!'})


@main.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password')
    if not username or not password:
        return jsonify({'error': 'Missing username or password'}), 400

    check = user_service.validate_username(username)
    if not check.is_valid or not check.is_available:
        return jsonify({'error': check.message, 'suggestions': check.suggestions}), 400

    user = User(username=username, email=(data.get('email') or '').strip())
    user.set_password(password)
    db.session.add(user)
    commit_session('register', username=username)
    login_user(user, remember=True)
    current_app.logger.info(f"[register] user={user.id}")
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    user = User.query.filter(db.func.lower(User.username) == username.lower()).first() if username else None
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify({'success': True, 'user': user.to_dict()})
    return jsonify({'error': 'Invalid username or password'}), 401


@main.route('/guest', methods=['POST'])
def guest_login():
    """Create a guest identity so people can play without an account."""
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    if username:
        check = user_service.validate_username(username)
        if not check.is_valid or not check.is_available:
            return jsonify({'error': check.message, 'suggestions': check.suggestions}), 400
    else:
        username = f"Guest{uuid.uuid4().hex[:6]}"

    user = User(id=f"guest_{uuid.uuid4()}", username=username, is_guest=True)
    db.session.add(user)
    commit_session('guest-login', username=username)
    login_user(user, remember=True)
    current_app.logger.info(f"[guest-login] user={user.id}")
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@main.route('/convert', methods=['POST'])
@login_required
def convert_guest():
    """Turn the current guest into a regular account, keeping its id and games."""
    if not current_user.is_guest:
        return jsonify({'error': 'Only guest accounts can be converted'}), 400
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip()
    password = data.get('password')
    if not email or not password:
        return jsonify({'error': 'Email and password are required'}), 400
    username = (data.get('username') or '').strip()
    if username and username != current_user.username:
        check = user_service.validate_username(username, exclude_user_id=current_user.id)
        if not check.is_valid or not check.is_available:
            return jsonify({'error': check.message, 'suggestions': check.suggestions}), 400
        current_user.username = username
    current_user.email = email
    current_user.set_password(password)
    current_user.is_guest = False
    commit_session('guest-convert', user=current_user.id)
    current_app.logger.info(f"[guest-convert] user={current_user.id}")
    return jsonify({'success': True, 'user': current_user.to_dict()})


@main.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    if not current_user.is_authenticated:
        return jsonify({'success': False}), 401
    return jsonify({'success': True, 'user': current_user.to_dict()})


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@main.route('/users', methods=['GET'])
@login_required
def list_users():
    ids = request.args.getlist('id')
    query = User.query
    if ids:
        query = query.filter(User.id.in_(ids))
    return jsonify([u.to_dict() for u in query.order_by(User.username).all()])


@main.route('/users/<string:user_id>', methods=['GET'])
@login_required
def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify(user.to_dict())


@main.route('/users/me', methods=['PUT'])
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    if 'username' in data:
        username = (data.get('username') or '').strip()
        check = user_service.validate_username(username, exclude_user_id=current_user.id)
        if not check.is_valid or not check.is_available:
            return jsonify({'error': check.message, 'suggestions': check.suggestions}), 400
        current_user.username = username
    if 'email' in data:
        current_user.email = (data.get('email') or '').strip()
    commit_session('profile-update', user=current_user.id)
    return jsonify(current_user.to_dict())


@main.route('/users/validate-username', methods=['POST'])
def validate_username():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    exclude = current_user.id if current_user.is_authenticated else None
    if data.get('format_only'):
        return jsonify(user_service.validate_format(username).to_dict())
    return jsonify(user_service.validate_username(username, exclude_user_id=exclude).to_dict())
