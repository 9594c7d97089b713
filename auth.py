from flask import Blueprint, request, jsonify
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import LoginManager, login_user, logout_user, current_user, login_required
from safe_db import (
    get_user_by_id,
    get_user_by_username,
    create_user,
    update_user_profile,
    save_push_subscription
)
from cloudinary_utils import upload_avatar
from services import get_services

auth_bp = Blueprint('auth', __name__)
login_manager = LoginManager()

def init_auth(flask_app):
    login_manager.init_app(flask_app)

@login_manager.user_loader
def load_user(user_id):
    return get_user_by_id(user_id)

@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Not authenticated'}), 401

def _payload():
    return request.get_json(silent=True) or request.form.to_dict()

@auth_bp.route('/auth/register', methods=['POST'])
def register():
    data = _payload()
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        return jsonify({'error': 'Username and password required'}), 400
    if len(username) < 3:
        return jsonify({'error': 'Username must be at least 3 characters'}), 400
    if len(password) < 6:
        return jsonify({'error': 'Password must be at least 6 characters'}), 400
    if get_user_by_username(username):
        return jsonify({'error': 'Username already taken'}), 400

    user = create_user(username, generate_password_hash(password), email=data.get('email') or None)
    if user is None:
        return jsonify({'error': 'Registration failed'}), 500
    login_user(user)
    return jsonify({'success': True, 'user': user.to_dict()})

@auth_bp.route('/auth/login', methods=['POST'])
def login():
    data = _payload()
    user = get_user_by_username(data.get('username'))
    if user is None:
        return jsonify({'error': 'Invalid username or password'}), 401
    if not user.password_hash:
        return jsonify({'error': 'This account has no password, use its linked login'}), 401
    if not check_password_hash(user.password_hash, data.get('password') or ''):
        return jsonify({'error': 'Invalid username or password'}), 401
    login_user(user, remember=bool(data.get('remember')))
    return jsonify({'success': True, 'user': user.to_dict()})

@auth_bp.route('/auth/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})

@auth_bp.route('/api/user')
def me():
    if current_user.is_authenticated:
        return jsonify(current_user.to_dict())
    return jsonify(None)

@auth_bp.route('/api/auth/providers')
def providers():
    return jsonify({'local': True, 'external': False})

@auth_bp.route('/api/profile', methods=['POST'])
@login_required
def update_profile():
    data = _payload()
    password = data.get('password')
    if password and len(password) < 6:
        return jsonify({'error': 'Password must be at least 6 characters'}), 400
    hashed_pw = generate_password_hash(password) if password else None

    avatar_url = None
    photo = request.files.get('avatar')
    if photo:
        if not get_services().avatars_enabled:
            return jsonify({'error': 'Avatar upload is not configured'}), 400
        avatar_url = upload_avatar(photo, current_user.id)

    if update_user_profile(current_user, email=data.get('email'), password_hash=hashed_pw, avatar_url=avatar_url):
        return jsonify({'success': True, 'user': current_user.to_dict()})
    return jsonify({'error': 'Failed to update profile'}), 500

@auth_bp.route('/api/vapid-public-key')
def vapid_public_key():
    return jsonify({'publicKey': get_services().push.public_key})

@auth_bp.route('/api/subscribe', methods=['POST'])
@login_required
def subscribe_push():
    subscription = request.get_json(silent=True) or {}
    endpoint = subscription.get('endpoint')
    keys = subscription.get('keys')
    if not endpoint or not isinstance(keys, dict):
        return jsonify({'error': 'Subscription needs endpoint and keys', 'code': 'VALIDATION'}), 400
    if save_push_subscription(current_user, endpoint, keys):
        return jsonify({'success': True})
    return jsonify({'success': False, 'error': 'Failed to save push subscription'}), 500
