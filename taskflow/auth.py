import re
import time

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from .db import UserDB, db, find_user_by_email
from .errors import DuplicateEmail, ValidationError
from .models import UserRole, new_id

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

FAILED_LOGINS = {}
LOGIN_RATE_LIMIT_WINDOW = 600
LOGIN_RATE_LIMIT_MAX = 5
MIN_PASSWORD_LENGTH = 6
EMAIL_RE = re.compile(r'^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$', re.IGNORECASE)


def _login_rate_limited(key):
    now = time.time()
    attempts = [t for t in FAILED_LOGINS.get(key, []) if now - t < LOGIN_RATE_LIMIT_WINDOW]
    FAILED_LOGINS[key] = attempts
    if len(attempts) >= LOGIN_RATE_LIMIT_MAX:
        return True, int(LOGIN_RATE_LIMIT_WINDOW - (now - attempts[0]))
    return False, 0


def _record_failed_login(key):
    FAILED_LOGINS.setdefault(key, []).append(time.time())


def identity(user):
    return {'id': user.id, 'name': user.name, 'email': user.email, 'role': user.role}


def authenticate(email, password):
    """Identity dict for valid credentials, None otherwise."""
    if not email or not password:
        return None
    user = find_user_by_email(email)
    if user and check_password_hash(user.password_hash, password):
        return identity(user)
    return None


def current_identity():
    if not current_user.is_authenticated:
        return None
    return identity(current_user)


def register_user(name, email, password):
    name = (name or '').strip()
    email = (email or '').strip().lower()
    password = password or ''
    if not name:
        raise ValidationError('name', 'Name is required.')
    if not email:
        raise ValidationError('email', 'Email is required.')
    if not password:
        raise ValidationError('password', 'Password is required.')
    if not EMAIL_RE.match(email):
        raise ValidationError('email', 'Invalid email format.')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError('password', f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')
    if find_user_by_email(email):
        raise DuplicateEmail(email)
    user = UserDB(id=new_id('user'), name=name, email=email,
                  password_hash=generate_password_hash(password), role=UserRole.USER.value)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info('registered user %s', user.id)
    return user


@auth_bp.post('/register')
def register():
    data = request.get_json(force=True, silent=True) or {}
    user = register_user(data.get('name'), data.get('email'), data.get('password'))
    return jsonify({'success': True, 'message': 'Registration complete.', 'user': user.to_dict()}), 201


@auth_bp.post('/login')
def login():
    data = request.get_json(force=True, silent=True) or {}
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''
    key = (request.remote_addr or 'unknown') + '|' + email.lower()
    limited, wait = _login_rate_limited(key)
    if limited:
        return jsonify({'success': False, 'error': f'Too many login attempts. Try again in ~{wait} seconds.'}), 429
    who = authenticate(email, password)
    if who is None:
        _record_failed_login(key)
        current_app.logger.info('failed login for %s', email.lower())
        return jsonify({'success': False, 'error': 'Invalid email or password.'}), 401
    FAILED_LOGINS.pop(key, None)
    login_user(db.session.get(UserDB, who['id']))
    return jsonify({'success': True, 'user': who})


@auth_bp.post('/logout')
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@auth_bp.get('/session')
def session_info():
    who = current_identity()
    if who is None:
        return jsonify({'success': False, 'error': 'Not authenticated'}), 401
    return jsonify({'success': True, 'user': who})
