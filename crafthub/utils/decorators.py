# ------- crafthub/utils/decorators.py -------
from functools import wraps
from flask import jsonify, g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..extensions import db
from ..utils.api import api_error
from ..model.user import User

def _current_user():
    verify_jwt_in_request()
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    return db.session.get(User, uid) if uid else None

def current_user() -> User:
    """The account resolved by login_required / role_required for this request."""
    return g.current_user

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        u = _current_user()
        if not u:
            return jsonify(api_error("Unauthorized", {"kind": "authentication_error"})), 401
        g.current_user = u
        return fn(*args, **kwargs)
    return wrapper

def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = _current_user()
            if not u:
                return jsonify(api_error("Unauthorized", {"kind": "authentication_error"})), 401
            if u.role not in roles:
                return jsonify(api_error(message or "Forbidden", {"kind": "authorization_error"})), 403
            g.current_user = u
            return fn(*args, **kwargs)
        return wrapper
    return decorator
