"""
Session authentication and role guards shared by every blueprint.
"""

from functools import wraps
from flask import jsonify, session, g

from extensions import db_session
from models import Agent


def login_user(agent: Agent) -> None:
    session.clear()
    session['user_id'] = agent.id
    session['role'] = agent.role


def logout_user() -> None:
    session.clear()


def current_user() -> Agent:
    """The authenticated agent for this request (set by login_required)."""
    return g.current_user


def is_admin() -> bool:
    return g.current_user.role == "admin"


# ==================== AUTHENTICATION DECORATORS ====================

def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({"error": "Not authorized, no session"}), 401

        agent = db_session.get(Agent, session['user_id'])
        if not agent or not agent.is_active:
            session.clear()
            return jsonify({"error": "Not authorized, user not found"}), 401

        g.current_user = agent
        return f(*args, **kwargs)
    return decorated_function


def roles_required(*roles):
    """Use below login_required: @login_required then @roles_required('admin')."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = g.get('current_user')
            if user is None or user.role not in roles:
                return jsonify({"error": "Forbidden"}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = roles_required("admin")
