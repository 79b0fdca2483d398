"""
Travel Agency Back-Office - Agent & Auth Routes
Login/logout, agent management (admin) and per-agent booking performance.
"""

import logging
import re
from datetime import datetime, timezone
from flask import Blueprint, request, jsonify
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from auth import login_required, admin_required, current_user, is_admin, login_user, logout_user
from extensions import db_session
from models import Agent, Booking

logger = logging.getLogger(__name__)

agents_bp = Blueprint('agents', __name__, url_prefix='/api')

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


# ==================== HELPER FUNCTIONS ====================

def normalize_email(email):
    """Lowercase and trim email."""
    if not email:
        return ""
    return str(email).strip().lower()


def validate_registration(data):
    """Return a list of validation messages (empty when valid)."""
    errors = []
    name = data.get('name')
    if not isinstance(name, str) or len(name.strip()) < 2:
        errors.append('"name" must be at least 2 characters long')
    if not EMAIL_RE.match(normalize_email(data.get('email'))):
        errors.append('"email" must be a valid email')
    password = data.get('password')
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f'"password" must be at least {MIN_PASSWORD_LENGTH} characters long')
    return errors


def validate_login(data):
    errors = []
    if not EMAIL_RE.match(normalize_email(data.get('email'))):
        errors.append('"email" must be a valid email')
    password = data.get('password')
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f'"password" must be at least {MIN_PASSWORD_LENGTH} characters long')
    return errors


def parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).lower() == "true" if value is not None else False


def parse_iso_datetime(value):
    """ISO timestamp as naive UTC, matching how created_at is stored."""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _authenticate(agent_only: bool):
    data = request.get_json(silent=True) or {}
    errors = validate_login(data)
    if errors:
        return jsonify({"error": "Validation failed", "details": errors}), 400

    query = db_session.query(Agent).filter_by(email=normalize_email(data['email']))
    if agent_only:
        query = query.filter_by(role="agent")
    agent = query.first()

    if not agent or not agent.is_active or not agent.check_password(data['password']):
        return jsonify({"error": "Invalid email or password"}), 401

    login_user(agent)
    return jsonify({
        "message": "Login successful",
        "agent": agent.to_dict()
    })


# ==================== AUTH ROUTES ====================

@agents_bp.route('/auth/login', methods=['POST'])
def login():
    """Login any back-office account (admin or agent)."""
    return _authenticate(agent_only=False)


@agents_bp.route('/agent/login', methods=['POST'])
def login_agent():
    """Login restricted to role=agent accounts."""
    return _authenticate(agent_only=True)


@agents_bp.route('/auth/logout', methods=['POST'])
def logout():
    """Logout user"""
    logout_user()
    return jsonify({"message": "Logout successful"})


@agents_bp.route('/auth/me', methods=['GET'])
@agents_bp.route('/agent/me', methods=['GET'])
@login_required
def get_me():
    """Who am I"""
    user = current_user()
    return jsonify({
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role
    })


# ==================== AGENT ROUTES ====================

@agents_bp.route('/agent/register', methods=['POST'])
@login_required
@admin_required
def register_agent():
    """Create an agent, or update an existing one when upsert is requested."""
    data = request.get_json(silent=True) or {}
    errors = validate_registration(data)
    if errors:
        return jsonify({"error": "Validation failed", "details": errors}), 400

    upsert = parse_bool(data['upsert']) if 'upsert' in data else parse_bool(request.args.get('upsert'))
    email = normalize_email(data['email'])

    try:
        agent = db_session.query(Agent).filter_by(email=email).first()
        if agent:
            if not upsert:
                return jsonify({
                    "error": "Agent already exists",
                    "hint": "Send ?upsert=true (or body upsert: true) to update password/profile instead."
                }), 409

            agent.name = data['name'].strip()
            if 'phone' in data:
                agent.phone = data.get('phone')
            agent.set_password(data['password'])
            db_session.commit()
            return jsonify({**agent.to_dict(), "updated": True}), 200

        agent = Agent(
            name=data['name'].strip(),
            email=email,
            phone=data.get('phone') or None,
            role="agent"
        )
        agent.set_password(data['password'])
        db_session.add(agent)
        db_session.commit()
        return jsonify({**agent.to_dict(), "created": True}), 201

    except IntegrityError:
        db_session.rollback()
        return jsonify({"error": "Agent already exists"}), 409
    except Exception as e:
        db_session.rollback()
        logger.exception("Agent registration failed")
        return jsonify({"error": f"Failed to register agent: {str(e)}"}), 500


@agents_bp.route('/agent', methods=['GET'])
@login_required
@admin_required
def get_agents():
    """List all agents, newest first."""
    agents = db_session.query(Agent).order_by(Agent.created_at.desc()).all()
    return jsonify({
        "agents": [a.to_dict() for a in agents]
    })


@agents_bp.route('/agent/performance', methods=['GET'])
@login_required
@admin_required
def get_agent_performance():
    """Bookings and revenue per agent, optionally limited to a creation window."""
    try:
        start = parse_iso_datetime(request.args['start']) if request.args.get('start') else None
        end = parse_iso_datetime(request.args['end']) if request.args.get('end') else None
    except ValueError:
        return jsonify({"error": "start and end must be ISO dates"}), 400

    bookings_count = func.count(Booking.id)
    query = db_session.query(
        Booking.agent_id,
        bookings_count,
        func.coalesce(func.sum(Booking.amount), 0)
    )
    if start:
        query = query.filter(Booking.created_at >= start)
    if end:
        query = query.filter(Booking.created_at <= end)

    rows = query.group_by(Booking.agent_id).order_by(bookings_count.desc()).all()

    return jsonify({
        "ok": True,
        "data": [
            {"agent": agent_id, "bookings": count, "revenue": revenue}
            for agent_id, count, revenue in rows
        ]
    })


@agents_bp.route('/agent/<agent_id>', methods=['GET'])
@login_required
@admin_required
def get_agent(agent_id):
    """Get a specific agent."""
    agent = db_session.get(Agent, agent_id)
    if not agent:
        return jsonify({"error": "Agent not found"}), 404
    return jsonify(agent.to_dict())


@agents_bp.route('/agent/<agent_id>', methods=['PUT'])
@login_required
def update_agent(agent_id):
    """Update name, phone or password (self or admin)."""
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    password = data.get('password')

    if not name and 'phone' not in data and not password:
        return jsonify({"error": "At least one field (name, phone, password) is required to update"}), 400

    agent = db_session.get(Agent, agent_id)
    if not agent:
        return jsonify({"error": "Agent not found"}), 404

    if not is_admin() and current_user().id != agent_id:
        return jsonify({"error": "Forbidden"}), 403

    if password is not None and len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({"error": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"}), 400

    try:
        if name:
            agent.name = name
        if 'phone' in data:
            agent.phone = data['phone']
        if password:
            agent.set_password(password)
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Agent update failed for %s", agent_id)
        return jsonify({"error": f"Failed to update agent: {str(e)}"}), 500

    return jsonify(agent.to_dict())


@agents_bp.route('/agent/<agent_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_agent(agent_id):
    """Delete an agent. Their bookings and inquiries become unassigned."""
    agent = db_session.get(Agent, agent_id)
    if not agent:
        return jsonify({"error": "Agent not found"}), 404

    try:
        for booking in agent.bookings:
            booking.agent_id = None
        for inquiry in agent.assigned_inquiries:
            inquiry.assigned_agent_id = None
        db_session.delete(agent)
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Agent deletion failed for %s", agent_id)
        return jsonify({"error": f"Failed to delete agent: {str(e)}"}), 500

    return jsonify({"message": "Agent removed"})
