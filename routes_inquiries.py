"""
Travel Agency Back-Office - Inquiry Routes
Customer inquiries: intake (public and authenticated), assignment,
agent responses and the signed webhook relay.
"""

import hmac
import json
import logging
import os
from flask import Blueprint, request, jsonify

from auth import login_required, admin_required, current_user, is_admin
from extensions import db_session
from models import Agent, Inquiry, InquiryResponse, InquiryStatus
from webhook import dispatch_inquiry_webhook, forward_inquiry_webhook

logger = logging.getLogger(__name__)

inquiries_bp = Blueprint('inquiries', __name__, url_prefix='/api')


# ==================== HELPER FUNCTIONS ====================

def _agent_can_see(inquiry: Inquiry) -> bool:
    return is_admin() or inquiry.assigned_agent_id == current_user().id


def _create_inquiry():
    data = request.get_json(silent=True) or {}

    # Both the documented payload and the customer* field names are accepted
    name = data.get('customerName') or data.get('name')
    email = data.get('customerEmail') or data.get('email')
    phone = data.get('customerPhone') or data.get('phone')
    message = data.get('message')

    if not name or not email or not message:
        return jsonify({"success": False, "error": "name, email and message are required"}), 400

    package_details = data.get('packageDetails')
    if package_details is not None and not isinstance(package_details, dict):
        return jsonify({"success": False, "error": "packageDetails must be an object"}), 400

    try:
        inquiry = Inquiry(
            customer_name=name,
            customer_email=email,
            customer_phone=phone,
            message=message,
            external_id=data.get('externalId'),
            package_details_data=json.dumps(package_details) if package_details else None
        )
        db_session.add(inquiry)
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Inquiry creation failed")
        return jsonify({"success": False, "error": str(e)}), 500

    payload = inquiry.to_dict()
    dispatch_inquiry_webhook(payload)

    return jsonify({"success": True, "data": payload}), 201


# ==================== INQUIRY ROUTES ====================

@inquiries_bp.route('/inquiries', methods=['POST'])
@login_required
def create_inquiry():
    """Create an inquiry from the back-office app."""
    return _create_inquiry()


@inquiries_bp.route('/inquiries/create', methods=['POST'])
def create_inquiry_public():
    """Public intake for external contact forms."""
    return _create_inquiry()


@inquiries_bp.route('/inquiries', methods=['GET'])
@login_required
def get_inquiries():
    """Admins see every inquiry, agents the ones assigned to them."""
    query = db_session.query(Inquiry)
    if not is_admin():
        query = query.filter_by(assigned_agent_id=current_user().id)

    inquiries = query.order_by(Inquiry.created_at.desc()).all()
    return jsonify({"success": True, "data": [i.to_dict() for i in inquiries]})


@inquiries_bp.route('/inquiries/<inquiry_id>', methods=['GET'])
@login_required
def get_inquiry(inquiry_id):
    inquiry = db_session.get(Inquiry, inquiry_id)
    if not inquiry:
        return jsonify({"success": False, "error": "Inquiry not found"}), 404
    if not _agent_can_see(inquiry):
        return jsonify({"success": False, "error": "Forbidden"}), 403
    return jsonify({"success": True, "data": inquiry.to_dict()})


@inquiries_bp.route('/inquiries/<inquiry_id>', methods=['PUT'])
@login_required
def update_inquiry(inquiry_id):
    """Change status; admins may also reassign."""
    data = request.get_json(silent=True) or {}
    inquiry = db_session.get(Inquiry, inquiry_id)
    if not inquiry:
        return jsonify({"success": False, "error": "Inquiry not found"}), 404
    if not _agent_can_see(inquiry):
        return jsonify({"success": False, "error": "Forbidden"}), 403

    status = data.get('status')
    if status and status not in {s.value for s in InquiryStatus}:
        return jsonify({"success": False, "error": f"Invalid status: {status}"}), 400

    assigned = data.get('assignedAgent')
    if assigned and is_admin():
        if not db_session.get(Agent, assigned):
            return jsonify({"success": False, "error": "Assigned agent not found"}), 400
        inquiry.assigned_agent_id = assigned

    if status:
        inquiry.status = status

    try:
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Inquiry update failed for %s", inquiry_id)
        return jsonify({"success": False, "error": str(e)}), 500

    return jsonify({"success": True, "data": inquiry.to_dict()})


@inquiries_bp.route('/inquiries/<inquiry_id>/respond', methods=['POST'])
@login_required
def add_response(inquiry_id):
    data = request.get_json(silent=True) or {}
    message = data.get('message')
    if not message:
        return jsonify({"success": False, "error": "message is required"}), 400

    inquiry = db_session.get(Inquiry, inquiry_id)
    if not inquiry:
        return jsonify({"success": False, "error": "Inquiry not found"}), 404

    try:
        inquiry.responses.append(InquiryResponse(message=message, responder_id=current_user().id))
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Adding response failed for %s", inquiry_id)
        return jsonify({"success": False, "error": str(e)}), 500

    return jsonify({"success": True, "data": inquiry.to_dict()})


@inquiries_bp.route('/inquiries/<inquiry_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_inquiry(inquiry_id):
    inquiry = db_session.get(Inquiry, inquiry_id)
    if not inquiry:
        return jsonify({"success": False, "error": "Inquiry not found"}), 404

    try:
        db_session.delete(inquiry)
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Inquiry deletion failed for %s", inquiry_id)
        return jsonify({"success": False, "error": str(e)}), 500

    return jsonify({"success": True, "message": "Inquiry deleted successfully"})


@inquiries_bp.route('/inquiries/<inquiry_id>/forward-webhook', methods=['POST'])
def manual_forward_webhook(inquiry_id):
    """Synchronous re-send of the inquiry webhook, secured with X-Api-Key."""
    expected = os.getenv("ADMIN_API_KEY")
    api_key = request.headers.get("X-Api-Key") or ""
    if not expected or not hmac.compare_digest(api_key, expected):
        return jsonify({"error": "Unauthorized"}), 401

    inquiry = db_session.get(Inquiry, inquiry_id)
    if not inquiry:
        return jsonify({"error": "Inquiry not found"}), 404

    result = forward_inquiry_webhook(inquiry.to_dict())
    if result.get("success"):
        return jsonify({"success": True, "status": result["status"], "body": result["body"]}), 200
    return jsonify({
        "success": False,
        "status": result.get("status"),
        "body": result.get("body") or result.get("reason") or "failed"
    }), 502
