"""
Travel Agency Back-Office - Booking Routes
CRUD, approval and PDF download for bookings. Admins see everything;
agents only the bookings they own.
"""

import io
import logging
from flask import Blueprint, request, jsonify, send_file

from auth import login_required, admin_required, current_user, is_admin
from booking_pdf import render_booking_document, download_filename, PDF_MIMETYPE
from booking_view import normalize_pnr, is_valid_pnr, parse_date
from extensions import db_session
from models import (
    Booking, BookingStatus,
    BOOKING_CORE_FIELDS, BOOKING_FLAT_FIELDS, BOOKING_DATE_FIELDS, BOOKING_SECTIONS
)

logger = logging.getLogger(__name__)

bookings_bp = Blueprint('bookings', __name__, url_prefix='/api')

REQUIRED_FIELDS = ('customerName', 'customerEmail', 'package', 'date')
NUMERIC_FIELDS = {'amount', 'paymentReceived', 'paymentDue'}
LIST_SECTIONS = {'hotels'}


class BookingPayloadError(ValueError):
    """Client payload problem, reported as 400."""


# ==================== HELPER FUNCTIONS ====================

def safe_float(val):
    if val is None or val == '':
        return None
    try:
        return float(val)
    except (ValueError, TypeError):
        raise BookingPayloadError(f"Invalid number: {val}")


def clean_pnr(value) -> str:
    if not is_valid_pnr(value):
        raise BookingPayloadError("PNR must be exactly 6 characters.")
    return normalize_pnr(value)


def required_date(value, field):
    parsed = parse_date(value)
    if parsed is None:
        raise BookingPayloadError(f"Invalid {field}")
    return parsed


def validate_status(value):
    if value not in {s.value for s in BookingStatus}:
        raise BookingPayloadError(f"Invalid status: {value}")
    return value


def apply_booking_payload(booking: Booking, data: dict) -> None:
    """
    Copy optional fields from a request payload onto a booking.

    Flat fields and sections are only touched when their key is present.
    A present section replaces the stored one wholesale (null clears it).
    A PNR inside the legacy flight section is validated and cleaned like
    the top-level one.
    """
    if data.get('pnr'):
        booking.pnr = clean_pnr(data['pnr'])

    for wire, column in BOOKING_FLAT_FIELDS.items():
        if wire in data:
            value = data[wire]
            if wire in NUMERIC_FIELDS:
                value = safe_float(value)
            elif value is not None:
                value = str(value)
            setattr(booking, column, value)

    for wire, column in BOOKING_DATE_FIELDS.items():
        if wire in data:
            value = data[wire]
            setattr(booking, column, required_date(value, wire) if value else None)

    for wire in BOOKING_SECTIONS:
        if wire not in data:
            continue
        value = data[wire]
        if value is not None:
            allowed = (list,) if wire in LIST_SECTIONS else (dict, list)
            if not isinstance(value, allowed):
                raise BookingPayloadError(f"Invalid {wire} section")
        if wire == 'flight' and isinstance(value, dict) and value.get('pnr'):
            value = dict(value, pnr=clean_pnr(value['pnr']))
        booking.set_section(wire, value)


def load_booking_for_caller(booking_id):
    """Returns (booking, None) or (None, error response) for admin-or-owner access."""
    booking = db_session.get(Booking, booking_id)
    if not booking:
        return None, (jsonify({"error": "Booking not found"}), 404)
    if not is_admin() and not booking.is_owned_by(current_user().id):
        return None, (jsonify({"error": "Not authorized"}), 403)
    return booking, None


# ==================== BOOKING ROUTES ====================

@bookings_bp.route('/bookings', methods=['POST'])
@login_required
def create_booking():
    """Create a booking owned by the caller."""
    data = request.get_json(silent=True) or {}

    if any(not data.get(field) for field in REQUIRED_FIELDS):
        return jsonify({"error": "Missing required fields."}), 400

    try:
        booking = Booking(
            customer_name=data['customerName'],
            customer_email=data['customerEmail'],
            package=data['package'],
            travel_date=required_date(data['date'], 'date'),
            status=validate_status(data.get('status') or BookingStatus.PENDING.value),
            agent_id=current_user().id
        )
        apply_booking_payload(booking, data)
    except BookingPayloadError as e:
        return jsonify({"error": str(e)}), 400

    try:
        db_session.add(booking)
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Booking creation failed")
        return jsonify({"error": f"Failed to create booking: {str(e)}"}), 500

    return jsonify({
        "message": "Booking created successfully",
        "booking": booking.to_record()
    }), 201


@bookings_bp.route('/bookings', methods=['GET'])
@login_required
@admin_required
def get_bookings():
    """All bookings with their agents (admin)."""
    bookings = db_session.query(Booking).order_by(Booking.created_at.desc()).all()
    return jsonify({
        "bookings": [b.to_record() for b in bookings]
    })


@bookings_bp.route('/bookings/my', methods=['GET'])
@login_required
def get_my_bookings():
    """Bookings owned by the logged-in agent, newest first."""
    bookings = db_session.query(Booking).filter_by(
        agent_id=current_user().id
    ).order_by(Booking.created_at.desc()).all()
    return jsonify({
        "bookings": [b.to_record(include_agent=False) for b in bookings]
    })


@bookings_bp.route('/bookings/<booking_id>', methods=['GET'])
@login_required
def get_booking(booking_id):
    """Get a booking (admin or owner)."""
    booking, error = load_booking_for_caller(booking_id)
    if error:
        return error
    return jsonify(booking.to_record())


@bookings_bp.route('/bookings/<booking_id>', methods=['PUT'])
@login_required
def update_booking(booking_id):
    """Update a booking (admin or owner)."""
    booking, error = load_booking_for_caller(booking_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}

    try:
        for wire, column in BOOKING_CORE_FIELDS.items():
            if data.get(wire) is not None:
                value = data[wire]
                if wire == 'status':
                    value = validate_status(value)
                setattr(booking, column, value)
        if data.get('date') is not None:
            booking.travel_date = required_date(data['date'], 'date')
        apply_booking_payload(booking, data)
    except BookingPayloadError as e:
        db_session.rollback()
        return jsonify({"error": str(e)}), 400

    try:
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Booking update failed for %s", booking_id)
        return jsonify({"error": f"Failed to update booking: {str(e)}"}), 500

    return jsonify({
        "message": "Booking updated successfully",
        "booking": booking.to_record()
    })


@bookings_bp.route('/bookings/<booking_id>', methods=['DELETE'])
@login_required
def delete_booking(booking_id):
    """Delete a booking outright (admin or owner)."""
    booking, error = load_booking_for_caller(booking_id)
    if error:
        return error

    try:
        db_session.delete(booking)
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Booking deletion failed for %s", booking_id)
        return jsonify({"error": f"Failed to delete booking: {str(e)}"}), 500

    return jsonify({"message": "Booking removed"})


def _change_approval(booking_id, operation):
    booking = db_session.get(Booking, booking_id)
    if not booking:
        return jsonify({"error": "Booking not found"}), 404

    try:
        booking.apply_approval(operation)
        db_session.commit()
    except Exception as e:
        db_session.rollback()
        logger.exception("Booking %s failed for %s", operation, booking_id)
        return jsonify({"error": f"Failed to {operation} booking: {str(e)}"}), 500

    return jsonify({
        "message": f"Booking {booking.approval_status}",
        "booking": booking.to_record()
    })


@bookings_bp.route('/bookings/<booking_id>/approve', methods=['POST'])
@login_required
@admin_required
def approve_booking(booking_id):
    """Approve a booking: approvalStatus=approved, status=confirmed."""
    return _change_approval(booking_id, "approve")


@bookings_bp.route('/bookings/<booking_id>/reject', methods=['POST'])
@login_required
@admin_required
def reject_booking(booking_id):
    """Reject a booking: approvalStatus=rejected, status=cancelled."""
    return _change_approval(booking_id, "reject")


@bookings_bp.route('/bookings/<booking_id>/pdf', methods=['GET'])
@login_required
def get_booking_pdf(booking_id):
    """Download the booking summary PDF (admin or owner)."""
    booking, error = load_booking_for_caller(booking_id)
    if error:
        return error

    pdf_bytes = render_booking_document(booking.to_record())
    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype=PDF_MIMETYPE,
        as_attachment=True,
        download_name=download_filename(booking.id)
    )
