"""
API routes for the prayer tracker (JSON).

Includes:
- Member profile (links the caller's identity to a member)
- Active member roster
- Daily prayer attendance for all members
- Prayer updates, guarded by the locking policy
- Prayer history for audit

Authentication is handled by the external identity provider; the gateway
in front of the app passes the verified identity id in a request header.
"""

import re
import traceback
from datetime import date
from functools import wraps
from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from masjid.models import Prayer
from masjid.services import member_directory, attendance_history, prayer_tracker, ErrorKind

api_bp = Blueprint('api', __name__, url_prefix='/api')

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

ERROR_STATUS = {
    ErrorKind.ACTOR_UNRESOLVED: 403,
    ErrorKind.TARGET_NOT_FOUND: 404,
    ErrorKind.SLOT_LOCKED: 403,
    ErrorKind.STORAGE_UNAVAILABLE: 503,
}


# ============== IDENTITY ==============

def is_local_development():
    """Check if running in local development mode."""
    return current_app.debug or current_app.config.get('FLASK_ENV') == 'development'


def get_current_identity():
    """Identity id forwarded by the identity provider, or None."""
    identity = request.headers.get(current_app.config['IDENTITY_HEADER'], '').strip()
    if not identity and is_local_development():
        identity = (current_app.config.get('DEV_IDENTITY') or '').strip()
    return identity or None


def get_current_member():
    """Get the member linked to the calling identity."""
    return member_directory.resolve_member_by_identity(g.get('identity_id'))


def identity_required(f):
    """Decorator to require an authenticated identity."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = get_current_identity()
        if not identity:
            return jsonify({'success': False, 'error': 'User not authenticated'}), 401
        g.identity_id = identity
        return f(*args, **kwargs)
    return decorated_function


# ============== HELPERS ==============

def parse_prayer_date(value):
    """Parse a strict YYYY-MM-DD string. Returns None if invalid."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_prayer(value):
    try:
        return Prayer(value)
    except ValueError:
        return None


def invalid_request(message):
    return jsonify({'success': False, 'error_kind': 'invalid_request', 'error': message}), 400


def storage_unavailable(context, e):
    current_app.logger.error(f"{context}: {e}")
    current_app.logger.error(traceback.format_exc())
    return jsonify({
        'success': False,
        'error_kind': ErrorKind.STORAGE_UNAVAILABLE.value,
        'error': 'Storage unavailable, please try again'
    }), 503


# ============== MEMBERS ==============

@api_bp.route('/members/profile')
@identity_required
def member_profile():
    """
    Get the caller's member profile, creating or linking it on first login.

    Email and name are taken from the identity provider's headers when present.
    """
    email = request.headers.get(current_app.config['IDENTITY_EMAIL_HEADER'])
    name = request.headers.get(current_app.config['IDENTITY_NAME_HEADER'])
    try:
        member = member_directory.link_identity(g.identity_id, email=email, name=name)
    except SQLAlchemyError as e:
        return storage_unavailable(f"Failed to link identity {g.identity_id}", e)
    return jsonify({'success': True, 'data': member.to_dict()})


@api_bp.route('/members')
@identity_required
def list_members():
    """Active members ordered by name."""
    try:
        members = member_directory.list_active_members()
    except SQLAlchemyError as e:
        return storage_unavailable("Failed to fetch members", e)
    return jsonify({'success': True, 'data': [m.to_dict() for m in members]})


# ============== PRAYERS ==============

def _daily_attendance_response(prayer_date):
    try:
        rows = prayer_tracker.get_daily_attendance(prayer_date)
    except SQLAlchemyError as e:
        return storage_unavailable(f"Failed to fetch prayer records for {prayer_date}", e)
    return jsonify({'success': True, 'prayer_date': prayer_date.isoformat(), 'data': rows})


@api_bp.route('/prayers/today')
@identity_required
def prayers_today():
    """All active members' prayers for today."""
    return _daily_attendance_response(date.today())


@api_bp.route('/prayers/<date_str>')
@identity_required
def prayers_for_date(date_str):
    """All active members' prayers for a given day (YYYY-MM-DD)."""
    prayer_date = parse_prayer_date(date_str)
    if prayer_date is None:
        return invalid_request('prayer_date must be YYYY-MM-DD')
    return _daily_attendance_response(prayer_date)


@api_bp.route('/prayers/update', methods=['POST'])
@identity_required
def update_prayer():
    """
    Mark a prayer done or not done.

    JSON body:
        member_id: Member whose prayer is recorded
        prayer_date: YYYY-MM-DD
        prayer_type: fajr, dhuhr, asr, maghrib or isha
        completed: true/false

    Returns:
        JSON with 'success' and 'data' (the updated record), or
        'error_kind' and 'error' on failure
    """
    body = request.get_json(silent=True) or {}

    member_id = body.get('member_id')
    if not isinstance(member_id, int) or isinstance(member_id, bool):
        return invalid_request('member_id must be an integer')

    prayer_date = parse_prayer_date(body.get('prayer_date'))
    if prayer_date is None:
        return invalid_request('prayer_date must be YYYY-MM-DD')

    prayer = parse_prayer(body.get('prayer_type'))
    if prayer is None:
        return invalid_request('prayer_type must be one of ' + ', '.join(p.value for p in Prayer))

    completed = body.get('completed')
    if not isinstance(completed, bool):
        return invalid_request('completed must be true or false')

    result = prayer_tracker.record_prayer(g.identity_id, member_id, prayer_date, prayer, completed)

    if result.success:
        return jsonify({'success': True, 'data': result.record.to_dict()})

    return jsonify({
        'success': False,
        'error_kind': result.error.value,
        'error': result.message,
        'retryable': result.retryable
    }), ERROR_STATUS[result.error]


@api_bp.route('/prayers/history')
@identity_required
def prayer_history():
    """
    Audit trail for one member's day.

    Query params:
        member_id: Member id (required)
        prayer_date: YYYY-MM-DD (required)
        prayer_type: Limit to one prayer (optional)
    """
    member_id = request.args.get('member_id', type=int)
    if member_id is None:
        return invalid_request('member_id is required')

    prayer_date = parse_prayer_date(request.args.get('prayer_date'))
    if prayer_date is None:
        return invalid_request('prayer_date must be YYYY-MM-DD')

    prayer = None
    if request.args.get('prayer_type'):
        prayer = parse_prayer(request.args.get('prayer_type'))
        if prayer is None:
            return invalid_request('prayer_type must be one of ' + ', '.join(p.value for p in Prayer))

    try:
        entries = attendance_history.list_for(member_id, prayer_date, prayer)
    except SQLAlchemyError as e:
        return storage_unavailable(f"Failed to fetch prayer history for member {member_id}", e)

    return jsonify({'success': True, 'data': [entry.to_dict() for entry in entries]})
