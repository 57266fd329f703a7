"""
Admin routes - member management for admins.

Admins are members with is_admin set. Admin status grants access to these
routes only; it does not let an admin change prayers another member has
already confirmed.
"""

from functools import wraps
from flask import Blueprint, request, jsonify, current_app, g

from masjid.models import Member
from masjid.routes.api import identity_required, get_current_member
from masjid.services import member_directory

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def admin_required(f):
    """Decorator to require an authenticated admin member."""
    @wraps(f)
    @identity_required
    def decorated_function(*args, **kwargs):
        member = get_current_member()
        if not member or not member.is_admin or not member.is_active:
            return jsonify({'success': False, 'error': 'Admin access required'}), 403
        g.admin_member = member
        return f(*args, **kwargs)
    return decorated_function


@admin_bp.route('/members')
@admin_required
def members():
    """All members, including inactive ones."""
    members = Member.query.order_by(Member.is_active.desc(), Member.name).all()
    return jsonify({'success': True, 'data': [m.to_dict() for m in members]})


@admin_bp.route('/members/<int:member_id>/deactivate', methods=['POST'])
@admin_required
def deactivate_member(member_id):
    """Soft-deactivate a member. Their prayer history is kept."""
    member = member_directory.get_member(member_id)
    if not member:
        return jsonify({'success': False, 'error': 'Member not found'}), 404
    if member.id == g.admin_member.id:
        return jsonify({'success': False, 'error': 'You cannot deactivate yourself'}), 400

    member_directory.set_active(member, False)
    current_app.logger.info(f"Admin {g.admin_member.id} deactivated member {member.id}")
    return jsonify({'success': True, 'data': member.to_dict()})


@admin_bp.route('/members/<int:member_id>/activate', methods=['POST'])
@admin_required
def activate_member(member_id):
    """Reactivate a member."""
    member = member_directory.get_member(member_id)
    if not member:
        return jsonify({'success': False, 'error': 'Member not found'}), 404

    member_directory.set_active(member, True)
    current_app.logger.info(f"Admin {g.admin_member.id} activated member {member.id}")
    return jsonify({'success': True, 'data': member.to_dict()})


@admin_bp.route('/members/<int:member_id>/admin', methods=['POST'])
@admin_required
def set_member_admin(member_id):
    """Grant or revoke admin. JSON body: {"is_admin": true/false}"""
    member = member_directory.get_member(member_id)
    if not member:
        return jsonify({'success': False, 'error': 'Member not found'}), 404

    body = request.get_json(silent=True) or {}
    is_admin = body.get('is_admin')
    if not isinstance(is_admin, bool):
        return jsonify({'success': False, 'error': 'is_admin must be true or false'}), 400
    if not is_admin and member.id == g.admin_member.id:
        return jsonify({'success': False, 'error': 'You cannot remove your own admin access'}), 400

    member_directory.set_admin(member, is_admin)
    return jsonify({'success': True, 'data': member.to_dict()})


@admin_bp.route('/seed-admins', methods=['POST'])
@admin_required
def seed_admins_route():
    """Promote members listed in ADMIN_EMAILS."""
    from masjid.seed_admins import seed_admins
    result = seed_admins()
    return jsonify({'success': True, 'data': result})
