"""Promote the bootstrap admins configured in ADMIN_EMAILS."""
from flask import current_app
from sqlalchemy import func

from masjid import db
from masjid.models.member import Member


def seed_admins():
    """Mark members whose email is in ADMIN_EMAILS as admins. Returns summary."""
    promoted = 0
    skipped = 0
    missing = 0

    for email in current_app.config.get('ADMIN_EMAILS') or []:
        member = Member.query.filter(func.lower(Member.email) == email.lower()).first()
        if not member:
            missing += 1
        elif member.is_admin:
            skipped += 1
        else:
            member.is_admin = True
            promoted += 1

    db.session.commit()
    total = Member.query.filter_by(is_admin=True).count()

    return {
        'promoted': promoted,
        'skipped': skipped,
        'missing': missing,
        'total_admins': total
    }
