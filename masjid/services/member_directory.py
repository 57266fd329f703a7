"""
Member directory - resolves identities to members and supplies the roster.

Identities come from the external identity provider. A member is linked to
an identity on login: by identity first, then by email, otherwise a new
member is created. The first member ever created and anyone listed in
ADMIN_EMAILS become admins.
"""

from typing import Optional
from flask import current_app
from sqlalchemy import func

from masjid import db
from masjid.models import Member


class MemberDirectory:
    """Lookups and lifecycle for Member records."""

    def resolve_member_by_identity(self, identity_id: Optional[str]) -> Optional[Member]:
        """Get the member linked to an identity, or None."""
        if not identity_id:
            return None
        return Member.query.filter_by(linked_identity_id=identity_id).first()

    def get_member(self, member_id: int) -> Optional[Member]:
        return db.session.get(Member, member_id)

    def list_active_members(self) -> list:
        """Active members ordered by name (case-insensitive), then id."""
        return Member.query.filter_by(is_active=True).order_by(
            func.lower(Member.name),
            Member.id
        ).all()

    def _is_bootstrap_admin(self, email: Optional[str]) -> bool:
        admin_emails = current_app.config.get('ADMIN_EMAILS') or []
        return bool(email) and email.lower() in admin_emails

    def link_identity(self, identity_id: str, email: Optional[str] = None, name: Optional[str] = None) -> Member:
        """
        Attach a freshly authenticated identity to its member, creating one if needed.

        Safe to call on every login.

        Args:
            identity_id: Stable id from the identity provider
            email: Email reported by the provider (optional)
            name: Display name reported by the provider (optional)

        Returns:
            The linked Member
        """
        email = email.strip().lower() if email else None

        member = self.resolve_member_by_identity(identity_id)
        if member is None and email:
            member = Member.query.filter(func.lower(Member.email) == email).first()
            if member:
                current_app.logger.info(f"Linking identity {identity_id} to existing member {member.id} by email")

        if member is None:
            is_first_member = Member.query.count() == 0
            member = Member(
                name=(name or email or 'Unnamed member').strip(),
                email=email,
                is_admin=is_first_member or self._is_bootstrap_admin(email),
                is_active=True
            )
            db.session.add(member)
            current_app.logger.info(f"Created member for identity {identity_id} (admin={member.is_admin})")

        member.linked_identity_id = identity_id
        if email and not member.email:
            member.email = email
        if self._is_bootstrap_admin(member.email) and not member.is_admin:
            member.is_admin = True

        db.session.commit()
        return member

    def set_admin(self, member: Member, is_admin: bool) -> Member:
        member.is_admin = bool(is_admin)
        db.session.commit()
        current_app.logger.info(f"Member {member.id} admin={member.is_admin}")
        return member

    def set_active(self, member: Member, is_active: bool) -> Member:
        """Soft (de)activation. Members are never deleted."""
        member.is_active = bool(is_active)
        db.session.commit()
        current_app.logger.info(f"Member {member.id} active={member.is_active}")
        return member


# Global instance
member_directory = MemberDirectory()
