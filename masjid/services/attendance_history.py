from datetime import date, datetime
from typing import Optional

from masjid import db
from masjid.models import AttendanceHistoryEntry, Prayer


class AttendanceHistory:
    """Append-only audit trail of prayer writes. Never used for authorization."""

    def append(
        self,
        member_id: int,
        prayer_date: date,
        prayer: Prayer,
        completed: bool,
        actor_identity: str,
        is_self_update: bool,
        timestamp: Optional[datetime] = None,
        commit: bool = True
    ) -> AttendanceHistoryEntry:
        """Add one entry. Repeated identical writes each get their own entry."""
        entry = AttendanceHistoryEntry(
            member_id=member_id,
            prayer_date=prayer_date,
            prayer=prayer.value,
            completed=bool(completed),
            actor_identity=actor_identity,
            is_self_update=bool(is_self_update),
            created_at=timestamp or datetime.utcnow()
        )
        db.session.add(entry)
        if commit:
            db.session.commit()
        else:
            db.session.flush()
        return entry

    def list_for(self, member_id: int, prayer_date: date, prayer: Optional[Prayer] = None) -> list:
        """Entries for a member's day, oldest first."""
        query = AttendanceHistoryEntry.query.filter_by(
            member_id=member_id,
            prayer_date=prayer_date
        )
        if prayer is not None:
            query = query.filter_by(prayer=prayer.value)
        return query.order_by(AttendanceHistoryEntry.id.asc()).all()


# Global instance
attendance_history = AttendanceHistory()
