"""
Storage for daily prayer records.

One AttendanceRecord per (member, date), enforced by a unique constraint.
A record exists only once a write that created it has been committed.
Writes only ever touch a single prayer slot row plus the record's
writer/timestamp columns, so concurrent writes to different prayers of the
same day never overwrite each other.
"""

from datetime import date, datetime
from typing import Optional
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from masjid import db
from masjid.models import AttendanceRecord, Member, Prayer


class AttendanceStore:
    """Read and upsert prayer records."""

    def get(self, member_id: int, prayer_date: date) -> Optional[AttendanceRecord]:
        """Get the record for a member on a day, or None if nothing was written yet."""
        return AttendanceRecord.query.filter_by(
            member_id=member_id,
            prayer_date=prayer_date
        ).first()

    def get_all(self, prayer_date: date) -> list:
        """Get every record for a day, ordered by member name (case-insensitive) then member id."""
        return AttendanceRecord.query.join(Member).filter(
            AttendanceRecord.prayer_date == prayer_date
        ).order_by(
            func.lower(Member.name),
            Member.id
        ).all()

    def get_or_create(self, member_id: int, prayer_date: date) -> AttendanceRecord:
        """
        Get the record for (member, date), creating a blank one if missing.

        A new blank record is only flushed, so it exists once the caller
        commits and disappears if the caller rolls back. If another writer
        created the same record first, the unique constraint rejects ours,
        the session is rolled back and their record is returned instead.
        Call this before making other changes in the session.
        """
        record = self.get(member_id, prayer_date)
        if record is not None:
            return record

        record = AttendanceRecord.blank(member_id, prayer_date)
        db.session.add(record)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.info(
                f"Prayer record for member {member_id} on {prayer_date} created concurrently, reusing it"
            )
            record = self.get(member_id, prayer_date)
            if record is None:
                raise
        return record

    def upsert_slot(
        self,
        member_id: int,
        prayer_date: date,
        prayer: Prayer,
        completed: bool,
        lock_after: bool,
        writer_identity: str,
        is_self: bool = False,
        commit: bool = True
    ) -> AttendanceRecord:
        """
        Write one prayer slot, creating the day's record if needed.

        Sets completed, marks the slot touched and sets its lock to lock_after.
        The other four prayers are left alone.

        Pass commit=False to leave the slot change pending in the session so
        the caller can commit it together with other writes.
        """
        record = self.get_or_create(member_id, prayer_date)

        slot = record.slot_row(prayer)
        slot.completed = bool(completed)
        slot.touched = True
        slot.locked = bool(lock_after)

        record.last_writer_identity = writer_identity
        record.is_self_updated = bool(is_self)
        record.updated_at = datetime.utcnow()

        if commit:
            db.session.commit()
        else:
            db.session.flush()
        return record


# Global instance
attendance_store = AttendanceStore()
