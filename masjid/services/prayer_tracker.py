"""
Prayer tracking use case.

record_prayer() is the single entry point for marking a prayer done or not
done. It resolves the members involved, applies the locking policy and, if
the write is permitted, updates the day's record and appends a history
entry in one commit. Failures come back as a PrayerUpdateResult rather than
an exception.
"""

import traceback
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from masjid import db
from masjid.models import AttendanceRecord, Prayer, SlotState
from masjid.services.attendance_history import attendance_history
from masjid.services.attendance_policy import ACTOR_HAS_NO_MEMBER_RECORD, Deny, authorize
from masjid.services.attendance_store import attendance_store
from masjid.services.member_directory import member_directory


class ErrorKind(str, Enum):
    ACTOR_UNRESOLVED = 'actor_unresolved'
    TARGET_NOT_FOUND = 'target_not_found'
    SLOT_LOCKED = 'slot_locked'
    STORAGE_UNAVAILABLE = 'storage_unavailable'


ERROR_MESSAGES = {
    ErrorKind.ACTOR_UNRESOLVED: 'Please complete member setup',
    ErrorKind.TARGET_NOT_FOUND: 'Target member not found',
    ErrorKind.SLOT_LOCKED: 'Already confirmed by member',
    ErrorKind.STORAGE_UNAVAILABLE: 'Storage unavailable, please try again',
}

RETRYABLE = {ErrorKind.STORAGE_UNAVAILABLE}


@dataclass
class PrayerUpdateResult:
    success: bool
    record: Optional[AttendanceRecord] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, record):
        return cls(success=True, record=record)

    @classmethod
    def fail(cls, error: ErrorKind):
        return cls(success=False, error=error, message=ERROR_MESSAGES[error])

    @property
    def retryable(self) -> bool:
        return self.error in RETRYABLE


class PrayerTracker:
    """Coordinates the member directory, locking policy, store and history."""

    def record_prayer(
        self,
        actor_identity: Optional[str],
        target_member_id: int,
        prayer_date: date,
        prayer: Prayer,
        completed: bool
    ) -> PrayerUpdateResult:
        """
        Mark one prayer for one member on one day.

        Args:
            actor_identity: Identity id of the caller (from the identity provider)
            target_member_id: Member whose prayer is being recorded
            prayer_date: Calendar day of the prayer
            prayer: Which prayer
            completed: Whether it was prayed

        Returns:
            PrayerUpdateResult with the updated record on success, or an error kind
        """
        try:
            target = member_directory.get_member(target_member_id)
            if target is None or not target.is_active:
                return PrayerUpdateResult.fail(ErrorKind.TARGET_NOT_FOUND)

            actor = member_directory.resolve_member_by_identity(actor_identity)

            # Decide against the record that will actually be written, including
            # one another writer created while we were looking
            current_record = attendance_store.get_or_create(target.id, prayer_date)

            decision = authorize(actor, target, prayer, current_record)
            if isinstance(decision, Deny):
                # Drops the blank record if this call created it
                db.session.rollback()
                if decision.reason == ACTOR_HAS_NO_MEMBER_RECORD:
                    current_app.logger.warning(f"Prayer update rejected: identity {actor_identity} has no member record")
                    return PrayerUpdateResult.fail(ErrorKind.ACTOR_UNRESOLVED)
                current_app.logger.info(
                    f"Prayer update denied: {prayer.value} for member {target.id} on {prayer_date} "
                    f"is locked by its owner (actor {actor.id})"
                )
                return PrayerUpdateResult.fail(ErrorKind.SLOT_LOCKED)

            # Record, slot and history are committed together; a failure leaves none of them
            record = attendance_store.upsert_slot(
                target.id,
                prayer_date,
                prayer,
                completed=completed,
                lock_after=decision.lock_after,
                writer_identity=actor_identity,
                is_self=decision.is_self,
                commit=False
            )
            attendance_history.append(
                target.id,
                prayer_date,
                prayer,
                completed=completed,
                actor_identity=actor_identity,
                is_self_update=decision.is_self,
                commit=False
            )
            db.session.commit()

            current_app.logger.info(
                f"Recorded {prayer.value}={completed} for member {target.id} on {prayer_date} "
                f"by {actor_identity} (locked={decision.lock_after})"
            )
            return PrayerUpdateResult.ok(record)

        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Prayer update storage error for member {target_member_id}: {e}")
            current_app.logger.error(traceback.format_exc())
            return PrayerUpdateResult.fail(ErrorKind.STORAGE_UNAVAILABLE)

    def get_daily_attendance(self, prayer_date: date) -> list:
        """
        Prayer status of every active member for a day.

        Members with nothing recorded yet get untouched slots.

        Returns:
            List of dicts with 'member_id', 'member_name', 'slots' and 'completed_count'
        """
        records = {record.member_id: record for record in attendance_store.get_all(prayer_date)}

        rows = []
        for member in member_directory.list_active_members():
            record = records.get(member.id)
            if record is not None:
                slots = record.slots
            else:
                slots = {prayer: SlotState() for prayer in Prayer}
            rows.append({
                'member_id': member.id,
                'member_name': member.name,
                'slots': {prayer.value: state.to_dict() for prayer, state in slots.items()},
                'completed_count': sum(1 for state in slots.values() if state.completed),
            })
        return rows


# Global instance
prayer_tracker = PrayerTracker()
