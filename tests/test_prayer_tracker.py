from __future__ import annotations

from datetime import date

from sqlalchemy.exc import OperationalError

from conftest import PRAYER_DAY, add_member
from masjid import db
from masjid.models import AttendanceHistoryEntry, AttendanceRecord, Prayer, SlotState
from masjid.services import ErrorKind, attendance_history, attendance_store, prayer_tracker


def _slot(member, prayer, day=PRAYER_DAY) -> SlotState:
    db.session.expire_all()
    record = attendance_store.get(member.id, day)
    return record.slot(prayer) if record else None


def test_first_touch_by_owner_locks(owner):
    result = prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.FAJR, True)

    assert result.success
    assert result.record.slot(Prayer.FAJR) == SlotState(completed=True, touched=True, locked=True)
    assert result.record.is_self_updated
    assert result.record.last_writer_identity == 'id-owner'


def test_third_party_touch_does_not_lock(owner, other):
    result = prayer_tracker.record_prayer('id-other', owner.id, PRAYER_DAY, Prayer.FAJR, True)

    assert result.success
    assert _slot(owner, Prayer.FAJR) == SlotState(completed=True, touched=True, locked=False)


def test_owner_overrides_third_party_entry(owner, other):
    prayer_tracker.record_prayer('id-other', owner.id, PRAYER_DAY, Prayer.FAJR, True)

    result = prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.FAJR, False)

    assert result.success
    assert _slot(owner, Prayer.FAJR) == SlotState(completed=False, touched=True, locked=True)


def test_lock_blocks_third_party(owner, other):
    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.ISHA, False)

    result = prayer_tracker.record_prayer('id-other', owner.id, PRAYER_DAY, Prayer.ISHA, True)

    assert not result.success
    assert result.error == ErrorKind.SLOT_LOCKED
    assert result.message == 'Already confirmed by member'
    assert not result.retryable
    assert _slot(owner, Prayer.ISHA) == SlotState(completed=False, touched=True, locked=True)
    assert len(attendance_history.list_for(owner.id, PRAYER_DAY)) == 1


def test_lock_blocks_admin_too(owner, admin):
    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.ASR, True)

    result = prayer_tracker.record_prayer('id-admin', owner.id, PRAYER_DAY, Prayer.ASR, False)

    assert result.error == ErrorKind.SLOT_LOCKED
    assert _slot(owner, Prayer.ASR).completed is True


def test_owner_can_always_revise(owner):
    values = [True, False, True, False, False, True]
    for value in values:
        result = prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.DHUHR, value)
        assert result.success
        assert _slot(owner, Prayer.DHUHR) == SlotState(completed=value, touched=True, locked=True)


def test_write_leaves_other_prayers_alone(owner, other):
    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.DHUHR, True)
    prayer_tracker.record_prayer('id-other', owner.id, PRAYER_DAY, Prayer.MAGHRIB, False)

    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.FAJR, True)
    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.FAJR, False)

    assert _slot(owner, Prayer.DHUHR) == SlotState(completed=True, touched=True, locked=True)
    assert _slot(owner, Prayer.MAGHRIB) == SlotState(completed=False, touched=True, locked=False)
    assert _slot(owner, Prayer.ASR) == SlotState()
    assert _slot(owner, Prayer.ISHA) == SlotState()


def test_every_permitted_write_is_logged(owner, other):
    writes = [('id-other', True), ('id-other', True), ('id-owner', False), ('id-owner', True), ('id-owner', True)]
    for identity, value in writes:
        assert prayer_tracker.record_prayer(identity, owner.id, PRAYER_DAY, Prayer.ASR, value).success

    entries = attendance_history.list_for(owner.id, PRAYER_DAY, Prayer.ASR)

    assert [e.completed for e in entries] == [value for _, value in writes]
    assert [e.actor_identity for e in entries] == [identity for identity, _ in writes]
    assert [e.is_self_update for e in entries] == [False, False, True, True, True]
    assert _slot(owner, Prayer.ASR).completed is True


def test_unknown_actor_is_rejected_without_side_effects(owner):
    result = prayer_tracker.record_prayer('id-nobody', owner.id, PRAYER_DAY, Prayer.FAJR, True)

    assert result.error == ErrorKind.ACTOR_UNRESOLVED
    assert result.message == 'Please complete member setup'
    assert AttendanceRecord.query.count() == 0
    assert AttendanceHistoryEntry.query.count() == 0


def test_missing_or_inactive_target(ctx, owner):
    gone = add_member('Yusuf', 'id-yusuf', is_active=False)

    assert prayer_tracker.record_prayer('id-owner', 9999, PRAYER_DAY, Prayer.FAJR, True).error == ErrorKind.TARGET_NOT_FOUND
    assert prayer_tracker.record_prayer('id-owner', gone.id, PRAYER_DAY, Prayer.FAJR, True).error == ErrorKind.TARGET_NOT_FOUND
    assert AttendanceRecord.query.count() == 0


def test_dates_are_independent(owner, other):
    other_day = date(2024, 3, 2)
    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.FAJR, True)

    result = prayer_tracker.record_prayer('id-other', owner.id, other_day, Prayer.FAJR, True)

    assert result.success
    assert _slot(owner, Prayer.FAJR, other_day).locked is False


def test_storage_failure_writes_nothing(owner, monkeypatch):
    def broken_upsert(*args, **kwargs):
        raise OperationalError('UPDATE prayer_slots', {}, Exception('database is locked'))

    monkeypatch.setattr(attendance_store, 'upsert_slot', broken_upsert)

    result = prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.FAJR, True)

    assert result.error == ErrorKind.STORAGE_UNAVAILABLE
    assert result.retryable
    assert AttendanceHistoryEntry.query.count() == 0
    assert AttendanceRecord.query.count() == 0


def test_first_writes_racing_share_one_record(owner, other, monkeypatch):
    # Second caller read "no record" before the first caller's create landed
    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.FAJR, True)

    real_get = attendance_store.get
    calls = []

    def stale_get(member_id, prayer_date):
        calls.append(member_id)
        if len(calls) == 1:
            return None
        return real_get(member_id, prayer_date)

    monkeypatch.setattr(attendance_store, 'get', stale_get)

    result = prayer_tracker.record_prayer('id-other', owner.id, PRAYER_DAY, Prayer.ISHA, True)
    monkeypatch.undo()

    assert result.success
    assert AttendanceRecord.query.filter_by(member_id=owner.id, prayer_date=PRAYER_DAY).count() == 1
    assert _slot(owner, Prayer.FAJR) == SlotState(completed=True, touched=True, locked=True)
    assert _slot(owner, Prayer.ISHA) == SlotState(completed=True, touched=True, locked=False)


def test_third_party_losing_create_race_cannot_clear_owner_lock(owner, other, monkeypatch):
    # Owner's record landed after the third party read "no record"
    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.FAJR, True)

    real_get = attendance_store.get
    calls = []

    def stale_get(member_id, prayer_date):
        calls.append(member_id)
        if len(calls) == 1:
            return None
        return real_get(member_id, prayer_date)

    monkeypatch.setattr(attendance_store, 'get', stale_get)

    result = prayer_tracker.record_prayer('id-other', owner.id, PRAYER_DAY, Prayer.FAJR, False)
    monkeypatch.undo()

    assert result.error == ErrorKind.SLOT_LOCKED
    assert _slot(owner, Prayer.FAJR) == SlotState(completed=True, touched=True, locked=True)
    assert AttendanceRecord.query.count() == 1
    assert len(attendance_history.list_for(owner.id, PRAYER_DAY)) == 1


def test_denied_write_leaves_no_blank_record(owner):
    other_day = date(2024, 3, 3)

    result = prayer_tracker.record_prayer(None, owner.id, other_day, Prayer.FAJR, True)

    assert result.error == ErrorKind.ACTOR_UNRESOLVED
    assert attendance_store.get(owner.id, other_day) is None


def test_daily_attendance_covers_active_roster(ctx, owner, other):
    add_member('aisha', 'id-aisha')
    add_member('Inactive', 'id-inactive', is_active=False)
    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.FAJR, True)
    prayer_tracker.record_prayer('id-owner', owner.id, PRAYER_DAY, Prayer.DHUHR, True)

    rows = prayer_tracker.get_daily_attendance(PRAYER_DAY)

    assert [row['member_name'] for row in rows] == ['Abdullah', 'aisha', 'Bilal']
    abdullah = rows[0]
    assert abdullah['completed_count'] == 2
    assert abdullah['slots']['fajr'] == {'completed': True, 'touched': True, 'locked': True}
    assert abdullah['slots']['isha'] == {'completed': False, 'touched': False, 'locked': False}
    assert rows[2]['completed_count'] == 0
    assert set(rows[2]['slots']) == {p.value for p in Prayer}
