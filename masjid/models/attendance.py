from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from masjid import db


class Prayer(str, Enum):
    """The five daily prayers, in order."""

    FAJR = 'fajr'
    DHUHR = 'dhuhr'
    ASR = 'asr'
    MAGHRIB = 'maghrib'
    ISHA = 'isha'


@dataclass(frozen=True)
class SlotState:
    completed: bool = False
    touched: bool = False  # explicitly set at least once
    locked: bool = False

    def to_dict(self):
        return {'completed': self.completed, 'touched': self.touched, 'locked': self.locked}


DEFAULT_SLOT = SlotState()


class AttendanceRecord(db.Model):
    """One member's prayers for one calendar day."""
    __tablename__ = 'prayer_records'

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False)
    prayer_date = db.Column(db.Date, nullable=False, index=True)
    last_writer_identity = db.Column(db.String(128), nullable=True)
    is_self_updated = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    slot_rows = db.relationship('PrayerSlot', backref='record', lazy='selectin',
                                cascade='all, delete-orphan')

    # Unique constraint: one prayer record per member per day
    __table_args__ = (
        db.UniqueConstraint('member_id', 'prayer_date', name='unique_prayer_record'),
    )

    def __repr__(self):
        return f'<AttendanceRecord member={self.member_id} date={self.prayer_date}>'

    @classmethod
    def blank(cls, member_id, prayer_date):
        """New record with all five slots untouched."""
        record = cls(member_id=member_id, prayer_date=prayer_date)
        for prayer in Prayer:
            record.slot_rows.append(PrayerSlot(prayer=prayer.value))
        return record

    def slot_row(self, prayer: Prayer) -> 'PrayerSlot':
        for row in self.slot_rows:
            if row.prayer == prayer.value:
                return row
        # Missing rows only happen if the table was edited by hand
        row = PrayerSlot(prayer=prayer.value)
        self.slot_rows.append(row)
        return row

    def slot(self, prayer: Prayer) -> SlotState:
        for row in self.slot_rows:
            if row.prayer == prayer.value:
                return row.state
        return DEFAULT_SLOT

    @property
    def slots(self) -> dict:
        return {prayer: self.slot(prayer) for prayer in Prayer}

    @property
    def completed_count(self) -> int:
        return sum(1 for state in self.slots.values() if state.completed)

    def to_dict(self):
        return {
            'id': self.id,
            'member_id': self.member_id,
            'prayer_date': self.prayer_date.isoformat(),
            'slots': {prayer.value: state.to_dict() for prayer, state in self.slots.items()},
            'completed_count': self.completed_count,
            'last_writer_identity': self.last_writer_identity,
            'is_self_updated': self.is_self_updated,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class PrayerSlot(db.Model):
    """State of a single prayer within a daily record."""
    __tablename__ = 'prayer_slots'

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.Integer, db.ForeignKey('prayer_records.id'), nullable=False)
    prayer = db.Column(db.String(10), nullable=False)  # Prayer value
    completed = db.Column(db.Boolean, default=False, nullable=False)
    touched = db.Column(db.Boolean, default=False, nullable=False)
    locked = db.Column(db.Boolean, default=False, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('record_id', 'prayer', name='unique_prayer_slot'),
    )

    def __repr__(self):
        return f'<PrayerSlot record={self.record_id} {self.prayer}>'

    @property
    def state(self) -> SlotState:
        return SlotState(
            completed=bool(self.completed),
            touched=bool(self.touched),
            locked=bool(self.locked),
        )
