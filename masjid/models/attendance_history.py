from datetime import datetime
from masjid import db


class AttendanceHistoryEntry(db.Model):
    """Append-only record of every permitted prayer write."""
    __tablename__ = 'prayer_history'

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False, index=True)
    prayer_date = db.Column(db.Date, nullable=False)
    prayer = db.Column(db.String(10), nullable=False)
    completed = db.Column(db.Boolean, nullable=False)
    actor_identity = db.Column(db.String(128), nullable=False)
    is_self_update = db.Column(db.Boolean, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index('ix_prayer_history_member_date', 'member_id', 'prayer_date'),
    )

    def __repr__(self):
        return f'<AttendanceHistoryEntry {self.prayer} member={self.member_id} date={self.prayer_date}>'

    def to_dict(self):
        return {
            'id': self.id,
            'member_id': self.member_id,
            'prayer_date': self.prayer_date.isoformat(),
            'prayer_type': self.prayer,
            'completed': self.completed,
            'actor_identity': self.actor_identity,
            'is_self_update': self.is_self_update,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
