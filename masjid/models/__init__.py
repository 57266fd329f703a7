# Import all models here so they're registered with SQLAlchemy
from masjid.models.member import Member
from masjid.models.attendance import Prayer, SlotState, AttendanceRecord, PrayerSlot
from masjid.models.attendance_history import AttendanceHistoryEntry

__all__ = ['Member', 'Prayer', 'SlotState', 'AttendanceRecord', 'PrayerSlot', 'AttendanceHistoryEntry']
