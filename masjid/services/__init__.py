# Business logic services
from masjid.services.member_directory import member_directory
from masjid.services.attendance_store import attendance_store
from masjid.services.attendance_history import attendance_history
from masjid.services.prayer_tracker import prayer_tracker, ErrorKind, PrayerUpdateResult

__all__ = [
    'member_directory',
    'attendance_store',
    'attendance_history',
    'prayer_tracker',
    'ErrorKind',
    'PrayerUpdateResult',
]
