"""
Locking rules for prayer attendance writes.

Every write to a prayer slot passes through authorize():
- A member's own write always succeeds and locks the slot.
- Anyone else may fill in an unlocked slot as a courtesy, but it stays
  unlocked so the owner can confirm or correct it later.
- Once the owner has locked a slot, only the owner may change it.

Admins follow the same rules as any other member.
"""

from dataclasses import dataclass
from typing import Optional, Union

from masjid.models import AttendanceRecord, Member, Prayer

ACTOR_HAS_NO_MEMBER_RECORD = 'actor_has_no_member_record'
SLOT_LOCKED_BY_OWNER = 'slot_locked_by_owner'


@dataclass(frozen=True)
class Permit:
    lock_after: bool
    is_self: bool

    allowed = True


@dataclass(frozen=True)
class Deny:
    reason: str

    allowed = False


Decision = Union[Permit, Deny]


def authorize(
    actor_member: Optional[Member],
    target_member: Member,
    prayer: Prayer,
    current_record: Optional[AttendanceRecord],
) -> Decision:
    """
    Decide whether actor_member may write target_member's prayer slot.

    Args:
        actor_member: Member linked to the calling identity, or None if unlinked
        target_member: Member whose attendance is being written
        prayer: Which prayer slot
        current_record: Existing record for (target, date), or None

    Returns:
        Permit(lock_after, is_self) or Deny(reason)
    """
    if actor_member is None:
        return Deny(ACTOR_HAS_NO_MEMBER_RECORD)

    is_self = actor_member.id == target_member.id

    if current_record is None or not current_record.slot(prayer).locked:
        return Permit(lock_after=is_self, is_self=is_self)

    if is_self:
        return Permit(lock_after=True, is_self=True)

    return Deny(SLOT_LOCKED_BY_OWNER)
