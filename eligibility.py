"""Blood donation eligibility: one donation per identity every three calendar months.

The cutoff is calendar based rather than a fixed day count. Stepping back
keeps the day of month; when the target month is too short the surplus days
roll forward into the next month, so three months before May 31 is March 3
(March 2 in a leap year). A prior donation on or after the cutoff blocks a
new one.

``record_donation`` performs the check and the insert as one statement so
two concurrent submissions cannot both pass the check.
"""
import logging
import zlib
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, insert, literal, or_, select, text
from sqlalchemy.orm import Session

from models import BloodDonor, utcnow

logger = logging.getLogger(__name__)

DONATION_INTERVAL_MONTHS = 3


def months_before(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    first_of_month = moment.replace(year=year, month=month + 1, day=1)
    return first_of_month + timedelta(days=moment.day - 1)


def eligibility_cutoff(now: Optional[datetime] = None) -> datetime:
    return months_before(now or utcnow(), DONATION_INTERVAL_MONTHS)


def identity_clause(user_id: Optional[int], email: str):
    """Donations that count against a donor.

    Guests are tracked by the address they gave. An account also counts the
    guest donations made under the submitted email, so registering does not
    reset the window.
    """
    as_guest = and_(BloodDonor.user_id.is_(None), BloodDonor.email == email)
    if user_id is None:
        return as_guest
    return or_(BloodDonor.user_id == user_id, as_guest)


def lock_keys(user_id: Optional[int], email: str) -> List[int]:
    keys = [] if user_id is None else [f"donor:user:{user_id}"]
    keys.append(f"donor:email:{email.lower()}")
    return [zlib.crc32(key.encode()) for key in keys]


def _lock_identity(db: Session, user_id: Optional[int], email: str) -> None:
    """Serialize submissions for one identity until the transaction ends (PostgreSQL only).

    The account lock is always taken before the email lock, so a guest and an
    account submission for the same address wait on each other without
    deadlocking.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    for key in lock_keys(user_id, email):
        db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})


def record_donation(db: Session, values: dict, now: Optional[datetime] = None) -> Optional[int]:
    """Insert a donation unless the identity donated on or after the cutoff.

    Returns the new row id, or None when the donor is not yet eligible. The
    caller owns the transaction and must commit or roll back.
    """
    now = now or utcnow()
    user_id = values.get("user_id")
    email = values["email"]
    row = dict(values, donation_date=now, created_at=now)

    _lock_identity(db, user_id, email)
    recent = select(BloodDonor.id).where(
        identity_clause(user_id, email),
        BloodDonor.donation_date >= eligibility_cutoff(now),
    )
    columns = list(row)
    source = select(
        *[literal(row[name], type_=BloodDonor.__table__.c[name].type) for name in columns]
    ).where(~recent.exists())
    stmt = insert(BloodDonor).from_select(columns, source).returning(BloodDonor.id)

    new_id = db.execute(stmt).scalar_one_or_none()
    if new_id is None:
        logger.warning(f"Donation refused for user={user_id} email={email}: donated within {DONATION_INTERVAL_MONTHS} months")
    return new_id
