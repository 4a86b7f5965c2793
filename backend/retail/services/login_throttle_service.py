"""
Login Throttling Service

Limits failed login attempts per identifier. After too many failures the
identifier is temporarily locked.

- Lockout after MAX_FAILED_ATTEMPTS failures within LOCKOUT_WINDOW
- Lockout lasts LOCKOUT_DURATION from the most recent failure
- Tracking uses LOGIN_FAILED rows in security_events
- A successful login resets the count
"""

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent, User
from retail.time_utils import utcnow


MAX_FAILED_ATTEMPTS = 5
LOCKOUT_WINDOW = timedelta(minutes=15)
LOCKOUT_DURATION = timedelta(minutes=15)


def _last_success_at(identifier: str):
    last = db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "LOGIN_SUCCESS",
        SecurityEvent.action == identifier,
    ).order_by(SecurityEvent.occurred_at.desc()).first()
    return last.occurred_at if last else None


def _recent_failures_query(identifier: str):
    cutoff = utcnow() - LOCKOUT_WINDOW
    last_success = _last_success_at(identifier)
    if last_success and last_success > cutoff:
        cutoff = last_success

    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "LOGIN_FAILED",
        SecurityEvent.action == identifier,
        SecurityEvent.occurred_at > cutoff
    )


def get_recent_failed_attempts(identifier: str) -> int:
    return _recent_failures_query(identifier).count()


def is_account_locked(identifier: str) -> tuple[bool, int | None]:
    """
    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    failures = _recent_failures_query(identifier)
    if failures.count() < MAX_FAILED_ATTEMPTS:
        return False, None

    most_recent = failures.order_by(SecurityEvent.occurred_at.desc()).first()
    lockout_end = most_recent.occurred_at + LOCKOUT_DURATION
    now = utcnow()
    if now < lockout_end:
        return True, int((lockout_end - now).total_seconds())
    return False, None


def record_failed_attempt(
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials"
) -> int:
    """Record a failed login; returns the number of recent failures."""
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.lower())
    ).first()

    db.session.add(SecurityEvent(
        user_id=user.id if user else None,
        event_type="LOGIN_FAILED",
        resource="/api/auth/login",
        action=identifier,
        success=False,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    ))
    db.session.commit()

    return get_recent_failed_attempts(identifier)


def record_successful_login(
    user_id: int,
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None
) -> None:
    db.session.add(SecurityEvent(
        user_id=user_id,
        event_type="LOGIN_SUCCESS",
        resource="/api/auth/login",
        action=identifier,
        success=True,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    ))
    db.session.commit()
