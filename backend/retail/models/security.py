from __future__ import annotations

from ..extensions import db
from retail.time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Append-only security audit log: failed/successful logins and
    permission denials.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_type_action", "event_type", "action"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True, index=True)

    # LOGIN_FAILED, LOGIN_SUCCESS, PERMISSION_DENIED
    event_type = db.Column(db.String(32), nullable=False, index=True)
    success = db.Column(db.Boolean, nullable=False)

    resource = db.Column(db.String(255), nullable=True)
    # Login identifier or permission code
    action = db.Column(db.String(255), nullable=True)
    reason = db.Column(db.String(255), nullable=True)

    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "success": self.success,
            "resource": self.resource,
            "action": self.action,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
