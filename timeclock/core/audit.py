"""Structured logging of authentication and device security events."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger("timeclock.auth")

DEVICE_TOKEN_FAILURE = "device_token_validation_failure"
STAFF_SESSION_FAILURE = "staff_session_validation_failure"
DEVICE_REVOCATION = "device_revocation"
DEVICE_DISABLED = "device_disabled"
DEVICE_REGISTRATION_FAILURE = "device_registration_failure"


def log_auth_event(
    event: str,
    device_id: Optional[str] = None,
    employee_id: Optional[str] = None,
    admin_id: Optional[str] = None,
    reason: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    entry = {
        "event": event,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "deviceId": device_id,
        "employeeId": employee_id,
        "adminId": admin_id,
        "reason": reason,
        "metadata": metadata,
    }
    entry = {k: v for k, v in entry.items() if v is not None}
    logger.warning("[AUTH_EVENT] %s", json.dumps(entry, default=str))
    return entry


def log_device_token_failure(device_id: Optional[str] = None, reason: Optional[str] = None):
    return log_auth_event(DEVICE_TOKEN_FAILURE, device_id=device_id, reason=reason)


def log_staff_session_failure(
    device_id: Optional[str] = None, employee_id: Optional[str] = None, reason: Optional[str] = None
):
    return log_auth_event(STAFF_SESSION_FAILURE, device_id=device_id, employee_id=employee_id, reason=reason)


def log_device_revocation(device_id: str, admin_id: str, reason: Optional[str] = None):
    return log_auth_event(DEVICE_REVOCATION, device_id=device_id, admin_id=admin_id, reason=reason)


def log_device_disabled(device_id: str, reason: Optional[str] = None):
    return log_auth_event(DEVICE_DISABLED, device_id=device_id, reason=reason)


def log_device_registration_failure(reason: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None):
    return log_auth_event(DEVICE_REGISTRATION_FAILURE, reason=reason, metadata=metadata)
