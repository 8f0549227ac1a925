"""
Application status transition policy
"""
from typing import Any

from core.exceptions import ValidationException
from ..enums import ApplicationStatus


def check_status_transition(current: ApplicationStatus, requested: Any) -> ApplicationStatus:
    """
    Validate a requested status change and return the target status.

    Every transition between known statuses is allowed, including moving
    back from accepted/rejected to pending. Unknown statuses are rejected.
    """
    try:
        target = ApplicationStatus(requested)
    except ValueError:
        allowed = ", ".join(s.value for s in ApplicationStatus)
        raise ValidationException("status", f"'{requested}' is not one of: {allowed}")
    return target
