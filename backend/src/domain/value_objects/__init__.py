"""Value Objects - Immutable objects defined by their attributes"""

from .identity import IdentitySnapshot
from .deadline import parse_deadline, is_expired
from .transitions import check_status_transition
__all__ = [
    "IdentitySnapshot",
    "parse_deadline",
    "is_expired",
    "check_status_transition",
]
