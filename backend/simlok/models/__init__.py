from .auth import User, SessionToken, USER_ROLES
from .security import SecurityEvent
from .submissions import (
    Submission,
    WorkerPhoto,
    QrScan,
    SimlokSequence,
    REVIEW_STATUSES,
    APPROVAL_STATUSES,
)

__all__ = [
    'User', 'SessionToken', 'USER_ROLES',
    'SecurityEvent',
    'Submission', 'WorkerPhoto', 'QrScan', 'SimlokSequence',
    'REVIEW_STATUSES', 'APPROVAL_STATUSES',
]
