# Models module
from .user import User
from .job import Job, JobStatus
from .candidate import Candidate, CandidateStatus
from .activity_log import ActivityLog
from .user_quota import UserQuota
from .notification_preference import NotificationPreference
from .revoked_token import RevokedToken

__all__ = [
    "User",
    "Job",
    "JobStatus",
    "Candidate",
    "CandidateStatus",
    "ActivityLog",
    "UserQuota",
    "NotificationPreference",
    "RevokedToken"
]
