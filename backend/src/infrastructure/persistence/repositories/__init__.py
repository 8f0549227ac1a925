"""Document store backed repositories"""

from .project import DocumentProjectRepository, PROJECTS
from .application import DocumentApplicationRepository, APPLICATIONS, mirror_collection
from .user_profile import DocumentUserProfileRepository, USERS, PROJECT_SAVERS

__all__ = [
    "DocumentProjectRepository",
    "DocumentApplicationRepository",
    "DocumentUserProfileRepository",
    "PROJECTS",
    "APPLICATIONS",
    "USERS",
    "PROJECT_SAVERS",
    "mirror_collection",
]
