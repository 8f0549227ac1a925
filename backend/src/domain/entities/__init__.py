"""Domain Entities - Core business objects"""

from .project import Project, Role, AdditionalInfo, Contact
from .application import Application, ApplicationMirror
from .user_profile import UserProfile
__all__ = [
    "Project",
    "Role",
    "AdditionalInfo",
    "Contact",
    "Application",
    "ApplicationMirror",
    "UserProfile",
]
