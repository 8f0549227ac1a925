"""
Domain Enums
Business enumerations for the marketplace
"""
from enum import Enum


class ProjectStatus(str, Enum):
    """Project listing status"""
    OPEN = "open"
    CLOSED = "closed"


class ApplicationStatus(str, Enum):
    """Status of an application to a project"""
    PENDING = "pending"
    INTERVIEWING = "interviewing"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SubscriptionKind(str, Enum):
    """Live query kinds offered by the change feed"""
    PROJECT = "project"
    APPLICATIONS_BY_PROJECT = "applications_by_project"
    APPLICATIONS_BY_USER = "applications_by_user"
    USER = "user"
