"""
Project Domain Entity
A posted project looking for collaborators
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from core.exceptions import ValidationException, MissingRequiredFieldException
from ..enums import ProjectStatus
from ..value_objects import IdentitySnapshot, parse_deadline


@dataclass(frozen=True)
class Role:
    """An open position within a project"""

    name: str
    responsibilities: List[str] = field(default_factory=list)
    requirements: List[str] = field(default_factory=list)
    members_required: int = 1

    def validate(self, position: int) -> None:
        prefix = f"roles[{position}]"
        if not self.name or not self.name.strip():
            raise MissingRequiredFieldException(f"{prefix}.roleName")
        if not [r for r in self.responsibilities if r and r.strip()]:
            raise ValidationException(f"{prefix}.responsibilities", "at least one responsibility is required")
        if not [r for r in self.requirements if r and r.strip()]:
            raise ValidationException(f"{prefix}.requirements", "at least one requirement is required")
        if self.members_required < 1:
            raise ValidationException(f"{prefix}.membersRequired", "must be at least 1")


@dataclass(frozen=True)
class AdditionalInfo:
    timing: str = ""
    stipend: str = ""
    duration: str = ""


@dataclass(frozen=True)
class Contact:
    email: str = ""
    link: Optional[str] = None


@dataclass(frozen=True)
class Project:
    """Project domain entity - immutable"""

    id: str
    creator: IdentitySnapshot

    # Listing content
    title: str
    headline: str
    description: str
    tech_stack: List[str] = field(default_factory=list)
    roles: List[Role] = field(default_factory=list)
    availability: str = ""
    additional_info: AdditionalInfo = field(default_factory=AdditionalInfo)
    contact: Contact = field(default_factory=Contact)
    location: str = ""
    mode: str = ""

    # Lifecycle
    deadline: Optional[str] = None
    status: ProjectStatus = ProjectStatus.OPEN

    # Timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def validate_for_create(self) -> None:
        """Checks applied to a new listing before it is written"""
        if not self.id:
            raise MissingRequiredFieldException("id")
        if not self.creator or not self.creator.user_id:
            raise MissingRequiredFieldException("creatorId")
        for name, value in (("projectTitle", self.title),
                            ("projectHeadline", self.headline),
                            ("projectDescription", self.description)):
            if not value or not value.strip():
                raise MissingRequiredFieldException(name)
        if not self.roles:
            raise ValidationException("roles", "at least one role is required")
        for position, role in enumerate(self.roles):
            role.validate(position)

    def deadline_date(self) -> Optional[date]:
        return parse_deadline(self.deadline)

    def is_open(self) -> bool:
        return self.status == ProjectStatus.OPEN

    def is_owned_by(self, user_id: str) -> bool:
        return bool(user_id) and self.creator.user_id == user_id

    def __str__(self) -> str:
        return f"Project({self.id}, status={self.status.value})"
