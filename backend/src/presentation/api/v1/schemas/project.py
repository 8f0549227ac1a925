"""
Project Schemas
Request/response models for project listings, camelCase on the wire
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from domain.entities import AdditionalInfo, Contact, Project, Role
from domain.enums import ProjectStatus
from domain.value_objects import IdentitySnapshot


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RoleSchema(CamelModel):
    role_name: str
    responsibilities: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    members_required: int = 1

    def to_entity(self) -> Role:
        return Role(
            name=self.role_name,
            responsibilities=list(self.responsibilities),
            requirements=list(self.requirements),
            members_required=self.members_required,
        )

    @classmethod
    def from_entity(cls, role: Role) -> "RoleSchema":
        return cls(
            role_name=role.name,
            responsibilities=list(role.responsibilities),
            requirements=list(role.requirements),
            members_required=role.members_required,
        )


class AdditionalInfoSchema(CamelModel):
    timing: str = ""
    stipend: str = ""
    duration: str = ""


class ContactSchema(CamelModel):
    email: str = ""
    link: Optional[str] = None


class ProjectCreateRequest(CamelModel):
    """New listing; the creator is taken from the caller's identity"""

    id: Optional[str] = Field(None, description="Client-generated id; a random id is assigned when omitted")
    project_title: str
    project_headline: str
    project_description: str
    tech_stack: List[str] = Field(default_factory=list)
    roles: List[RoleSchema] = Field(default_factory=list)
    availability: str = ""
    additional_info: AdditionalInfoSchema = Field(default_factory=AdditionalInfoSchema)
    contact: ContactSchema = Field(default_factory=ContactSchema)
    location: str = ""
    mode: str = ""
    last_date: Optional[str] = Field(None, description="Application deadline, YYYY-MM-DD")

    def to_entity(self, project_id: str, creator: IdentitySnapshot) -> Project:
        return Project(
            id=project_id,
            creator=creator,
            title=self.project_title,
            headline=self.project_headline,
            description=self.project_description,
            tech_stack=list(self.tech_stack),
            roles=[role.to_entity() for role in self.roles],
            availability=self.availability,
            additional_info=AdditionalInfo(**self.additional_info.model_dump()),
            contact=Contact(**self.contact.model_dump()),
            location=self.location,
            mode=self.mode,
            deadline=self.last_date,
        )


# Request attribute -> Project attribute
_UPDATE_FIELDS = {
    "project_title": "title",
    "project_headline": "headline",
    "project_description": "description",
    "tech_stack": "tech_stack",
    "roles": "roles",
    "availability": "availability",
    "additional_info": "additional_info",
    "contact": "contact",
    "location": "location",
    "mode": "mode",
    "last_date": "deadline",
    "status": "status",
}


class ProjectUpdateRequest(CamelModel):
    """Partial update; creator and timestamps are not accepted"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    project_title: Optional[str] = None
    project_headline: Optional[str] = None
    project_description: Optional[str] = None
    tech_stack: Optional[List[str]] = None
    roles: Optional[List[RoleSchema]] = None
    availability: Optional[str] = None
    additional_info: Optional[AdditionalInfoSchema] = None
    contact: Optional[ContactSchema] = None
    location: Optional[str] = None
    mode: Optional[str] = None
    last_date: Optional[str] = None
    status: Optional[str] = None

    def to_changes(self) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            # Only the deadline can be cleared with an explicit null
            if value is None and name != "last_date":
                continue
            if name == "roles":
                value = [role.to_entity() for role in value]
            elif name == "additional_info":
                value = AdditionalInfo(**value.model_dump())
            elif name == "contact":
                value = Contact(**value.model_dump())
            changes[_UPDATE_FIELDS[name]] = value
        return changes


class ProjectResponse(CamelModel):
    id: str
    creator_id: str
    creator_name: str = ""
    creator_username: str = ""
    creator_image: str = ""
    project_title: str
    project_headline: str
    project_description: str
    tech_stack: List[str]
    roles: List[RoleSchema]
    availability: str
    additional_info: AdditionalInfoSchema
    contact: ContactSchema
    location: str
    mode: str
    last_date: Optional[str] = None
    status: ProjectStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, project: Project) -> "ProjectResponse":
        return cls(
            id=project.id,
            creator_id=project.creator.user_id,
            creator_name=project.creator.display_name,
            creator_username=project.creator.username,
            creator_image=project.creator.avatar_url,
            project_title=project.title,
            project_headline=project.headline,
            project_description=project.description,
            tech_stack=list(project.tech_stack),
            roles=[RoleSchema.from_entity(role) for role in project.roles],
            availability=project.availability,
            additional_info=AdditionalInfoSchema(
                timing=project.additional_info.timing,
                stipend=project.additional_info.stipend,
                duration=project.additional_info.duration,
            ),
            contact=ContactSchema(email=project.contact.email, link=project.contact.link),
            location=project.location,
            mode=project.mode,
            last_date=project.deadline,
            status=project.status,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class ProjectDeletedResponse(CamelModel):
    project_id: str
    deleted_application_count: int
    scrubbed_wishlist_count: int
