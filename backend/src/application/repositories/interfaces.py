"""
Repository Interfaces (Abstract Base Classes)
Define contracts for data access without implementation details
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from domain.entities import Project, Application, ApplicationMirror, UserProfile
from domain.enums import ApplicationStatus, ProjectStatus
from .document_store import WriteBatch


class IProjectRepository(ABC):
    """Project repository interface"""

    @abstractmethod
    async def get_by_id(self, project_id: str) -> Optional[Project]:
        """Get project by ID"""
        pass

    @abstractmethod
    async def list_all(self) -> List[Project]:
        """All projects, unordered"""
        pass

    @abstractmethod
    async def list_by_creator(self, user_id: str) -> List[Project]:
        """Projects whose creator snapshot has this user id, unordered"""
        pass

    @abstractmethod
    async def create(self, project: Project) -> None:
        """Create new project; DuplicateResourceException on id collision"""
        pass

    @abstractmethod
    async def update(self, project_id: str, changes: Dict[str, Any]) -> None:
        """Partial update keyed by entity attribute names; refreshes updatedAt"""
        pass

    @abstractmethod
    async def set_status(self, project_id: str, status: ProjectStatus) -> None:
        """Write the status field only"""
        pass

    @abstractmethod
    def stage_delete(self, batch: WriteBatch, project_id: str) -> None:
        """Add the project deletion to a batch"""
        pass


class IApplicationRepository(ABC):
    """Application repository interface (roots and per-user mirrors)"""

    @abstractmethod
    async def get_by_id(self, application_id: str) -> Optional[Application]:
        pass

    @abstractmethod
    async def find_by_project_and_applicant(self, project_id: str, applicant_id: str) -> List[Application]:
        """Roots for the pair; more than one means a past duplicate"""
        pass

    @abstractmethod
    async def list_by_project(self, project_id: str) -> List[Application]:
        pass

    @abstractmethod
    async def list_by_applicant(self, applicant_id: str) -> List[Application]:
        pass

    @abstractmethod
    async def list_all(self) -> List[Application]:
        pass

    @abstractmethod
    async def get_mirror(self, applicant_id: str, application_id: str) -> Optional[ApplicationMirror]:
        pass

    @abstractmethod
    async def list_mirrors(self, applicant_id: str) -> List[ApplicationMirror]:
        pass

    @abstractmethod
    async def create_with_mirror(self, application: Application) -> None:
        """Conditional root create plus mirror, in one atomic batch"""
        pass

    @abstractmethod
    async def write_mirror(self, application: Application) -> None:
        """Rewrite the mirror from its root"""
        pass

    @abstractmethod
    async def update_status(self, application: Application, status: ApplicationStatus) -> None:
        """Root status and mirror in one atomic batch"""
        pass

    @abstractmethod
    def stage_delete(self, batch: WriteBatch, application: Application) -> None:
        """Add root and mirror deletion to a batch"""
        pass

    @abstractmethod
    def stage_delete_mirror(self, batch: WriteBatch, applicant_id: str, application_id: str) -> None:
        pass


class IUserProfileRepository(ABC):
    """User profile repository interface"""

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    async def list_all(self) -> List[UserProfile]:
        pass

    @abstractmethod
    async def create(self, profile: UserProfile) -> None:
        """Create profile; DuplicateResourceException when it exists"""
        pass

    @abstractmethod
    async def complete(self, profile: UserProfile) -> None:
        """Merge identity and profile fields onto an existing document, keeping its wishlist"""
        pass

    @abstractmethod
    async def update(self, user_id: str, changes: Dict[str, Any]) -> None:
        """Partial update keyed by entity attribute names"""
        pass

    @abstractmethod
    async def get_saver_ids(self, project_id: str) -> List[str]:
        """User ids recorded in the inverted wishlist index"""
        pass

    @abstractmethod
    def stage_wishlist_add(self, batch: WriteBatch, user_id: str, project_id: str) -> None:
        """Set-union the id into the wishlist and the inverted index"""
        pass

    @abstractmethod
    def stage_wishlist_remove(self, batch: WriteBatch, user_id: str, project_id: str) -> None:
        """Set-difference the id from the wishlist and the inverted index"""
        pass

    @abstractmethod
    def stage_delete_saver_index(self, batch: WriteBatch, project_id: str) -> None:
        pass
