"""
Wishlist Service
Saved-project membership on the user document
"""
from typing import List, Optional

from loguru import logger

from application.repositories.document_store import IDocumentStore
from application.repositories.interfaces import IProjectRepository, IUserProfileRepository
from application.services.read_helpers import fetch_skip_absent
from core.exceptions import MissingRequiredFieldException
from domain.entities import Project


def _require(user_id: str, project_id: str) -> None:
    if not user_id:
        raise MissingRequiredFieldException("userId")
    if not project_id:
        raise MissingRequiredFieldException("projectId")


class WishlistService:
    """
    Saves and unsaves projects.

    Mutations use the store's set-union / set-difference transforms, so
    concurrent adds (or concurrent removes) of the same id converge to a
    single membership. The inverted index project_savers/{projectId} is
    written in the same batch.
    """

    def __init__(
        self,
        store: IDocumentStore,
        user_repo: IUserProfileRepository,
        project_repo: IProjectRepository,
    ):
        self.store = store
        self.user_repo = user_repo
        self.project_repo = project_repo

    async def save_project(self, user_id: str, project_id: str) -> None:
        _require(user_id, project_id)
        batch = self.store.batch()
        self.user_repo.stage_wishlist_add(batch, user_id, project_id)
        await batch.commit()
        logger.info(f"User {user_id} saved project {project_id}")

    async def unsave_project(self, user_id: str, project_id: str) -> None:
        _require(user_id, project_id)
        batch = self.store.batch()
        self.user_repo.stage_wishlist_remove(batch, user_id, project_id)
        await batch.commit()
        logger.info(f"User {user_id} removed project {project_id} from wishlist")

    async def toggle_save(self, user_id: str, project_id: str, known_state: Optional[bool] = None) -> bool:
        """
        Flip membership and return the new state.

        Without known_state the current membership is read first; that
        read is not atomic with the write, so two sessions toggling at
        once may both flip in the same direction.
        """
        _require(user_id, project_id)
        if known_state is None:
            known_state = await self.is_saved(user_id, project_id)

        if known_state:
            await self.unsave_project(user_id, project_id)
        else:
            await self.save_project(user_id, project_id)
        return not known_state

    async def is_saved(self, user_id: str, project_id: str) -> bool:
        profile = await self.user_repo.get_by_id(user_id)
        return profile is not None and profile.has_saved(project_id)

    async def get_saved_projects(self, user_id: str) -> List[Project]:
        """Saved projects in wishlist order; ids of deleted projects are skipped"""
        if not user_id:
            raise MissingRequiredFieldException("userId")
        profile = await self.user_repo.get_by_id(user_id)
        if profile is None or not profile.wishlist:
            return []
        return await fetch_skip_absent(profile.wishlist, self.project_repo.get_by_id, label="project")
