"""
Cascading Project Deletion
Removes a project together with its applications, their mirrors, and
every wishlist entry pointing at it
"""
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from application.repositories.document_store import IDocumentStore
from application.repositories.interfaces import IProjectRepository, IUserProfileRepository
from application.services.application_workflow import ApplicationWorkflow
from core.config import settings
from core.exceptions import (
    CascadeDeletionException,
    MissingRequiredFieldException,
    RepositoryException,
)


@dataclass(frozen=True)
class DeletionResult:
    deleted_application_count: int
    scrubbed_wishlist_count: int


class CascadeDeletionService:
    """
    Project deletion across collections.

    Steps:
        1. applications (roots + mirrors) in their own batches
        2. wishlist scrubbing, and
        3. the project document and its saver index, committed with the
           last wishlist chunk

    Every step is idempotent, so a failed deletion is retried by calling
    delete_project_completely again.
    """

    def __init__(
        self,
        store: IDocumentStore,
        workflow: ApplicationWorkflow,
        project_repo: IProjectRepository,
        user_repo: IUserProfileRepository,
        scrub_strategy: Optional[str] = None,
    ):
        self.store = store
        self.workflow = workflow
        self.project_repo = project_repo
        self.user_repo = user_repo
        self.scrub_strategy = scrub_strategy or settings.WISHLIST_SCRUB_STRATEGY

    async def delete_project_completely(self, project_id: str) -> DeletionResult:
        if not project_id:
            raise MissingRequiredFieldException("projectId")

        logger.info(f"Deleting project {project_id} (wishlist scrub: {self.scrub_strategy})")

        try:
            deleted = await self.workflow.delete_applications_for_project(project_id)
        except RepositoryException as e:
            logger.error(f"Project {project_id}: deleting applications failed, nothing else removed: {e}")
            raise CascadeDeletionException(project_id, "applications", e)

        try:
            savers = await self._find_savers(project_id)
            await self._commit_scrub_and_delete(project_id, savers)
        except RepositoryException as e:
            logger.error(
                f"Project {project_id}: {deleted} applications deleted but wishlist scrub / project "
                f"delete failed; retry the deletion: {e}"
            )
            raise CascadeDeletionException(project_id, "wishlists_and_project", e)

        logger.info(
            f"Deleted project {project_id}: {deleted} applications, {len(savers)} wishlist entries"
        )
        return DeletionResult(deleted_application_count=deleted, scrubbed_wishlist_count=len(savers))

    async def _find_savers(self, project_id: str) -> List[str]:
        if self.scrub_strategy == "index":
            return sorted(set(await self.user_repo.get_saver_ids(project_id)))

        # No index lookup: walk every user
        users = await self.user_repo.list_all()
        return sorted(user.id for user in users if user.has_saved(project_id))

    async def _commit_scrub_and_delete(self, project_id: str, savers: List[str]) -> None:
        # Each scrub writes the user document and the saver index
        per_batch = max(1, (settings.WRITE_BATCH_MAX_OPS - 2) // 2)
        chunks = [savers[i:i + per_batch] for i in range(0, len(savers), per_batch)] or [[]]

        for position, chunk in enumerate(chunks):
            batch = self.store.batch()
            for user_id in chunk:
                self.user_repo.stage_wishlist_remove(batch, user_id, project_id)
            if position == len(chunks) - 1:
                self.user_repo.stage_delete_saver_index(batch, project_id)
                self.project_repo.stage_delete(batch, project_id)
            await batch.commit()
