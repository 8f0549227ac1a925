"""
Reconciliation
Finds (and optionally repairs) divergence between denormalized copies:
application roots vs. mirrors, and wishlists vs. live projects
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple

from loguru import logger

from application.repositories.document_store import IDocumentStore, WriteBatch
from application.repositories.interfaces import (
    IApplicationRepository,
    IProjectRepository,
    IUserProfileRepository,
)
from core.config import settings
from core.exceptions import InconsistencyDetected
from domain.entities import Application


@dataclass
class ReconciliationReport:
    issues: List[InconsistencyDetected] = field(default_factory=list)
    repaired_count: int = 0

    def by_kind(self) -> Dict[str, int]:
        counts: Dict[str, int] = defaultdict(int)
        for issue in self.issues:
            counts[issue.kind] += 1
        return dict(counts)

    @property
    def is_consistent(self) -> bool:
        return not self.issues


class ReconciliationService:
    """
    Roots are authoritative. Repairs rewrite mirrors from roots, delete
    orphan mirrors and drop wishlist ids of deleted projects. Duplicate
    applications are reported, never merged automatically.
    """

    def __init__(
        self,
        store: IDocumentStore,
        project_repo: IProjectRepository,
        application_repo: IApplicationRepository,
        user_repo: IUserProfileRepository,
    ):
        self.store = store
        self.project_repo = project_repo
        self.application_repo = application_repo
        self.user_repo = user_repo

    async def scan(self, repair: bool = False) -> ReconciliationReport:
        report = ReconciliationReport()
        staged: List[Callable[[WriteBatch], None]] = []

        roots = await self.application_repo.list_all()
        roots_by_id = {root.id: root for root in roots}

        self._find_duplicates(roots, report)

        for root in roots:
            mirror = await self.application_repo.get_mirror(root.applicant_id, root.id)
            if mirror is not None and not mirror.diverges_from(root):
                continue

            # The listing can predate writes made while the scan runs
            current = await self.application_repo.get_by_id(root.id)
            if current is None:
                continue
            mirror = await self.application_repo.get_mirror(current.applicant_id, current.id)
            if mirror is not None and not mirror.diverges_from(current):
                continue

            kind = "missing_mirror" if mirror is None else "diverged_mirror"
            report.issues.append(InconsistencyDetected(
                kind, current.id, {"applicantId": current.applicant_id}, repaired=repair
            ))
            if repair:
                await self.application_repo.write_mirror(current)
                report.repaired_count += 1

        users = await self.user_repo.list_all()
        user_ids = {user.id for user in users} | {root.applicant_id for root in roots if root.applicant_id}
        for user_id in sorted(user_ids):
            for mirror in await self.application_repo.list_mirrors(user_id):
                root = roots_by_id.get(mirror.application_id)
                if root is None:
                    root = await self.application_repo.get_by_id(mirror.application_id)
                if root is None or root.applicant_id != user_id:
                    report.issues.append(InconsistencyDetected(
                        "orphan_mirror", mirror.application_id, {"applicantId": user_id}, repaired=repair
                    ))
                    staged.append(self._stage_mirror_delete(user_id, mirror.application_id))

        project_ids = {project.id for project in await self.project_repo.list_all()}
        for user in users:
            for project_id in user.wishlist:
                if project_id in project_ids or await self.project_repo.get_by_id(project_id) is not None:
                    continue
                report.issues.append(InconsistencyDetected(
                    "dangling_wishlist", user.id, {"projectId": project_id}, repaired=repair
                ))
                staged.append(self._stage_wishlist_remove(user.id, project_id))

        if repair and staged:
            await self._commit(staged)
            report.repaired_count += len(staged)

        for issue in report.issues:
            logger.warning(f"Inconsistency: {issue.describe()}")
        logger.info(f"Reconciliation finished: {report.by_kind() or 'consistent'}, repaired={report.repaired_count}")
        return report

    @staticmethod
    def _find_duplicates(roots: List[Application], report: ReconciliationReport) -> None:
        pairs: Dict[Tuple[str, str], List[str]] = defaultdict(list)
        for root in roots:
            pairs[(root.project_id, root.applicant_id)].append(root.id)
        for (project_id, applicant_id), ids in pairs.items():
            if len(ids) > 1:
                report.issues.append(InconsistencyDetected(
                    "duplicate_application",
                    f"{project_id}:{applicant_id}",
                    {"applicationIds": sorted(ids)},
                ))

    def _stage_mirror_delete(self, user_id: str, application_id: str) -> Callable[[WriteBatch], None]:
        return lambda batch: self.application_repo.stage_delete_mirror(batch, user_id, application_id)

    def _stage_wishlist_remove(self, user_id: str, project_id: str) -> Callable[[WriteBatch], None]:
        return lambda batch: self.user_repo.stage_wishlist_remove(batch, user_id, project_id)

    async def _commit(self, staged: List[Callable[[WriteBatch], None]]) -> None:
        # Wishlist removals stage two writes each
        per_batch = max(1, settings.WRITE_BATCH_MAX_OPS // 2)
        for start in range(0, len(staged), per_batch):
            batch = self.store.batch()
            for stage in staged[start:start + per_batch]:
                stage(batch)
            await batch.commit()
