"""
Admin Endpoints
Maintenance jobs: deadline sweep and consistency checks
"""
from fastapi import APIRouter, Depends, Query

from application.services.deadline_sweeper import DeadlineSweeper
from application.services.reconciliation import ReconciliationService
from presentation.api.v1.container import get_deadline_sweeper, get_reconciliation_service
from presentation.api.v1.schemas.user import (
    InconsistencySchema,
    ReconciliationResponse,
    SweepResponse,
)


router = APIRouter()


@router.post("/admin/sweep", response_model=SweepResponse)
async def auto_close_expired_projects(
    sweeper: DeadlineSweeper = Depends(get_deadline_sweeper)
):
    """Close every open project whose deadline has passed"""
    result = await sweeper.auto_close_expired_projects()
    return SweepResponse(updated_count=result.updated_count, scanned_count=result.scanned_count)


@router.post("/admin/reconcile", response_model=ReconciliationResponse)
async def reconcile(
    repair: bool = Query(False, description="Rewrite mirrors and drop dangling references"),
    reconciliation: ReconciliationService = Depends(get_reconciliation_service)
):
    """
    Compare application roots with mirrors and wishlists with projects.

    Duplicate applications are only reported.
    """
    report = await reconciliation.scan(repair=repair)
    return ReconciliationResponse(
        consistent=report.is_consistent,
        repaired_count=report.repaired_count,
        counts=report.by_kind(),
        issues=[
            InconsistencySchema(
                kind=issue.kind,
                identifier=issue.identifier,
                details=issue.details,
                repaired=issue.repaired,
            )
            for issue in report.issues
        ],
    )
