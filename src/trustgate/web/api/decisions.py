"""REST API for the decision audit trail. Read-only."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from trustgate.policy.models import Reason
from trustgate.storage.repos import AuditRepo

router = APIRouter(tags=["decisions"])

_REASONS = {r.value for r in Reason}


@router.get("/decisions")
async def list_decisions(
    request: Request,
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    reason: str | None = None,
):
    if reason is not None and reason not in _REASONS:
        return JSONResponse(
            status_code=400,
            content={"detail": f"Unknown reason: {reason}"},
        )
    repo = AuditRepo(request.app.state.db)
    return await repo.list_recent(limit=limit, offset=offset, reason=reason)


@router.get("/decisions/summary")
async def decision_summary(request: Request):
    repo = AuditRepo(request.app.state.db)
    counts = await repo.count_by_reason()
    by_reason = {r.value: counts.get(r.value, 0) for r in Reason}
    not_required = by_reason[Reason.MATCHED_TRUSTED_NETWORK.value]
    return {
        "total": sum(by_reason.values()),
        "second_factor_required": sum(by_reason.values()) - not_required,
        "second_factor_skipped": not_required,
        "by_reason": by_reason,
    }


@router.get("/decisions/{record_id}")
async def get_decision(record_id: str, request: Request):
    repo = AuditRepo(request.app.state.db)
    record = await repo.get(record_id)
    if not record:
        return JSONResponse(
            status_code=404,
            content={"detail": "Decision not found"},
        )
    return record
