"""Worksheet routes.

Routes:
- GET    /worksheets                - List worksheets (search: title/description, status)
- POST   /worksheets                - Create a worksheet
- GET    /worksheets/{id}           - Worksheet detail
- PUT    /worksheets/{id}           - Replace a worksheet
- PATCH  /worksheets/{id}/progress  - Update status and/or progress only
- DELETE /worksheets/{id}           - Delete a worksheet
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select

from dealstack.core.activity import record_activity
from dealstack.db.connection import get_session
from dealstack.db.models import WorksheetModel
from dealstack.models import WorksheetStatus
from dealstack.query.filters import FilterSpec, ListFilter, apply_list_filter
from dealstack.web.dependencies import (
    CurrentUser,
    get_current_user,
    get_or_404,
    resolve_assignee,
)
from dealstack.web.models import WorksheetPayload, WorksheetProgressUpdate
from dealstack.web.serializers import serialize_worksheet

router = APIRouter(tags=["worksheets"])

WORKSHEET_FILTERS = FilterSpec(
    search_columns=(WorksheetModel.title, WorksheetModel.description),
    status_column=WorksheetModel.status,
)


@router.get("/worksheets")
async def list_worksheets(
    search: str | None = Query(default=None),
    status: WorksheetStatus | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
):
    list_filter = ListFilter(search=search, status=status)

    async with get_session() as session:
        stmt = select(WorksheetModel).where(WorksheetModel.org_id == user.org_id)
        stmt = apply_list_filter(stmt, WORKSHEET_FILTERS, list_filter)
        result = await session.execute(stmt.order_by(WorksheetModel.created_at.desc()))
        worksheets = result.scalars().all()

    return {"data": [serialize_worksheet(w) for w in worksheets]}


@router.post("/worksheets", status_code=201)
async def create_worksheet(
    payload: WorksheetPayload,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        assignee = await resolve_assignee(session, user.org_id, payload.assigned_to)
        worksheet = WorksheetModel(
            org_id=user.org_id,
            title=payload.title,
            description=payload.description,
            assignee=assignee,
            status=payload.status.value,
            priority=payload.priority.value,
            due_date=payload.due_date,
            progress=payload.progress,
        )
        session.add(worksheet)
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "worksheet",
            "created",
            f"Worksheet '{worksheet.title}' created",
            entity_id=worksheet.id,
            username=user.username,
        )

    return {"data": serialize_worksheet(worksheet)}


@router.get("/worksheets/{worksheet_id}")
async def get_worksheet(worksheet_id: str, user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        worksheet = await get_or_404(
            session, WorksheetModel, user.org_id, worksheet_id, "worksheet"
        )
    return {"data": serialize_worksheet(worksheet)}


@router.put("/worksheets/{worksheet_id}")
async def update_worksheet(
    worksheet_id: str,
    payload: WorksheetPayload,
    user: CurrentUser = Depends(get_current_user),
):
    async with get_session() as session:
        worksheet = await get_or_404(
            session, WorksheetModel, user.org_id, worksheet_id, "worksheet"
        )
        worksheet.assignee = await resolve_assignee(session, user.org_id, payload.assigned_to)
        worksheet.title = payload.title
        worksheet.description = payload.description
        worksheet.status = payload.status.value
        worksheet.priority = payload.priority.value
        worksheet.due_date = payload.due_date
        worksheet.progress = payload.progress
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "worksheet",
            "updated",
            f"Worksheet '{worksheet.title}' updated",
            entity_id=worksheet.id,
            username=user.username,
        )

    return {"data": serialize_worksheet(worksheet)}


@router.patch("/worksheets/{worksheet_id}/progress")
async def update_worksheet_progress(
    worksheet_id: str,
    payload: WorksheetProgressUpdate,
    user: CurrentUser = Depends(get_current_user),
):
    """Partial edit; completing a worksheet also sets its progress to 100."""
    async with get_session() as session:
        worksheet = await get_or_404(
            session, WorksheetModel, user.org_id, worksheet_id, "worksheet"
        )
        if payload.status is not None:
            worksheet.status = payload.status.value
            if payload.status == WorksheetStatus.COMPLETED and payload.progress is None:
                worksheet.progress = 100
        if payload.progress is not None:
            worksheet.progress = payload.progress
        await session.flush()
        record_activity(
            session,
            user.org_id,
            "worksheet",
            "progress",
            f"Worksheet '{worksheet.title}' is {worksheet.status} ({worksheet.progress}%)",
            entity_id=worksheet.id,
            username=user.username,
        )

    return {"data": serialize_worksheet(worksheet)}


@router.delete("/worksheets/{worksheet_id}")
async def delete_worksheet(worksheet_id: str, user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        worksheet = await get_or_404(
            session, WorksheetModel, user.org_id, worksheet_id, "worksheet"
        )
        await session.delete(worksheet)
        record_activity(
            session,
            user.org_id,
            "worksheet",
            "deleted",
            f"Worksheet '{worksheet.title}' deleted",
            entity_id=worksheet.id,
            username=user.username,
        )

    return {"success": True}
