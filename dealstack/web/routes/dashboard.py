"""Dashboard routes.

Routes:
- GET /dashboard/stats   - Headline counts, change percentages and revenue
- GET /dashboard/recent  - Newest activity feed entries (?limit=)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from dealstack.config import get_config
from dealstack.db.connection import get_session
from dealstack.reporting.dashboard_metrics import compute_dashboard_stats, recent_activity
from dealstack.web.dependencies import CurrentUser, get_current_user

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard/stats")
async def dashboard_stats(user: CurrentUser = Depends(get_current_user)):
    config = get_config()
    async with get_session() as session:
        stats = await compute_dashboard_stats(
            session, user.org_id, comparison_days=config.stats.comparison_days
        )
    return {"data": stats.as_dict()}


@router.get("/dashboard/recent")
async def dashboard_recent(
    limit: int | None = Query(default=None, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
):
    """Activity feed, newest first. Defaults to RECENT_ACTIVITY_LIMIT entries."""
    limit = limit or get_config().stats.recent_activity_limit
    async with get_session() as session:
        entries = await recent_activity(session, user.org_id, limit=limit)
    return {"data": entries}
