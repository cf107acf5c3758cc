"""Shared dependencies for DealStack API routes.

Dependencies are injected using FastAPI's Depends() system.

Usage:
    from fastapi import Depends
    from dealstack.web.dependencies import CurrentUser, get_current_user

    @router.get("/customers")
    async def list_customers(user: CurrentUser = Depends(get_current_user)):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar
from uuid import UUID

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dealstack.config import get_config
from dealstack.db.models import Base, CustomerModel, UserModel
from dealstack.db.queries import fetch_owned, fetch_user
from dealstack.web.auth import require_admin, require_auth

ModelT = TypeVar("ModelT", bound=Base)


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated caller and the organisation they act within."""

    username: str
    org_id: str
    role: str
    user_id: str | None = None


def _current_user(session_data: dict[str, Any]) -> CurrentUser:
    return CurrentUser(
        username=session_data.get("username", "unknown"),
        org_id=session_data.get("org_id") or get_config().org_id,
        role=session_data.get("role", "viewer"),
        user_id=session_data.get("user_id"),
    )


def get_current_user(session_data: dict[str, Any] = Depends(require_auth)) -> CurrentUser:
    """Resolve the session into a CurrentUser, defaulting the org from config."""
    return _current_user(session_data)


def get_admin_user(session_data: dict[str, Any] = Depends(require_admin)) -> CurrentUser:
    """Like get_current_user, 403 unless the caller is an admin."""
    return _current_user(session_data)


def parse_uuid(value: str, label: str = "record") -> UUID:
    """Parse a path id, 400 on malformed input."""
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID format") from None


async def get_or_404(
    session: AsyncSession,
    model: type[ModelT],
    org_id: str,
    record_id: str | UUID,
    label: str,
) -> ModelT:
    """Load a tenant-scoped record or raise 404."""
    if not isinstance(record_id, UUID):
        record_id = parse_uuid(record_id, label)
    record = await fetch_owned(session, model, org_id, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"{label.capitalize()} not found")
    return record


async def resolve_customer(session: AsyncSession, org_id: str, customer_id: UUID) -> CustomerModel:
    """Referenced customer for a new or replaced record, 400 if unknown."""
    customer = await fetch_owned(session, CustomerModel, org_id, customer_id)
    if customer is None:
        raise HTTPException(status_code=400, detail="Customer does not exist")
    return customer


async def resolve_assignee(
    session: AsyncSession, org_id: str, user_id: UUID | None
) -> UserModel | None:
    """Referenced (optional) assignee, 400 if given but unknown."""
    if user_id is None:
        return None
    user = await fetch_user(session, org_id, user_id)
    if user is None:
        raise HTTPException(status_code=400, detail="Assigned user does not exist")
    return user
