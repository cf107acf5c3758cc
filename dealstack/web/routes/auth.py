"""Authentication routes.

Routes:
- POST /auth/login   - Verify credentials and set the session cookie
- POST /auth/logout  - Invalidate the session and clear the cookie
- GET  /auth/me      - The signed-in user
- GET  /auth/users   - Active users of the caller's organisation (assignee pickers)
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Cookie, Depends, HTTPException, Response
from sqlalchemy import select

from dealstack.config import get_config
from dealstack.db.connection import get_session
from dealstack.db.models import UserModel
from dealstack.models import UserRole
from dealstack.web.auth import (
    SESSION_COOKIE,
    create_session,
    logout as auth_logout,
    verify_credentials,
    verify_credentials_db,
)
from dealstack.web.dependencies import CurrentUser, get_current_user
from dealstack.web.models import LoginRequest
from dealstack.web.serializers import serialize_user

logger = structlog.get_logger()

router = APIRouter(tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        max_age=get_config().auth.session_expiry_hours * 3600,
        samesite="lax",
    )


@router.post("/auth/login")
async def login(payload: LoginRequest, response: Response):
    """Sign in with database credentials, falling back to the environment admin."""
    is_valid, user = await verify_credentials_db(payload.email, payload.password)
    if is_valid:
        token = create_session(
            user.email, org_id=user.org_id, role=user.role, user_id=str(user.id)
        )
        _set_session_cookie(response, token)
        logger.info("login_succeeded", username=user.email, method="db")
        return {"data": serialize_user(user)}

    if verify_credentials(payload.email, payload.password):
        # Env admin is always admin of the default organisation
        config = get_config()
        token = create_session(payload.email, org_id=config.org_id, role=UserRole.ADMIN.value)
        _set_session_cookie(response, token)
        logger.info("login_succeeded", username=payload.email, method="env")
        return {
            "data": {
                "id": None,
                "name": payload.email,
                "email": payload.email,
                "role": UserRole.ADMIN.value,
                "isActive": True,
            }
        }

    logger.warning("login_failed", username=payload.email)
    raise HTTPException(status_code=401, detail="Invalid email or password")


@router.post("/auth/logout")
async def logout(response: Response, session: str | None = Cookie(default=None)):
    auth_logout(session)
    response.delete_cookie(SESSION_COOKIE)
    return {"success": True}


@router.get("/auth/me")
async def me(user: CurrentUser = Depends(get_current_user)):
    return {
        "data": {
            "id": user.user_id,
            "username": user.username,
            "orgId": user.org_id,
            "role": user.role,
        }
    }


@router.get("/auth/users")
async def list_users(user: CurrentUser = Depends(get_current_user)):
    async with get_session() as session:
        result = await session.execute(
            select(UserModel)
            .where(UserModel.org_id == user.org_id, UserModel.is_active.is_(True))
            .order_by(UserModel.name)
        )
        users = result.scalars().all()

    return {"data": [serialize_user(u) for u in users]}
