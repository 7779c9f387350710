"""
Authentication dependencies for FastAPI routes.

Extracts user identity from the X-User-Id header (set by the frontend after
its own login flow) and scopes projects to their owner.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import NotFoundError
from app.models.database_models import Project, User

logger = logging.getLogger(__name__)


async def get_current_user_id(
    x_user_id: str = Header(..., alias="X-User-Id"),
) -> str:
    """Extract the authenticated user ID from the request header. Raises 401 if empty."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header.",
        )
    return x_user_id


async def get_or_create_user(
    user_id: str = Depends(get_current_user_id),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Ensure the user exists in the local users table. Creates if needed."""
    user = await db.get(User, user_id)

    if user is None:
        user = User(
            id=user_id,
            email=(x_user_email or f"{user_id}@readiness.local").lower().strip(),
            name=x_user_name,
        )
        db.add(user)
        await db.flush()
        logger.info("Created new user: id=%s email=%s", user_id, user.email)

    return user


async def load_owned_project(db: AsyncSession, project_id: str, user_id: str) -> Project:
    """
    Fetch a project by its readable id, scoped to *user_id*.

    Raises:
        NotFoundError: missing, or owned by someone else.
    """
    result = await db.execute(
        select(Project).where(
            Project.project_id == project_id,
            Project.user_id == user_id,
        )
    )
    project = result.scalar_one_or_none()

    if project is None:
        raise NotFoundError(f"Project {project_id} not found.")

    return project


async def get_authorized_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Project:
    """Path-parameter dependency wrapping ``load_owned_project``."""
    return await load_owned_project(db, project_id, user_id)
