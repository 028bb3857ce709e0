"""
hackjudge/rbac.py
Judge identity and role checks for the queue API.

Sign-in happens in front of this service; the session layer forwards the
signed-in judge's email in the X-Judge-Email header. Here we only resolve
that email against the users table and check the role.
"""
import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from hackjudge.database import get_db
from hackjudge.errors import ErrorCode, ForbiddenError, UnauthorizedError
from hackjudge.orm.user import User
from hackjudge.services import registry_service

logger = logging.getLogger(__name__)

JUDGE_HEADER = "X-Judge-Email"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


async def get_current_judge(
    x_judge_email: Optional[str] = Header(default=None, alias=JUDGE_HEADER),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the requesting judge.
    Returns 401 without the header, 403 if the user may not judge.
    """
    email = normalize_email(x_judge_email)
    if not email:
        raise UnauthorizedError()

    user = await registry_service.get_user(db, email)
    if user is None or not user.can_judge:
        logger.warning(f"Access denied: {email} is not a judge")
        raise ForbiddenError(f"{email} is not registered as a judge", ErrorCode.JUDGE_NOT_ELIGIBLE)
    return user


async def require_admin(current_user: User = Depends(get_current_judge)) -> User:
    if not current_user.is_admin:
        logger.warning(f"Access denied: {current_user.email} attempted an admin action")
        raise ForbiddenError(
            "This action requires the admin role",
            details={"current_role": current_user.role.value},
        )
    return current_user
