from enum import Enum
from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException
from starlette import status
from sqlalchemy.orm import Session

from vicomm.database import SessionLocal
from vicomm.services.auth_service import get_current_user, get_optional_user


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
OptionalUser = Annotated[Optional[dict], Depends(get_optional_user)]


class Permission(str, Enum):
    CREATE_LISTINGS = "create:listings"
    UPDATE_OWN_LISTINGS = "update:own:listings"
    DELETE_OWN_LISTINGS = "delete:own:listings"
    UPVOTE_LISTINGS = "upvote:listings"
    FEATURE_LISTINGS = "feature:listings"
    VIEW_AUDIT_LOGS = "view:audit_logs"


# Map role strings (as embedded in JWT) to allowed permissions
ROLE_PERMISSIONS: dict[str, list[Permission]] = {
    "user": [
        Permission.CREATE_LISTINGS,
        Permission.UPDATE_OWN_LISTINGS,
        Permission.DELETE_OWN_LISTINGS,
        Permission.UPVOTE_LISTINGS,
    ],
    "admin": [
        Permission.CREATE_LISTINGS,
        Permission.UPDATE_OWN_LISTINGS,
        Permission.DELETE_OWN_LISTINGS,
        Permission.UPVOTE_LISTINGS,
        Permission.FEATURE_LISTINGS,
        Permission.VIEW_AUDIT_LOGS,
    ],
}


def require_permission(required: Permission) -> Callable[..., dict]:
    def dependency(current_user: CurrentUser) -> dict:
        if not current_user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not authenticate user",
            )

        role = current_user.get("role")
        if role is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not authenticate user",
            )

        allowed = ROLE_PERMISSIONS.get(role, [])
        if required not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

        return current_user

    return dependency
