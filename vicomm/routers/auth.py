import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status, HTTPException, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_

from vicomm.dependencies import CurrentUser, db_dependency
from vicomm.limits import limiter
from vicomm.models.user import User, UserRole
from vicomm.schemas.user import Token, UserCreate, UserResponse
from vicomm.services.audit_log_service import AuditLogService
from vicomm.services.auth_service import (
    authenticate_user,
    create_access_token,
    get_password_hash,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/hour")
def create_user(request: Request, db: db_dependency, user_request: UserCreate):
    email = user_request.email.lower()
    existing = (
        db.query(User)
        .filter(or_(User.email == email, User.username == user_request.username))
        .first()
    )
    if existing:
        field = "Email" if existing.email == email else "Username"
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field} is already taken",
        )

    user_model = User(
        email=email,
        username=user_request.username,
        name=user_request.name,
        phone_number=user_request.phone_number,
        password_hash=get_password_hash(user_request.password),
        role=UserRole.USER,
        is_active=True,
    )
    db.add(user_model)
    db.commit()
    db.refresh(user_model)

    AuditLogService().log_request(
        db=db,
        request=request,
        action="user.create",
        resource_type="user",
        resource_id=user_model.id,
        user_id=user_model.id,
        status_code=status.HTTP_201_CREATED,
    )
    return user_model


@router.post("/login", response_model=Token, status_code=status.HTTP_200_OK)
@limiter.limit("5/minute")
async def login_for_access_token(
    request: Request,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: db_dependency,
):
    user = authenticate_user(form_data.username, form_data.password, db)
    if not user:
        AuditLogService().log_request(
            db=db,
            request=request,
            action="auth.login",
            resource_type="auth",
            status="failure",
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_message="invalid_credentials",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    if not user.is_active:
        AuditLogService().log_request(
            db=db,
            request=request,
            action="auth.login",
            resource_type="auth",
            user_id=user.id,
            status="failure",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_message="account_inactive",
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This account has been deactivated",
        )

    token = create_access_token(user.email, user.id, user.role.value)
    AuditLogService().log_request(
        db=db,
        request=request,
        action="auth.login",
        resource_type="auth",
        user_id=user.id,
        status_code=status.HTTP_200_OK,
    )
    return {"access_token": token, "token_type": "bearer"}


@router.patch("/update_password", status_code=status.HTTP_200_OK)
@limiter.limit("10/hour")
def update_password(
    request: Request,
    db: db_dependency,
    user: CurrentUser,
    current_password: str,
    new_password: str,
    confirm_password: str,
):
    database_user = db.query(User).filter(User.id == user.get("id")).first()
    if not database_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not verify_password(current_password, database_user.password_hash):
        AuditLogService().log_request(
            db=db,
            request=request,
            action="auth.password_update",
            resource_type="auth",
            user_id=database_user.id,
            status="failure",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_message="wrong_current_password",
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Wrong current password"
        )
    if new_password != confirm_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password and Confirm Password do not match",
        )

    database_user.password_hash = get_password_hash(new_password)
    db.commit()
    AuditLogService().log_request(
        db=db,
        request=request,
        action="auth.password_update",
        resource_type="auth",
        user_id=database_user.id,
        status_code=status.HTTP_200_OK,
    )
    return {"message": "Password updated successfully"}
