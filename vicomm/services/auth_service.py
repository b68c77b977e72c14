from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional
from fastapi import Depends, HTTPException
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import or_
from starlette import status
from vicomm.config import settings
from vicomm.models.user import User
from fastapi.security import OAuth2PasswordBearer

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_bearer = OAuth2PasswordBearer(tokenUrl="auth/login")
optional_oauth2_bearer = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    email: str, user_id: int, role: str, expires_delta: Optional[timedelta] = None
):
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    encode = {"sub": email, "id": user_id, "role": role}
    expires = datetime.now(timezone.utc) + expires_delta
    encode.update({"exp": expires})
    return jwt.encode(encode, SECRET_KEY, algorithm=ALGORITHM)


def authenticate_user(login: str, password: str, db):
    """Accepts either the email or the username as login."""
    normalized = login.strip().lower()
    user: User = (
        db.query(User)
        .filter(or_(User.email == normalized, User.username == login.strip()))
        .first()
    )
    if not user:
        return False
    if not pwd_context.verify(password, user.password_hash):
        return False
    return user


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        email: str = payload.get("sub")
        user_id: int = payload.get("id")
        role: str = payload.get("role")
        if not email or not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not authenticate user",
            )
        return {"email": email, "id": user_id, "role": role}
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not authenticate user",
        )


async def get_current_user(token: Annotated[str, Depends(oauth2_bearer)]):
    return decode_access_token(token)


async def get_optional_user(
    token: Annotated[Optional[str], Depends(optional_oauth2_bearer)],
) -> Optional[dict]:
    """Like get_current_user, but anonymous callers get None instead of a 401."""
    if not token:
        return None
    try:
        return decode_access_token(token)
    except HTTPException:
        return None
