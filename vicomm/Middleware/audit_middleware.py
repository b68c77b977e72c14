import asyncio
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt
from sqlalchemy.exc import SQLAlchemyError

from vicomm.database import SessionLocal
from vicomm.models.user import User
from vicomm.services.audit_log_service import AuditLogService, client_ip
from vicomm.services.auth_service import ALGORITHM, SECRET_KEY

logger = logging.getLogger(__name__)

# Thread pool for executing blocking database operations
_executor = ThreadPoolExecutor(max_workers=5)

SKIPPED_PATHS = {"/healthy", "/docs", "/openapi.json", "/redoc"}


def _log_audit_sync(
    user_id: Optional[int],
    status: str,
    status_code: Optional[int],
    error_message: Optional[str],
    ip_address: Optional[str],
    user_agent: Optional[str],
    method: str,
    path: str,
    duration_ms: int,
):
    """Write one http.request audit entry, runs in the thread pool.

    Database errors are logged and dropped so audit logging never breaks
    the request it describes.
    """
    db = SessionLocal()
    try:
        # Tokens can outlive their user
        if user_id is not None and db.get(User, user_id) is None:
            user_id = None

        AuditLogService().create_log(
            db=db,
            action="http.request",
            resource_type="http",
            user_id=user_id,
            status=status,
            status_code=status_code,
            error_message=error_message,
            ip_address=ip_address,
            user_agent=user_agent,
            request_method=method,
            request_path=path,
            duration_ms=duration_ms,
        )
    except SQLAlchemyError:
        logger.warning("Audit logging failed for %s %s", method, path, exc_info=True)
    finally:
        db.close()


def _user_id_from_header(auth_header: str) -> Optional[int]:
    if not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        # Endpoint will handle auth
        return None
    return payload.get("id")


async def audit_log_middleware(request: Request, call_next):
    """Record every request in the audit log without blocking the response.

    Disabled when TESTING=true.
    """
    if os.getenv("TESTING") == "true":
        return await call_next(request)

    method = request.method
    path = request.url.path
    if path in SKIPPED_PATHS:
        return await call_next(request)

    start_time = time.time()
    user_id = _user_id_from_header(request.headers.get("authorization", ""))
    ip_address = client_ip(request)
    user_agent = request.headers.get("user-agent")
    loop = asyncio.get_running_loop()

    try:
        response = await call_next(request)
    except Exception as exc:
        duration_ms = int((time.time() - start_time) * 1000)
        loop.run_in_executor(
            _executor,
            _log_audit_sync,
            user_id,
            "error",
            None,
            str(exc)[:1000],
            ip_address,
            user_agent,
            method,
            path,
            duration_ms,
        )
        raise

    status_code = getattr(response, "status_code", None)
    duration_ms = int((time.time() - start_time) * 1000)
    status = "success" if status_code and status_code < 400 else "failure"
    loop.run_in_executor(
        _executor,
        _log_audit_sync,
        user_id,
        status,
        status_code,
        None,
        ip_address,
        user_agent,
        method,
        path,
        duration_ms,
    )
    return response
