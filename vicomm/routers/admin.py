from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette import status

from vicomm.dependencies import Permission, db_dependency, require_permission
from vicomm.schemas.audit_log import AuditLogResponse
from vicomm.services.audit_log_service import AuditLogService
from vicomm.services.listing_service import ListingService

router = APIRouter(prefix="/admin", tags=["admin"])

feature_dependency = Annotated[
    dict, Depends(require_permission(Permission.FEATURE_LISTINGS))
]
audit_dependency = Annotated[dict, Depends(require_permission(Permission.VIEW_AUDIT_LOGS))]


@router.patch("/listings/{listing_id}/featured", status_code=status.HTTP_200_OK)
async def set_listing_featured(
    db: db_dependency,
    admin: feature_dependency,
    listing_id: str,
    request: Request,
    is_featured: bool = Query(..., description="Whether the listing is featured"),
):
    listing = await ListingService().set_featured(db, listing_id, is_featured)
    AuditLogService().log_request(
        db=db,
        request=request,
        action="listing.feature",
        resource_type="listing",
        resource_id=listing.id,
        user_id=admin.get("id"),
        changes={"is_featured": is_featured},
        status_code=status.HTTP_200_OK,
    )
    return {"id": listing.id, "is_featured": listing.is_featured}


@router.get("/audit-logs", response_model=List[AuditLogResponse])
def get_audit_logs(
    db: db_dependency,
    admin: audit_dependency,
    user_id: Optional[int] = Query(None),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    return AuditLogService().get_logs(
        db,
        user_id=user_id,
        resource_type=resource_type,
        resource_id=resource_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        skip=skip,
    )


@router.get(
    "/audit-logs/{resource_type}/{resource_id}",
    response_model=List[AuditLogResponse],
)
def get_resource_history(
    db: db_dependency, admin: audit_dependency, resource_type: str, resource_id: str
):
    return AuditLogService().get_resource_history(db, resource_type, resource_id)
