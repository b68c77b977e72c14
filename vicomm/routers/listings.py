from typing import Annotated

from fastapi import APIRouter, Depends, Request
from starlette import status

from vicomm.dependencies import OptionalUser, Permission, db_dependency, require_permission
from vicomm.schemas.listing import ListingDetail, ListingEditorData, ListingSaved
from vicomm.services.audit_log_service import AuditLogService
from vicomm.services.listing_service import ListingService
from vicomm.services.upvote_service import UpvoteService

router = APIRouter(prefix="/listings", tags=["listings"])

create_dependency = Annotated[dict, Depends(require_permission(Permission.CREATE_LISTINGS))]
update_dependency = Annotated[
    dict, Depends(require_permission(Permission.UPDATE_OWN_LISTINGS))
]
delete_dependency = Annotated[
    dict, Depends(require_permission(Permission.DELETE_OWN_LISTINGS))
]
upvote_dependency = Annotated[dict, Depends(require_permission(Permission.UPVOTE_LISTINGS))]


def _saved(listing) -> ListingSaved:
    slug = listing.category.slug
    return ListingSaved(
        id=listing.id,
        category_slug=slug,
        redirect_to=f"/category/{slug}/{listing.id}",
    )


@router.post("/", response_model=ListingSaved, status_code=status.HTTP_201_CREATED)
async def create_listing(
    db: db_dependency, current_user: create_dependency, request: Request
):
    """Create a listing from the multipart listing form."""
    form = await request.form()
    listing, plan = await ListingService().save_listing(
        db, form, owner_id=current_user.get("id")
    )
    AuditLogService().log_request(
        db=db,
        request=request,
        action="listing.create",
        resource_type="listing",
        resource_id=listing.id,
        user_id=current_user.get("id"),
        changes={"images": plan.summary()},
        status_code=status.HTTP_201_CREATED,
    )
    return _saved(listing)


@router.get("/{listing_id}", response_model=ListingDetail)
async def get_listing(db: db_dependency, listing_id: str, viewer: OptionalUser):
    viewer_id = viewer.get("id") if viewer else None
    return await ListingService().get_listing_detail(db, listing_id, viewer_id)


@router.get("/{listing_id}/edit", response_model=ListingEditorData)
async def get_listing_editor(
    db: db_dependency, listing_id: str, current_user: update_dependency
):
    return await ListingService().get_editor_data(
        db, listing_id, current_user.get("id")
    )


@router.put("/{listing_id}", response_model=ListingSaved)
async def update_listing(
    db: db_dependency,
    listing_id: str,
    current_user: update_dependency,
    request: Request,
):
    """Edit a listing and reconcile its images in one transaction.

    Image groups with an id keep or replace that image, groups without an
    id add one, and stored images missing from the form are deleted.
    """
    form = await request.form()
    listing, plan = await ListingService().save_listing(
        db, form, owner_id=current_user.get("id"), listing_id=listing_id
    )
    AuditLogService().log_request(
        db=db,
        request=request,
        action="listing.update",
        resource_type="listing",
        resource_id=listing.id,
        user_id=current_user.get("id"),
        changes={"images": plan.summary()},
        status_code=status.HTTP_200_OK,
    )
    return _saved(listing)


@router.delete("/{listing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_listing(
    db: db_dependency,
    listing_id: str,
    current_user: delete_dependency,
    request: Request,
):
    await ListingService().delete_listing(db, listing_id, current_user.get("id"))
    AuditLogService().log_request(
        db=db,
        request=request,
        action="listing.delete",
        resource_type="listing",
        resource_id=listing_id,
        user_id=current_user.get("id"),
        status_code=status.HTTP_204_NO_CONTENT,
    )


@router.post("/{listing_id}/upvote", status_code=status.HTTP_200_OK)
def upvote_listing(
    db: db_dependency,
    listing_id: str,
    current_user: upvote_dependency,
    request: Request,
):
    service = UpvoteService()
    upvote = service.add_upvote(db, listing_id, current_user.get("id"))
    AuditLogService().log_request(
        db=db,
        request=request,
        action="upvote.create",
        resource_type="upvote",
        resource_id=upvote.id,
        user_id=current_user.get("id"),
        status_code=status.HTTP_200_OK,
    )
    return {"status": "success", "upvote_count": service.count(db, listing_id)}


@router.delete("/{listing_id}/upvote", status_code=status.HTTP_200_OK)
def remove_listing_upvote(
    db: db_dependency,
    listing_id: str,
    current_user: upvote_dependency,
    request: Request,
):
    service = UpvoteService()
    service.remove_upvote(db, listing_id, current_user.get("id"))
    AuditLogService().log_request(
        db=db,
        request=request,
        action="upvote.delete",
        resource_type="upvote",
        resource_id=listing_id,
        user_id=current_user.get("id"),
        status_code=status.HTTP_200_OK,
    )
    return {"status": "success", "upvote_count": service.count(db, listing_id)}
