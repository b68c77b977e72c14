"""Reconciles the images submitted with a listing form against the stored ones.

A submission arrives as repeated multipart groups::

    listingImages[0].id           existing image id, absent for new images
    listingImages[0].file         uploaded file, absent or empty to keep the bytes
    listingImages[0].isThumbnail  "on" when checked

The groups are turned into typed descriptors (``NewImage``,
``ContentReplacement``, ``MetadataUpdate``), validated as a whole, and then
planned into create / update / delete operations. ``apply_plan`` issues
those operations on the caller's session without committing, so the
listing fields and its images land in one transaction.

Replacing the bytes of an image gives it a fresh id. Image URLs are keyed
by id and served with an immutable cache header, so an old URL can never
serve new bytes.
"""

import asyncio
import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from sqlalchemy import delete, update
from sqlalchemy.orm import Session
from starlette.datastructures import FormData, UploadFile

from vicomm.models.listing_image import ListingImage
from vicomm.schemas.image import (
    ContentReplacement,
    ImageCreate,
    ImageDescriptor,
    ImagePlan,
    ImageUpdate,
    MetadataUpdate,
    NewImage,
)
from vicomm.utils.ids import generate_id

logger = logging.getLogger(__name__)

IMAGES_FIELD = "listingImages"
IMAGE_FIELD_RE = re.compile(r"^listingImages\[(\d+)\]\.(id|file|isThumbnail)$")
TRUTHY_VALUES = {"on", "true", "1", "yes"}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

FieldErrors = Dict[str, List[str]]


class RawImageFields(BaseModel):
    """One ``listingImages[N]`` group as it came off the wire."""

    index: int
    id: Optional[str] = None
    file: Optional[UploadFile] = None
    is_thumbnail: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def prefix(self) -> str:
        return f"{IMAGES_FIELD}[{self.index}]"


def parse_flag(value) -> bool:
    if not isinstance(value, str):
        return False
    return value.strip().lower() in TRUTHY_VALUES


def group_image_fields(form: FormData) -> List[RawImageFields]:
    """Collect ``listingImages[N].*`` fields into groups ordered by N."""
    groups: Dict[int, dict] = {}
    for key, value in form.multi_items():
        match = IMAGE_FIELD_RE.match(key)
        if not match:
            continue
        index, name = int(match.group(1)), match.group(2)
        groups.setdefault(index, {})[name] = value

    fields = []
    for index in sorted(groups):
        group = groups[index]

        image_id = group.get("id")
        if not isinstance(image_id, str) or not image_id.strip():
            image_id = None
        else:
            image_id = image_id.strip()

        upload = group.get("file")
        if not isinstance(upload, UploadFile):
            upload = None

        fields.append(
            RawImageFields(
                index=index,
                id=image_id,
                file=upload,
                is_thumbnail=parse_flag(group.get("isThumbnail")),
            )
        )
    return fields


async def _read_payload(
    upload: Optional[UploadFile], max_upload_size: int
) -> Optional[bytes]:
    """Read at most one byte past the limit, enough to flag oversized files."""
    if upload is None:
        return None
    data = await upload.read(max_upload_size + 1)
    # Browsers send an empty part for an untouched file input
    return data or None


def _add_error(errors: FieldErrors, field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def _size_message(max_upload_size: int) -> str:
    megabytes = max_upload_size / (1024 * 1024)
    if megabytes.is_integer():
        return f"File size must be less than {int(megabytes)}MB"
    return f"File size must be less than {max_upload_size} bytes"


async def read_image_descriptors(
    form: FormData,
    persisted_ids: Iterable[str],
    max_upload_size: int,
) -> Tuple[List[ImageDescriptor], FieldErrors]:
    """Parse and validate the image groups of a listing submission.

    Returns the descriptors in submission order together with field errors.
    Callers must not persist anything when the error map is non-empty.
    """
    fields = group_image_fields(form)
    owned = set(persisted_ids)
    errors: FieldErrors = {}

    thumbnails = [f for f in fields if f.is_thumbnail]
    if len(thumbnails) > 1:
        _add_error(
            errors, IMAGES_FIELD, "Each listing can only have at most 1 thumbnail!"
        )

    seen_ids = set()
    for f in fields:
        if f.id is None:
            continue
        if f.id not in owned:
            _add_error(errors, f"{f.prefix}.id", "Image not found!")
        elif f.id in seen_ids:
            _add_error(errors, f"{f.prefix}.id", "Image submitted more than once!")
        seen_ids.add(f.id)

    # Independent reads, no shared state between them
    payloads = await asyncio.gather(
        *(_read_payload(f.file, max_upload_size) for f in fields)
    )

    descriptors: List[ImageDescriptor] = []
    for f, blob in zip(fields, payloads):
        content_type = None
        if blob is not None:
            content_type = f.file.content_type or DEFAULT_CONTENT_TYPE
            if len(blob) > max_upload_size:
                _add_error(errors, f"{f.prefix}.file", _size_message(max_upload_size))
                continue
            if not content_type.startswith("image/"):
                _add_error(errors, f"{f.prefix}.file", "File must be an image")
                continue

        if f.id is None:
            if blob is None:
                # Empty slot, nothing to store
                continue
            descriptors.append(
                NewImage(
                    content_type=content_type, blob=blob, is_thumbnail=f.is_thumbnail
                )
            )
        elif blob is None:
            descriptors.append(MetadataUpdate(id=f.id, is_thumbnail=f.is_thumbnail))
        else:
            descriptors.append(
                ContentReplacement(
                    id=f.id,
                    content_type=content_type,
                    blob=blob,
                    is_thumbnail=f.is_thumbnail,
                )
            )

    return descriptors, errors


def plan_images(
    persisted_ids: Iterable[str],
    descriptors: Iterable[ImageDescriptor],
    id_factory: Callable[[], str] = generate_id,
) -> ImagePlan:
    """Partition validated descriptors into create / update / delete sets.

    Persisted ids that are not referenced by any descriptor are deleted.
    Content replacements get a new id from ``id_factory``.
    """
    creates: List[ImageCreate] = []
    updates: List[ImageUpdate] = []
    submitted_ids = set()

    for descriptor in descriptors:
        if isinstance(descriptor, NewImage):
            creates.append(
                ImageCreate(
                    content_type=descriptor.content_type,
                    blob=descriptor.blob,
                    is_thumbnail=descriptor.is_thumbnail,
                )
            )
        elif isinstance(descriptor, ContentReplacement):
            submitted_ids.add(descriptor.id)
            updates.append(
                ImageUpdate(
                    id=descriptor.id,
                    new_id=id_factory(),
                    content_type=descriptor.content_type,
                    blob=descriptor.blob,
                    is_thumbnail=descriptor.is_thumbnail,
                )
            )
        else:
            submitted_ids.add(descriptor.id)
            updates.append(
                ImageUpdate(
                    id=descriptor.id,
                    new_id=descriptor.id,
                    is_thumbnail=descriptor.is_thumbnail,
                )
            )

    deletes = sorted(set(persisted_ids) - submitted_ids)
    return ImagePlan(creates=creates, updates=updates, deletes=deletes)


def apply_plan(db: Session, listing_id: str, plan: ImagePlan) -> None:
    """Issue the planned statements on ``db``. The caller commits."""
    if plan.deletes:
        db.execute(
            delete(ListingImage)
            .where(
                ListingImage.listing_id == listing_id,
                ListingImage.id.in_(plan.deletes),
            )
            .execution_options(synchronize_session=False)
        )

    for image_update in plan.updates:
        # Content replacements rewrite the primary key in place
        db.execute(
            update(ListingImage)
            .where(
                ListingImage.listing_id == listing_id,
                ListingImage.id == image_update.id,
            )
            .values(**image_update.values())
            .execution_options(synchronize_session=False)
        )

    for image_create in plan.creates:
        db.add(
            ListingImage(
                id=generate_id(),
                listing_id=listing_id,
                content_type=image_create.content_type,
                blob=image_create.blob,
                is_thumbnail=image_create.is_thumbnail,
            )
        )

    logger.debug(
        "Image plan for listing %s: %d created, %d updated, %d deleted",
        listing_id,
        len(plan.creates),
        len(plan.updates),
        len(plan.deletes),
    )
