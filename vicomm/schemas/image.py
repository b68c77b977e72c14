from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class NewImage(BaseModel):
    """Image group submitted without an id."""

    kind: Literal["new"] = "new"
    content_type: str
    blob: bytes
    is_thumbnail: bool = False


class ContentReplacement(BaseModel):
    """Existing image submitted with a new file."""

    kind: Literal["content"] = "content"
    id: str
    content_type: str
    blob: bytes
    is_thumbnail: bool = False


class MetadataUpdate(BaseModel):
    """Existing image submitted without a file."""

    kind: Literal["metadata"] = "metadata"
    id: str
    is_thumbnail: bool = False


ImageDescriptor = Annotated[
    Union[NewImage, ContentReplacement, MetadataUpdate],
    Field(discriminator="kind"),
]


class ImageCreate(BaseModel):
    content_type: str
    blob: bytes
    is_thumbnail: bool


class ImageUpdate(BaseModel):
    id: str
    # Same as id for metadata-only updates
    new_id: str
    is_thumbnail: bool
    content_type: Optional[str] = None
    blob: Optional[bytes] = None

    @property
    def content_changed(self) -> bool:
        return self.blob is not None

    def values(self) -> dict:
        """Column values for the UPDATE statement."""
        if not self.content_changed:
            return {"is_thumbnail": self.is_thumbnail}
        return {
            "id": self.new_id,
            "content_type": self.content_type,
            "blob": self.blob,
            "is_thumbnail": self.is_thumbnail,
        }


class ImagePlan(BaseModel):
    creates: List[ImageCreate] = []
    updates: List[ImageUpdate] = []
    deletes: List[str] = []

    def summary(self) -> dict:
        return {
            "created": len(self.creates),
            "updated": [
                {"id": u.id, "new_id": u.new_id, "is_thumbnail": u.is_thumbnail}
                for u in self.updates
            ],
            "deleted": list(self.deletes),
        }


class ListingImageRef(BaseModel):
    id: str
    is_thumbnail: bool

    model_config = ConfigDict(from_attributes=True)
