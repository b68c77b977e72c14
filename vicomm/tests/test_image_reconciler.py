import asyncio
from io import BytesIO
from itertools import count

from sqlalchemy import select
from starlette.datastructures import FormData, Headers, UploadFile

from vicomm.models.listing import Listing, ListingCategory
from vicomm.models.listing_image import ListingImage
from vicomm.models.user import User
from vicomm.schemas.image import ContentReplacement, MetadataUpdate, NewImage
from vicomm.services.image_reconciler import (
    apply_plan,
    group_image_fields,
    plan_images,
    read_image_descriptors,
)

MAX_SIZE = 3 * 1024 * 1024
CALGARY_ID = "clodun45p0000puvv2k02jp9v"


def _upload(data: bytes, content_type="image/png", filename="photo.png"):
    return UploadFile(
        file=BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def _read(items, persisted_ids=(), max_size=MAX_SIZE):
    return asyncio.run(read_image_descriptors(FormData(items), persisted_ids, max_size))


def _ids(prefix="fresh"):
    counter = count(1)
    return lambda: f"{prefix}{next(counter)}"


def test_group_image_fields_orders_by_index_and_ignores_other_fields():
    form = FormData(
        [
            ("title", "Bike"),
            ("listingImages[2].id", "c"),
            ("listingImages[0].id", "a"),
            ("listingImages[0].isThumbnail", "on"),
            ("listingImages[1].id", "  "),
            ("listingImages[1].file", ""),
        ]
    )
    fields = group_image_fields(form)
    assert [f.index for f in fields] == [0, 1, 2]
    assert fields[0].id == "a" and fields[0].is_thumbnail is True
    assert fields[1].id is None and fields[1].file is None
    assert fields[2].is_thumbnail is False


def test_descriptors_cover_the_three_cases():
    descriptors, errors = _read(
        [
            ("listingImages[0].file", _upload(b"new-bytes")),
            ("listingImages[0].isThumbnail", "on"),
            ("listingImages[1].id", "a"),
            ("listingImages[1].file", _upload(b"replaced", "image/jpeg")),
            ("listingImages[2].id", "b"),
        ],
        persisted_ids={"a", "b"},
    )
    assert errors == {}
    new, content, metadata = descriptors
    assert isinstance(new, NewImage)
    assert new.blob == b"new-bytes" and new.is_thumbnail is True
    assert isinstance(content, ContentReplacement)
    assert content.id == "a" and content.content_type == "image/jpeg"
    assert isinstance(metadata, MetadataUpdate)
    assert metadata.id == "b" and metadata.is_thumbnail is False


def test_empty_file_counts_as_no_payload():
    descriptors, errors = _read(
        [
            ("listingImages[0].id", "a"),
            ("listingImages[0].file", _upload(b"")),
            ("listingImages[1].file", _upload(b"")),
        ],
        persisted_ids={"a"},
    )
    assert errors == {}
    assert len(descriptors) == 1
    assert isinstance(descriptors[0], MetadataUpdate)


def test_more_than_one_thumbnail_is_rejected():
    descriptors, errors = _read(
        [
            ("listingImages[0].id", "a"),
            ("listingImages[0].isThumbnail", "on"),
            ("listingImages[1].file", _upload(b"x")),
            ("listingImages[1].isThumbnail", "true"),
        ],
        persisted_ids={"a"},
    )
    assert errors == {
        "listingImages": ["Each listing can only have at most 1 thumbnail!"]
    }


def test_oversized_file_gets_a_field_error():
    descriptors, errors = _read(
        [
            ("listingImages[0].file", _upload(b"ok")),
            ("listingImages[1].file", _upload(b"\x00" * (MAX_SIZE + 1))),
        ]
    )
    assert errors == {"listingImages[1].file": ["File size must be less than 3MB"]}


class _CountingUpload(UploadFile):
    bytes_read = 0

    async def read(self, size: int = -1) -> bytes:
        data = await super().read(size)
        self.bytes_read += len(data)
        return data


def test_oversized_file_is_not_read_past_the_limit():
    upload = _CountingUpload(
        file=BytesIO(b"\x00" * (MAX_SIZE * 16)),
        filename="huge.png",
        headers=Headers({"content-type": "image/png"}),
    )
    descriptors, errors = _read([("listingImages[0].file", upload)])
    assert errors == {"listingImages[0].file": ["File size must be less than 3MB"]}
    assert descriptors == []
    assert upload.bytes_read <= MAX_SIZE + 1


def test_file_of_exactly_the_limit_is_accepted():
    descriptors, errors = _read([("listingImages[0].file", _upload(b"\x00" * 8))], max_size=8)
    assert errors == {}
    assert len(descriptors) == 1


def test_non_image_upload_is_rejected():
    descriptors, errors = _read(
        [("listingImages[0].file", _upload(b"%PDF", "application/pdf", "doc.pdf"))]
    )
    assert errors == {"listingImages[0].file": ["File must be an image"]}


def test_unknown_and_duplicate_ids_are_rejected():
    descriptors, errors = _read(
        [
            ("listingImages[0].id", "someone-elses"),
            ("listingImages[1].id", "a"),
            ("listingImages[2].id", "a"),
        ],
        persisted_ids={"a"},
    )
    assert errors == {
        "listingImages[0].id": ["Image not found!"],
        "listingImages[2].id": ["Image submitted more than once!"],
    }


def test_plan_creates_one_row_per_new_image():
    plan = plan_images(
        [],
        [
            NewImage(content_type="image/png", blob=b"1"),
            NewImage(content_type="image/png", blob=b"2", is_thumbnail=True),
        ],
    )
    assert len(plan.creates) == 2
    assert plan.updates == [] and plan.deletes == []


def test_plan_content_replacement_gets_a_new_id():
    plan = plan_images(
        ["a"],
        [ContentReplacement(id="a", content_type="image/png", blob=b"new")],
        id_factory=_ids(),
    )
    (image_update,) = plan.updates
    assert image_update.id == "a"
    assert image_update.new_id == "fresh1"
    assert image_update.values() == {
        "id": "fresh1",
        "content_type": "image/png",
        "blob": b"new",
        "is_thumbnail": False,
    }
    assert plan.deletes == []


def test_plan_metadata_update_keeps_id_and_only_touches_thumbnail():
    plan = plan_images(["a"], [MetadataUpdate(id="a", is_thumbnail=True)])
    (image_update,) = plan.updates
    assert image_update.new_id == "a"
    assert image_update.content_changed is False
    assert image_update.values() == {"is_thumbnail": True}


def test_plan_deletes_persisted_ids_missing_from_submission():
    plan = plan_images(
        ["A", "B", "C"], [MetadataUpdate(id="A"), MetadataUpdate(id="C")]
    )
    assert plan.deletes == ["B"]


def test_plan_with_no_descriptors_deletes_everything():
    plan = plan_images(["A", "B"], [])
    assert plan.deletes == ["A", "B"]


def _seed_listing_with_images(db, images):
    user = User(email="owner@example.com", username="owner", password_hash="x")
    db.add(user)
    db.commit()
    category = db.execute(select(ListingCategory)).scalars().first()
    listing = Listing(
        id="listing1",
        title="Bike",
        description="Blue bike",
        owner_id=user.id,
        category_id=category.id,
        city_id=CALGARY_ID,
    )
    db.add(listing)
    for image_id, is_thumbnail in images:
        db.add(
            ListingImage(
                id=image_id,
                listing_id=listing.id,
                content_type="image/png",
                blob=image_id.encode(),
                is_thumbnail=is_thumbnail,
            )
        )
    db.commit()
    return listing


def _stored(db, listing_id):
    db.expire_all()
    rows = db.execute(
        select(ListingImage.id, ListingImage.is_thumbnail).where(
            ListingImage.listing_id == listing_id
        )
    ).all()
    return {image_id: is_thumbnail for image_id, is_thumbnail in rows}


def test_apply_plan_end_to_end_thumbnail_swap(db_session):
    listing = _seed_listing_with_images(db_session, [("1", True), ("2", False)])
    plan = plan_images(
        ["1", "2"],
        [
            MetadataUpdate(id="1", is_thumbnail=False),
            MetadataUpdate(id="2", is_thumbnail=True),
            NewImage(content_type="image/png", blob=b"third"),
        ],
    )
    assert plan.deletes == []
    assert len(plan.updates) == 2
    assert len(plan.creates) == 1

    apply_plan(db_session, listing.id, plan)
    db_session.commit()

    stored = _stored(db_session, listing.id)
    assert len(stored) == 3
    assert stored["1"] is False
    assert stored["2"] is True
    assert [image_id for image_id, thumb in stored.items() if thumb] == ["2"]


def test_apply_plan_replaces_id_on_content_change(db_session):
    listing = _seed_listing_with_images(db_session, [("A", False), ("B", False), ("C", True)])
    plan = plan_images(
        ["A", "B", "C"],
        [
            ContentReplacement(id="A", content_type="image/webp", blob=b"new-a"),
            MetadataUpdate(id="C", is_thumbnail=True),
        ],
        id_factory=_ids("A-v"),
    )
    apply_plan(db_session, listing.id, plan)
    db_session.commit()

    stored = _stored(db_session, listing.id)
    assert set(stored) == {"A-v1", "C"}
    replaced = db_session.get(ListingImage, "A-v1")
    assert replaced.blob == b"new-a"
    assert replaced.content_type == "image/webp"
    assert db_session.get(ListingImage, "A") is None


def test_apply_plan_resubmitting_unchanged_images_changes_nothing(db_session):
    listing = _seed_listing_with_images(db_session, [("1", True), ("2", False)])
    before = _stored(db_session, listing.id)
    plan = plan_images(
        ["1", "2"],
        [MetadataUpdate(id="1", is_thumbnail=True), MetadataUpdate(id="2")],
    )
    apply_plan(db_session, listing.id, plan)
    db_session.commit()

    assert _stored(db_session, listing.id) == before
    assert db_session.get(ListingImage, "1").blob == b"1"
