from sqlalchemy import select

from vicomm.models.listing import Listing, ListingCategory

CALGARY_ID = "clodun45p0000puvv2k02jp9v"


def _add_listing(db, owner, listing_id, slug="buy-and-sell", is_featured=False):
    category_id = db.execute(
        select(ListingCategory.id).where(ListingCategory.slug == slug)
    ).scalar_one()
    db.add(
        Listing(
            id=listing_id,
            title=listing_id.title(),
            description="Something for sale",
            owner_id=owner.id,
            category_id=category_id,
            city_id=CALGARY_ID,
            is_featured=is_featured,
        )
    )
    db.commit()


def test_categories_with_listing_counts(client, db_session, make_user):
    owner = make_user()
    _add_listing(db_session, owner, "sofa")
    _add_listing(db_session, owner, "lamp")

    response = client.get("/categories/")
    assert response.status_code == 200
    counts = {c["slug"]: c["listing_count"] for c in response.json()}
    assert counts == {"buy-and-sell": 2, "pets": 0}


def test_category_page_splits_featured_listings(client, db_session, make_user):
    owner = make_user()
    _add_listing(db_session, owner, "sofa", is_featured=True)
    _add_listing(db_session, owner, "lamp")
    _add_listing(db_session, owner, "kitten", slug="pets")

    response = client.get("/categories/buy-and-sell")
    assert response.status_code == 200
    body = response.json()
    assert body["category"]["title"] == "Buy & Sell"
    assert [l["id"] for l in body["featured"]] == ["sofa"]
    assert [l["id"] for l in body["listings"]] == ["lamp"]
    assert body["listings"][0]["city"]["name"] == "Calgary"
    assert body["listings"][0]["thumbnail_id"] is None


def test_unknown_category(client):
    response = client.get("/categories/antiques")
    assert response.status_code == 404
