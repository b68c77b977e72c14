from sqlalchemy import select

from vicomm.dependencies import ROLE_PERMISSIONS, Permission
from vicomm.models.audit_log import AuditLog
from vicomm.models.listing import Listing, ListingCategory
from vicomm.models.user import UserRole
from vicomm.services.auth_service import create_access_token

CALGARY_ID = "clodun45p0000puvv2k02jp9v"


def _auth_headers(user):
    token = create_access_token(user.email, user.id, user.role.value)
    return {"Authorization": f"Bearer {token}"}


def _listing(db, owner):
    category_id = db.execute(select(ListingCategory.id)).scalars().first()
    db.add(
        Listing(
            id="sofa",
            title="Sofa",
            description="Comfy",
            owner_id=owner.id,
            category_id=category_id,
            city_id=CALGARY_ID,
        )
    )
    db.commit()


def test_admin_can_feature_listing(client, db_session, make_user):
    admin = make_user("admin", role=UserRole.ADMIN)
    _listing(db_session, make_user("seller"))

    response = client.patch(
        "/admin/listings/sofa/featured",
        params={"is_featured": True},
        headers=_auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json() == {"id": "sofa", "is_featured": True}

    db_session.expire_all()
    assert db_session.get(Listing, "sofa").is_featured is True


def test_user_cannot_feature_listing(client, db_session, make_user):
    seller = make_user("seller")
    _listing(db_session, seller)

    response = client.patch(
        "/admin/listings/sofa/featured",
        params={"is_featured": True},
        headers=_auth_headers(seller),
    )
    assert response.status_code == 403


def test_feature_unknown_listing(client, make_user):
    admin = make_user("admin", role=UserRole.ADMIN)
    response = client.patch(
        "/admin/listings/missing/featured",
        params={"is_featured": True},
        headers=_auth_headers(admin),
    )
    assert response.status_code == 404


def test_audit_logs_record_listing_changes(client, db_session, make_user):
    admin = make_user("admin", role=UserRole.ADMIN)
    _listing(db_session, make_user("seller"))
    client.patch(
        "/admin/listings/sofa/featured",
        params={"is_featured": True},
        headers=_auth_headers(admin),
    )

    db_session.expire_all()
    entry = db_session.query(AuditLog).filter(AuditLog.action == "listing.feature").one()
    assert entry.resource_id == "sofa"
    assert entry.user_id == admin.id

    response = client.get(
        "/admin/audit-logs",
        params={"resource_type": "listing"},
        headers=_auth_headers(admin),
    )
    assert response.status_code == 200
    assert [log["action"] for log in response.json()] == ["listing.feature"]

    history = client.get(
        "/admin/audit-logs/listing/sofa", headers=_auth_headers(admin)
    )
    assert history.status_code == 200
    assert len(history.json()) == 1


def test_audit_logs_are_admin_only(client, make_user):
    seller = make_user("seller")
    response = client.get("/admin/audit-logs", headers=_auth_headers(seller))
    assert response.status_code == 403


def test_healthy(client):
    response = client.get("/healthy")
    assert response.status_code == 200
    assert response.json() == {"status": "Healthy"}


def test_role_permissions():
    assert set(ROLE_PERMISSIONS["user"]) == {
        Permission.CREATE_LISTINGS,
        Permission.UPDATE_OWN_LISTINGS,
        Permission.DELETE_OWN_LISTINGS,
        Permission.UPVOTE_LISTINGS,
    }
    assert set(ROLE_PERMISSIONS["admin"]) == set(Permission)
