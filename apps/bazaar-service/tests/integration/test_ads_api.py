import pytest

from bazaar.db import models


@pytest.fixture
def kathmandu_area(location_factory):
    province = location_factory(name="Bagmati", type="province")
    district = location_factory(name="Kathmandu", type="district", parent=province)
    return location_factory(name="Thamel", type="area", parent=district)


def _ad_payload(category, **overrides):
    payload = {
        "title": "iPhone 13 Pro",
        "description": "Lightly used, with box and charger.",
        "price": 95000,
        "condition": "Brand New",
        "categoryId": category.id,
    }
    payload.update(overrides)
    return payload


def test_create_ad_publishes_with_location_slug(client, seller, auth_headers, category_factory, kathmandu_area):
    phones = category_factory(name="Mobiles")
    resp = client.post(
        "/ads",
        json=_ad_payload(phones, areaId=kathmandu_area.id, isNegotiable=True),
        headers=auth_headers(seller),
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["status"] == "approved"
    assert body["condition"] == "new"
    assert body["slug"] == f"iphone-13-pro-thamel-kathmandu-{body['id']}"
    assert body["sellerName"] == "Ram Seller"
    assert body["customFields"] == {"isNegotiable": True}
    assert [loc["name"] for loc in body["locationBreadcrumb"]] == ["Bagmati", "Kathmandu", "Thamel"]


def test_create_ad_requires_valid_category(client, seller, auth_headers, category_factory):
    headers = auth_headers(seller)
    payload = _ad_payload(category_factory())
    payload.pop("categoryId")
    missing = client.post("/ads", json=payload, headers=headers)
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Category is required"

    payload["categoryId"] = 9999
    assert client.post("/ads", json=payload, headers=headers).json()["detail"] == "Invalid category"

    payload["categoryId"] = None
    payload["subcategoryId"] = 9999
    assert client.post("/ads", json=payload, headers=headers).status_code == 400


def test_create_ad_rejects_negative_price(client, seller, auth_headers, category_factory):
    resp = client.post("/ads", json=_ad_payload(category_factory(), price=-5), headers=auth_headers(seller))
    assert resp.status_code == 400


def test_list_ads_filters_and_paginates(client, seller, ad_factory, category_factory, location_factory):
    vehicles = category_factory(name="Vehicles")
    bikes = category_factory(name="Bikes", parent=vehicles)
    phones = category_factory(name="Mobiles")
    pokhara = location_factory(name="Pokhara")
    ad_factory(seller, title="Pulsar 220", price=180000, category=bikes, location=pokhara, condition="used")
    ad_factory(seller, title="Honda Civic", price=2500000, category=vehicles)
    ad_factory(seller, title="Samsung S21", price=60000, category=phones, condition="new")
    ad_factory(seller, title="Pending phone", price=1000, category=phones, status="pending")

    all_public = client.get("/ads").json()
    assert all_public["pagination"]["total"] == 3

    in_vehicles = client.get("/ads", params={"categoryId": vehicles.id}).json()
    assert {a["title"] for a in in_vehicles["ads"]} == {"Pulsar 220", "Honda Civic"}

    by_location = client.get("/ads", params={"locationId": pokhara.id}).json()
    assert [a["title"] for a in by_location["ads"]] == ["Pulsar 220"]

    priced = client.get("/ads", params={"minPrice": 50000, "maxPrice": 200000, "sortBy": "price_low"}).json()
    assert [a["title"] for a in priced["ads"]] == ["Samsung S21", "Pulsar 220"]

    used = client.get("/ads", params={"condition": "reconditioned"}).json()
    assert [a["title"] for a in used["ads"]] == ["Pulsar 220"]

    searched = client.get("/ads", params={"search": "honda"}).json()
    assert [a["title"] for a in searched["ads"]] == ["Honda Civic"]

    page = client.get("/ads", params={"limit": 2, "page": 2, "sortBy": "price_high"}).json()
    assert page["pagination"] == {
        "total": 3,
        "page": 2,
        "limit": 2,
        "totalPages": 2,
        "hasNext": False,
        "hasPrev": True,
    }
    assert [a["title"] for a in page["ads"]] == ["Samsung S21"]


def test_featured_ads_float_to_top_of_newest(client, seller, ad_factory):
    ad_factory(seller, title="Featured sofa", is_featured=True)
    ad_factory(seller, title="Plain table")
    titles = [a["title"] for a in client.get("/ads").json()["ads"]]
    assert titles[0] == "Featured sofa"


def test_non_public_status_listing_needs_staff(client, seller, editor, auth_headers, ad_factory):
    ad_factory(seller, title="Waiting", status="pending")
    assert client.get("/ads", params={"status": "pending"}).status_code == 403
    assert client.get("/ads", params={"status": "pending"}, headers=auth_headers(seller)).status_code == 403
    staff = client.get("/ads", params={"status": "pending"}, headers=auth_headers(editor))
    assert staff.status_code == 200
    assert [a["title"] for a in staff.json()["ads"]] == ["Waiting"]


def test_get_ad_by_id_or_slug_counts_views(client, seller, ad_factory):
    ad = ad_factory(seller)
    first = client.get(f"/ads/{ad.id}")
    assert first.status_code == 200
    assert first.json()["viewCount"] == 1
    second = client.get(f"/ads/{ad.slug}")
    assert second.json()["id"] == ad.id
    assert second.json()["viewCount"] == 2


def test_get_ad_with_non_ascii_digits_is_not_found(client, seller, ad_factory):
    ad_factory(seller)
    for key in ("\u00b2", "\u0661\u0662"):
        resp = client.get(f"/ads/{key}")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Ad not found"


def test_unpublished_ads_are_hidden_from_strangers(client, seller, user_factory, auth_headers, ad_factory):
    pending = ad_factory(seller, title="Draft", status="pending")
    stranger = user_factory()

    assert client.get(f"/ads/{pending.id}").status_code == 404
    assert client.get(f"/ads/{pending.id}", headers=auth_headers(stranger)).status_code == 404
    assert client.get(f"/ads/{pending.id}", headers=auth_headers(seller)).status_code == 200
    assert client.get("/ads/does-not-exist").status_code == 404


def test_my_ads_lists_every_status(client, seller, auth_headers, ad_factory, user_factory):
    ad_factory(seller, title="Live")
    ad_factory(seller, title="Rejected", status="rejected")
    ad_factory(user_factory(), title="Someone else")
    resp = client.get("/ads/mine", headers=auth_headers(seller))
    assert resp.status_code == 200
    assert {a["title"] for a in resp.json()} == {"Live", "Rejected"}


def test_update_ad_regenerates_slug_on_title_change(client, seller, auth_headers, ad_factory):
    ad = ad_factory(seller)
    headers = auth_headers(seller)
    same = client.put(f"/ads/{ad.id}", json={"price": 90000}, headers=headers)
    assert same.status_code == 200
    assert same.json()["slug"] == ad.slug
    assert same.json()["price"] == 90000

    renamed = client.put(f"/ads/{ad.id}", json={"title": "iPhone 14"}, headers=headers)
    assert renamed.json()["slug"] == f"iphone-14-{ad.id}"


def test_only_owner_can_update_or_delete(client, seller, user_factory, auth_headers, ad_factory):
    ad = ad_factory(seller)
    other = auth_headers(user_factory())
    update = client.put(f"/ads/{ad.id}", json={"price": 1}, headers=other)
    assert update.status_code == 403
    assert update.json()["detail"] == "You can only modify your own ads"
    assert client.delete(f"/ads/{ad.id}", headers=other).status_code == 403


def test_owner_soft_delete(client, seller, auth_headers, ad_factory, db_session):
    ad = ad_factory(seller)
    headers = auth_headers(seller)
    resp = client.delete(f"/ads/{ad.id}", headers=headers)
    assert resp.json() == {"success": True, "message": "Ad deleted successfully"}
    db_session.refresh(ad)
    assert ad.deleted_at is not None
    assert ad.deleted_by == seller.id
    assert client.get(f"/ads/{ad.id}").status_code == 404
    again = client.delete(f"/ads/{ad.id}", headers=headers)
    assert again.status_code == 400
    assert client.delete("/ads/9999", headers=headers).status_code == 404


def test_upload_images_sets_primary_and_enforces_limits(client, seller, auth_headers, ad_factory, tmp_path):
    ad = ad_factory(seller)
    headers = auth_headers(seller)
    resp = client.post(
        f"/ads/{ad.id}/images",
        files=[
            ("images", ("front.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg")),
            ("images", ("back.png", b"\x89PNGbytes", "image/png")),
        ],
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    images = resp.json()["images"]
    assert len(images) == 2
    assert sum(1 for img in images if img["isPrimary"]) == 1
    assert resp.json()["primaryImage"] is not None
    assert all((tmp_path / "uploads" / img["filePath"]).exists() for img in images)

    bad = client.post(
        f"/ads/{ad.id}/images",
        files=[("images", ("notes.txt", b"hello", "text/plain"))],
        headers=headers,
    )
    assert bad.status_code == 400

    too_many = client.post(
        f"/ads/{ad.id}/images",
        files=[("images", (f"{i}.jpg", b"jpeg", "image/jpeg")) for i in range(9)],
        headers=headers,
    )
    assert too_many.status_code == 400
    assert too_many.json()["detail"] == "An ad can have at most 10 images"


def test_update_keeps_only_listed_images(client, seller, auth_headers, ad_factory, db_session):
    ad = ad_factory(seller)
    headers = auth_headers(seller)
    uploaded = client.post(
        f"/ads/{ad.id}/images",
        files=[
            ("images", ("a.jpg", b"a-bytes", "image/jpeg")),
            ("images", ("b.jpg", b"b-bytes", "image/jpeg")),
        ],
        headers=headers,
    ).json()["images"]
    keep = uploaded[1]["id"]

    resp = client.put(
        f"/ads/{ad.id}",
        json={
            "existingImages": [keep],
            "newImages": [{"filename": "c.jpg", "filePath": "ads/c.jpg", "mimeType": "image/jpeg"}],
        },
        headers=headers,
    )
    assert resp.status_code == 200
    images = resp.json()["images"]
    assert {img["filePath"] for img in images} == {uploaded[1]["filePath"], "ads/c.jpg"}
    assert sum(1 for img in images if img["isPrimary"]) == 1
    assert db_session.query(models.AdImage).filter(models.AdImage.ad_id == ad.id).count() == 2
