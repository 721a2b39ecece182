from datetime import datetime

from rideshare.content.value_objects import BOOKING_TERMS_KEY, TermsContent
from rideshare.storage import TermsContentStorage

def test_terms_empty_until_written(client):
    resp = client.get("/api/terms")
    assert resp.status_code == 200
    assert resp.json() == {"content": ""}
    assert resp.headers["cache-control"] == "public, max-age=300"

def test_admin_updates_terms(client, admin_headers):
    resp = client.put("/api/admin/terms", json={"content": "Pay within 24 hours."}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert client.get("/api/terms").json()["content"] == "Pay within 24 hours."

    client.put("/api/admin/terms", json={"content": "No refunds after pickup."}, headers=admin_headers)
    assert client.get("/api/terms").json()["content"] == "No refunds after pickup."

def test_terms_update_requires_admin_role(client, staff_headers):
    assert client.put("/api/admin/terms", json={"content": "x"}).status_code == 401
    assert client.put("/api/admin/terms", json={"content": "x"}, headers=staff_headers).status_code == 403
    assert client.get("/api/terms").json()["content"] == ""

def test_terms_storage_upsert():
    TermsContentStorage.save(TermsContent(BOOKING_TERMS_KEY, "first", datetime(2030, 1, 1, 8, 0)))
    TermsContentStorage.save(TermsContent(BOOKING_TERMS_KEY, "second", datetime(2030, 1, 2, 8, 0)))

    terms = TermsContentStorage.find_by_key(BOOKING_TERMS_KEY)
    assert terms.content == "second"
    assert terms.updated_at == datetime(2030, 1, 2, 8, 0)
    assert TermsContentStorage.find_by_key("other") is None
