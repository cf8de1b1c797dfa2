import pytest

from docrouting.services.publishing import publishing
from docrouting.services.routing_chain import routing_chain


@pytest.fixture()
def public_document(db_session, submit, departments, people, actor):
    document = submit(
        people.owner,
        [departments.c],
        subject="Scholarship guidelines",
        document_type="memorandum",
    ).document
    routing_chain.respond(db_session, document.id, actor(people.c_admin), "approved")
    return publishing.publish(db_session, document.id, actor(people.owner))


class TestPublicEndpoints:
    def test_get_by_token(self, client, public_document) -> None:
        resp = client.get(f"/public/documents/{public_document.public_token}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["subject"] == "Scholarship guidelines"
        assert data["status"] == "approved"
        assert "owner_id" not in data

    def test_get_by_barcode(self, client, public_document) -> None:
        resp = client.get(f"/api/v1/public/documents/{public_document.barcode_value}")
        assert resp.status_code == 200
        assert resp.json()["order_number"] == public_document.order_number

    def test_unknown_token(self, client) -> None:
        resp = client.get("/public/documents/unknown")
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    def test_search(self, client, public_document, submit, departments, people) -> None:
        submit(people.owner, [departments.c], subject="Scholarship draft")
        resp = client.get("/public/documents", params={"q": "scholarship"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 1
        assert data["items"][0]["public_token"] == public_document.public_token

    def test_search_by_type(self, client, public_document) -> None:
        resp = client.get("/public/documents", params={"document_type": "order"})
        assert resp.status_code == 200
        assert resp.json()["items"] == []
