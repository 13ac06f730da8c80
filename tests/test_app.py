import pytest

from app import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_compare_endpoint(client, mixed_catalogs):
    italo, marcon, alfa = mixed_catalogs
    response = client.post("/api/compare", json={
        "italoProducts": italo,
        "marconProducts": marcon,
        "alfaProducts": alfa,
    })

    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["stats"]["totalMatches"] == 3
    assert len(body["unmatchedProducts"]) == 2


def test_compare_endpoint_rejects_bad_payload(client):
    response = client.post("/api/compare", json={"italoProducts": "oops"})

    assert response.status_code == 500
    body = response.get_json()
    assert body["success"] is False
    assert "italo" in body["error"]


def test_compare_endpoint_without_json(client):
    response = client.post("/api/compare", data="not json", content_type="text/plain")

    assert response.status_code == 500
    assert response.get_json()["success"] is False
