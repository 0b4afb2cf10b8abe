from models.database import get_analytics_events_collection
from conftest import run


def test_ingest_events(client):
    response = client.post(
        "/api/analytics",
        json={
            "events": [
                {"event": "plan_viewed", "timestamp": "2025-01-01T10:00:00Z", "properties": {"goalCount": 2}},
                {"event": "signed_in", "timestamp": "2025-01-01T10:05:00Z", "properties": {"email": "ana@example.com"}},
            ]
        },
    )

    assert response.status_code == 201
    assert response.json() == {"success": True}

    stored = run(get_analytics_events_collection().find({}).to_list(length=None))
    assert len(stored) == 2
    assert all("email" not in doc["properties"] for doc in stored)


def test_ingest_rejects_invalid_batch(client):
    response = client.post("/api/analytics", json={"events": []})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ANALYTICS_VALIDATION_ERROR"


def test_health(client):
    response = client.get("/api/health")
    body = response.json()

    assert response.status_code == 200
    assert body["status"] in ("ok", "degraded")
    assert body["service"] == "GoalSplit API"
