from datetime import timedelta

from models.database import get_otp_codes_collection, get_users_collection
from services.otp import DEMO_OTP_CODE
from utils.helpers import utcnow
from conftest import run


def latest_code(email):
    document = run(get_otp_codes_collection().find_one({"email": email, "consumed": False}))
    return document["code"]


def test_sign_in_flow(client):
    response = client.post("/api/auth/request-otp", json={"email": " Ana@Example.com "})
    assert response.status_code == 204

    code = latest_code("ana@example.com")
    response = client.post("/api/auth/verify-otp", json={"email": "ana@example.com", "code": code})

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["email"] == "ana@example.com"
    assert "session" in response.cookies

    me = client.get("/api/me")
    assert me.status_code == 200
    assert me.json()["user"]["id"] == user["id"]


def test_code_cannot_be_reused(client):
    client.post("/api/auth/request-otp", json={"email": "ana@example.com"})
    code = latest_code("ana@example.com")

    assert client.post("/api/auth/verify-otp", json={"email": "ana@example.com", "code": code}).status_code == 200
    response = client.post("/api/auth/verify-otp", json={"email": "ana@example.com", "code": code})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_EXPIRED_CODE"


def test_new_request_invalidates_previous_code(client):
    client.post("/api/auth/request-otp", json={"email": "ana@example.com"})
    first = latest_code("ana@example.com")
    client.post("/api/auth/request-otp", json={"email": "ana@example.com"})
    second = latest_code("ana@example.com")

    response = client.post("/api/auth/verify-otp", json={"email": "ana@example.com", "code": first})
    assert response.status_code == (200 if first == second else 401)


def test_wrong_code_is_rejected(client):
    client.post("/api/auth/request-otp", json={"email": "ana@example.com"})
    code = latest_code("ana@example.com")
    wrong = "000000" if code != "000000" else "111111"

    response = client.post("/api/auth/verify-otp", json={"email": "ana@example.com", "code": wrong})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "AUTH_INVALID_CODE"
    assert run(get_users_collection().count_documents({})) == 0


def test_expired_code(client, mongo):
    run(get_otp_codes_collection().insert_one({
        "email": "ana@example.com",
        "code": "654321",
        "consumed": False,
        "expires_at": utcnow() - timedelta(minutes=1),
        "created_at": utcnow() - timedelta(minutes=11),
    }))

    response = client.post("/api/auth/verify-otp", json={"email": "ana@example.com", "code": "654321"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_EXPIRED_CODE"


def test_rate_limit_returns_retry_after(client):
    for _ in range(5):
        assert client.post("/api/auth/request-otp", json={"email": "ana@example.com"}).status_code == 204

    response = client.post("/api/auth/request-otp", json={"email": "ana@example.com"})

    assert response.status_code == 429
    body = response.json()["error"]
    assert body["code"] == "AUTH_RATE_LIMITED"
    assert body["backoff"]["strategy"] == "retry-after"
    assert int(response.headers["Retry-After"]) == body["backoff"]["retryAfterSeconds"]
    assert 0 < body["backoff"]["retryAfterSeconds"] <= 3600


def test_demo_account_uses_fixed_code(client):
    assert client.post("/api/auth/request-otp", json={"email": "demo1@example.com"}).status_code == 204

    response = client.post("/api/auth/verify-otp", json={"email": "demo1@example.com", "code": DEMO_OTP_CODE})
    assert response.status_code == 200


def test_validation_errors_are_prefixed(client):
    response = client.post("/api/auth/verify-otp", json={"email": "ana@example.com", "code": "12"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "AUTH_VALIDATION_ERROR"
    assert error["message"] == "Please update the highlighted fields: Enter the 6-digit code from your email."


def test_invalid_json_body(client):
    response = client.post(
        "/api/auth/request-otp",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["hint"] == "Ensure you are sending valid JSON."


def test_me_requires_session(client):
    response = client.get("/api/me")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_UNAUTHORIZED"


def test_me_with_bearer_token(client, make_user):
    user_id, headers = make_user("bob@example.com", name="Bob")
    response = client.get("/api/me", headers=headers)

    assert response.json() == {"user": {"id": user_id, "email": "bob@example.com", "name": "Bob"}}


def test_logout_clears_cookie(client):
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "no-store"
    assert "session=" in response.headers["set-cookie"]
    assert client.delete("/api/auth/logout").status_code == 200
