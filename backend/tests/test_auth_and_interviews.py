import pytest
from fastapi.testclient import TestClient

from prepwise.core.database import InterviewDB, UserDB, get_interview_db, get_user_db
from prepwise.main import app

@pytest.fixture
def client(users_collection, interviews_collection):
    app.dependency_overrides[get_user_db] = lambda: UserDB(users_collection)
    app.dependency_overrides[get_interview_db] = lambda: InterviewDB(interviews_collection)
    yield TestClient(app)
    app.dependency_overrides.clear()

def signup_and_login(client, email="ada@example.com", name="Ada"):
    res = client.post("/auth/signup", json={"name": name, "email": email, "password": "password123"})
    assert res.status_code == 200
    user_id = res.json()["id"]
    res = client.post("/auth/login", json={"email": email, "password": "password123"})
    assert res.status_code == 200
    return user_id

def test_signup_returns_token(client):
    res = client.post("/auth/signup", json={"name": "Ada", "email": "ada@example.com", "password": "password123"})
    assert res.status_code == 200
    body = res.json()
    assert body["name"] == "Ada"
    assert body["token"]

def test_signup_rejects_existing_user(client):
    payload = {"name": "Ada", "email": "ada@example.com", "password": "password123"}
    client.post("/auth/signup", json=payload)
    res = client.post("/auth/signup", json=payload)
    assert res.status_code == 400
    assert res.json()["detail"] == "User already exists"

def test_login_sets_session_cookie_and_me_reads_it(client):
    user_id = signup_and_login(client)
    assert client.cookies.get("session")

    res = client.get("/auth/me")
    assert res.status_code == 200
    assert res.json() == {"id": user_id, "name": "Ada", "email": "ada@example.com"}

def test_bearer_token_is_accepted(client):
    token = client.post("/auth/signup", json={
        "name": "Ada", "email": "ada@example.com", "password": "password123"
    }).json()["token"]
    client.cookies.clear()
    res = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200

def test_login_failures(client):
    res = client.post("/auth/login", json={"email": "nobody@example.com", "password": "x"})
    assert res.status_code == 404
    client.post("/auth/signup", json={"name": "Ada", "email": "ada@example.com", "password": "password123"})
    res = client.post("/auth/login", json={"email": "ada@example.com", "password": "wrong"})
    assert res.status_code == 401

def test_me_requires_session(client):
    assert client.get("/auth/me").status_code == 401
    client.cookies.set("session", "garbage")
    assert client.get("/auth/me").status_code == 401

def test_logout_clears_cookie(client):
    signup_and_login(client)
    client.post("/auth/logout")
    assert client.get("/auth/me").status_code == 401

def interview(user_id, created_at, finalized=True, role="backend engineer"):
    return {
        "role": role,
        "type": "technical",
        "level": "senior",
        "techstack": ["Go"],
        "questions": ["Why Go?"],
        "userId": user_id,
        "finalized": finalized,
        "coverImage": "/covers/amazon.png",
        "createdAt": created_at,
    }

def test_my_interviews_newest_first(client, interviews_collection):
    user_id = signup_and_login(client)
    interviews_collection.insert_one(interview(user_id, "2026-01-01T00:00:00+00:00", role="old"))
    interviews_collection.insert_one(interview(user_id, "2026-02-01T00:00:00+00:00", role="new"))
    interviews_collection.insert_one(interview("someone-else", "2026-03-01T00:00:00+00:00"))

    res = client.get("/interviews/mine")
    assert res.status_code == 200
    assert [i["role"] for i in res.json()] == ["new", "old"]

def test_latest_interviews_excludes_own_and_unfinalized(client, interviews_collection):
    user_id = signup_and_login(client)
    interviews_collection.insert_one(interview(user_id, "2026-01-01T00:00:00+00:00"))
    interviews_collection.insert_one(interview("other", "2026-01-02T00:00:00+00:00", finalized=False))
    interviews_collection.insert_one(interview("other", "2026-01-03T00:00:00+00:00", role="a"))
    interviews_collection.insert_one(interview("other", "2026-01-04T00:00:00+00:00", role="b"))

    res = client.get("/interviews/latest", params={"limit": 1})
    assert res.status_code == 200
    assert [i["role"] for i in res.json()] == ["b"]

def test_get_interview_by_id(client, interviews_collection):
    signup_and_login(client)
    inserted = interviews_collection.insert_one(interview("other", "2026-01-01T00:00:00+00:00"))

    res = client.get(f"/interviews/{inserted.inserted_id}")
    assert res.status_code == 200
    assert res.json()["id"] == str(inserted.inserted_id)

    assert client.get("/interviews/not-an-object-id").status_code == 404
    assert client.get("/interviews/64b7f0000000000000000000").status_code == 404

def test_interviews_require_session(client):
    assert client.get("/interviews/mine").status_code == 401
