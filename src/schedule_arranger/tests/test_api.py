"""End to end tests of the HTTP surface with the identity provider stubbed out."""

from collections.abc import Generator
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

from schedule_arranger.config import Settings
from schedule_arranger.main import create_app
from schedule_arranger.persistence.database import PersistentDatabase, upsert_user
from schedule_arranger.persistence.types import Identity, ScheduleId, UserId
from schedule_arranger.security.http import get_current_user
from schedule_arranger.tests.shared import ALICE, BOB, count_dependents

# pyright: reportCallIssue=none

ZERO = Identity(user_id=UserId("0"), username="testuser")


def _settings() -> Settings:
    return Settings(
        CORS_ALLOW_ORIGINS="http://localhost:5173",
        OIDC_AUTHORITY="https://idp.example.com",
        OIDC_CLIENT_ID="client_id",
        LOG_FILE=None,
    )


class LoggedInAs:
    """Switchable stand-in for the OIDC identity dependency."""

    def __init__(self, db: PersistentDatabase, identity: Identity):
        self.db = db
        self.identity = identity

    def __call__(self) -> Identity:
        user = upsert_user(self.db, self.identity.user_id, self.identity.username)
        return Identity(user_id=user.user_id, username=user.username)


@pytest.fixture
def db() -> PersistentDatabase:
    return PersistentDatabase.new_in_memory()


@pytest.fixture
def login(db: PersistentDatabase) -> LoggedInAs:
    return LoggedInAs(db, ZERO)


@pytest.fixture
def client(
    db: PersistentDatabase, login: LoggedInAs
) -> Generator[TestClient, None, None]:
    app = create_app(_settings(), db)
    app.dependency_overrides[get_current_user] = login

    with TestClient(app) as client:
        yield client


def _create(client: TestClient, name: str, memo: str, candidates: str) -> str:
    response = client.post(
        "/schedules",
        data={"scheduleName": name, "memo": memo, "candidates": candidates},
        follow_redirects=False,
    )
    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("/schedules/")
    return location.removeprefix("/schedules/")


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_logout_redirects_to_root(client: TestClient):
    response = client.get("/logout", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/"


def test_login_redirects_to_identity_provider(client: TestClient):
    provider = client.app.state.oidc_provider  # pyright: ignore[reportAttributeAccessIssue]
    provider.__dict__["configuration"] = {
        "authorization_endpoint": "https://idp.example.com/authorize",
        "jwks_uri": "https://idp.example.com/jwks",
    }

    response = client.get("/login", follow_redirects=False)

    assert response.status_code == 307
    location = response.headers["location"]
    assert location.startswith("https://idp.example.com/authorize?")

    # The code comes back to the client app, never to an unrouted API path.
    (redirect_uri,) = parse_qs(urlsplit(location).query)["redirect_uri"]
    assert redirect_uri == "http://localhost:5173/auth/callback"
    assert urlsplit(redirect_uri).netloc != urlsplit(str(client.base_url)).netloc


def test_requests_without_token_are_rejected(db: PersistentDatabase):
    app = create_app(_settings(), db)

    with TestClient(app) as client:
        response = client.get("/")
        assert response.status_code in (401, 403)

        response = client.post("/schedules", data={"scheduleName": "x"})
        assert response.status_code in (401, 403)


def test_create_and_view_schedule(client: TestClient):
    schedule_id = _create(
        client, "test schedule 1", "test memo1\r\ntest memo2", "test can1\r\ntest can2"
    )

    response = client.get(f"/schedules/{schedule_id}")
    assert response.status_code == 200
    body = response.json()

    assert body["schedule"]["schedule_name"] == "test schedule 1"
    assert "test memo1" in body["schedule"]["memo"]
    assert "test memo2" in body["schedule"]["memo"]
    assert body["schedule"]["created_by"] == {"user_id": "0", "username": "testuser"}
    assert [c["candidate_name"] for c in body["candidates"]] == [
        "test can1",
        "test can2",
    ]
    assert body["users"] == [{"user_id": "0", "username": "testuser", "is_self": True}]
    assert body["availabilities"] == {
        "0": {str(c["candidate_id"]): 0 for c in body["candidates"]}
    }
    assert body["comments"] == {}


def test_index_lists_own_schedules(client: TestClient, login: LoggedInAs):
    first = _create(client, "first", "", "")
    second = _create(client, "second", "", "")

    login.identity = BOB
    _ = _create(client, "bob's", "", "")

    login.identity = ZERO
    response = client.get("/")

    assert response.status_code == 200
    assert {s["schedule_id"] for s in response.json()} == {first, second}


def test_availability_update_acknowledges_value(client: TestClient):
    schedule_id = _create(client, "meeting", "", "can1")
    (candidate,) = client.get(f"/schedules/{schedule_id}").json()["candidates"]

    response = client.post(
        f"/schedules/{schedule_id}/users/0/candidates/{candidate['candidate_id']}",
        data={"availability": "2"},
    )

    assert response.status_code == 200
    assert response.json() == {"status": "OK", "availability": 2}

    body = client.get(f"/schedules/{schedule_id}").json()
    assert body["availabilities"]["0"][str(candidate["candidate_id"])] == 2


def test_invalid_availability_is_rejected(client: TestClient):
    schedule_id = _create(client, "meeting", "", "can1")
    (candidate,) = client.get(f"/schedules/{schedule_id}").json()["candidates"]
    url = f"/schedules/{schedule_id}/users/0/candidates/{candidate['candidate_id']}"
    _ = client.post(url, data={"availability": "1"})

    for bad_value in ("3", "-1", "present"):
        response = client.post(url, data={"availability": bad_value})
        assert response.status_code == 422

    body = client.get(f"/schedules/{schedule_id}").json()
    assert body["availabilities"]["0"][str(candidate["candidate_id"])] == 1


def test_availability_for_unknown_candidate_is_not_found(client: TestClient):
    schedule_id = _create(client, "meeting", "", "")

    response = client.post(
        f"/schedules/{schedule_id}/users/0/candidates/999",
        data={"availability": "2"},
    )

    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found or Not Authorized"}


def test_comment_update_acknowledges_comment(client: TestClient):
    schedule_id = _create(client, "meeting", "", "can1")

    response = client.post(
        f"/schedules/{schedule_id}/users/0/comments", data={"comment": "testcomment"}
    )

    assert response.status_code == 200
    assert response.json() == {"status": "OK", "comment": "testcomment"}
    assert client.get(f"/schedules/{schedule_id}").json()["comments"] == {
        "0": "testcomment"
    }


def test_other_users_appear_after_viewer(client: TestClient, login: LoggedInAs):
    schedule_id = _create(client, "meeting", "", "can1")
    (candidate,) = client.get(f"/schedules/{schedule_id}").json()["candidates"]

    login.identity = BOB
    _ = client.post(
        f"/schedules/{schedule_id}/users/{BOB.user_id}/candidates/{candidate['candidate_id']}",
        data={"availability": "1"},
    )

    login.identity = ALICE
    body = client.get(f"/schedules/{schedule_id}").json()

    assert [u["username"] for u in body["users"]] == ["alice", "bob"]
    assert [u["is_self"] for u in body["users"]] == [True, False]
    assert body["availabilities"][BOB.user_id] == {str(candidate["candidate_id"]): 1}


def test_edit_appends_candidates(client: TestClient):
    schedule_id = _create(client, "meeting", "memo", "can1")

    response = client.post(
        f"/schedules/{schedule_id}?edit=1",
        data={"scheduleName": "renamed", "memo": "new memo", "candidates": "can2"},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert response.headers["location"] == f"/schedules/{schedule_id}"

    body = client.get(f"/schedules/{schedule_id}/edit").json()
    assert body["schedule"]["schedule_name"] == "renamed"
    assert body["schedule"]["memo"] == "new memo"
    assert [c["candidate_name"] for c in body["candidates"]] == ["can1", "can2"]


def test_non_owner_cannot_edit(client: TestClient, login: LoggedInAs):
    schedule_id = _create(client, "meeting", "memo", "can1")

    login.identity = BOB
    response = client.post(
        f"/schedules/{schedule_id}?edit=1",
        data={"scheduleName": "hijacked", "memo": "", "candidates": "can2"},
        follow_redirects=False,
    )
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found or Not Authorized"}
    assert client.get(f"/schedules/{schedule_id}/edit").status_code == 404

    body = client.get(f"/schedules/{schedule_id}").json()
    assert body["schedule"]["schedule_name"] == "meeting"
    assert [c["candidate_name"] for c in body["candidates"]] == ["can1"]


def test_mode_flag_is_required_and_exclusive(client: TestClient):
    schedule_id = _create(client, "meeting", "", "can1")

    assert client.post(f"/schedules/{schedule_id}").status_code == 400
    assert client.post(f"/schedules/{schedule_id}?edit=1&delete=1").status_code == 400
    assert client.post(f"/schedules/{schedule_id}?edit=0").status_code == 400

    assert client.get(f"/schedules/{schedule_id}").status_code == 200


def test_full_lifecycle_delete(client: TestClient, db: PersistentDatabase):
    schedule_id = _create(client, "test schedule", "memo", "can1")
    (candidate,) = client.get(f"/schedules/{schedule_id}").json()["candidates"]
    _ = client.post(
        f"/schedules/{schedule_id}/users/0/candidates/{candidate['candidate_id']}",
        data={"availability": "2"},
    )
    _ = client.post(
        f"/schedules/{schedule_id}/users/0/comments", data={"comment": "testcomment"}
    )

    response = client.post(f"/schedules/{schedule_id}?delete=1", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/"
    assert count_dependents(db, ScheduleId.from_str(schedule_id)) == {
        "candidates": 0,
        "availabilities": 0,
        "comments": 0,
    }
    assert client.get(f"/schedules/{schedule_id}").status_code == 404


def test_unknown_and_malformed_schedule_ids_are_not_found(client: TestClient):
    assert client.get(f"/schedules/{ScheduleId.new()}").status_code == 404
    assert client.get("/schedules/not-a-schedule").status_code == 404
    assert client.post("/schedules/not-a-schedule?delete=1").status_code == 404
