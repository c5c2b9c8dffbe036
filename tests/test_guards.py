import pytest
from sqlalchemy.exc import OperationalError

from src.photoshare.store import PhotoStore

from conftest import bearer, upload_photo

UPDATE = {
    "username": "alice2",
    "email": "alice@mail.com",
    "oldPassword": "secret123",
    "newPassword": "secret456",
    "confirmPassword": "secret456",
}


class TestAuthenticationGuard:
    def test_missing_header(self, client, alice):
        resp = client.put(f"/users/{alice['id']}", json=UPDATE)
        assert resp.status_code == 401
        assert resp.json() == {
            "status": "fail",
            "data": {"token": "There's no token provided, please login"},
        }

    @pytest.mark.parametrize(
        "header",
        ["Bearer", "Bearer a b", "Bearer  token", "Basic abc"],
    )
    def test_malformed_header(self, client, alice, header):
        resp = client.put(f"/users/{alice['id']}", json=UPDATE, headers={"Authorization": header})
        assert resp.status_code == 401
        assert resp.json()["data"] == {"token": "Token provided is invalid"}

    def test_invalid_token(self, client, alice):
        resp = client.put(f"/users/{alice['id']}", json=UPDATE, headers=bearer("abc.def.ghi"))
        assert resp.status_code == 401
        assert resp.json()["data"] == {"token": "Token is invalid or has expired, please login"}

    def test_subject_not_found(self, client, tokens, alice):
        resp = client.put(f"/users/{alice['id']}", json=UPDATE, headers=bearer(tokens.issue(9999)))
        assert resp.status_code == 401
        assert resp.json()["data"] == {"message": "There's no user found related to the token"}

    def test_guard_runs_before_body_parsing(self, client):
        resp = client.post("/photos", data={"title": ""})
        assert resp.status_code == 401


class TestOwnershipAuthorizer:
    @pytest.mark.parametrize("raw", ["abc", "0", "-3", "1.5", "99999999999"])
    def test_invalid_user_id(self, client, alice, raw):
        resp = client.put(f"/users/{raw}", json=UPDATE, headers=bearer(alice["token"]))
        assert resp.status_code == 400
        assert resp.json()["data"] == {"user_id": "Invalid user ID"}

    def test_invalid_photo_id(self, client, alice):
        resp = client.delete("/photos/abc", headers=bearer(alice["token"]))
        assert resp.status_code == 400
        assert resp.json()["data"] == {"photo_id": "Invalid photo ID"}

    def test_unknown_user(self, client, alice):
        resp = client.put("/users/4242", json=UPDATE, headers=bearer(alice["token"]))
        assert resp.status_code == 404
        assert resp.json()["data"] == {"user": "There's no user found related with provided user id"}

    def test_unknown_photo(self, client, alice):
        resp = client.delete("/photos/4242", headers=bearer(alice["token"]))
        assert resp.status_code == 404
        assert resp.json()["data"] == {"photo": "There's no photo found related with provided photo id"}

    def test_other_users_account_is_forbidden(self, client, alice, bob):
        resp = client.delete(f"/users/{alice['id']}", headers=bearer(bob["token"]))
        assert resp.status_code == 403
        assert resp.json()["status"] == "fail"

    def test_other_users_photo_is_forbidden(self, client, alice, bob):
        photo = upload_photo(client, alice["token"])

        resp = client.put(
            f"/photos/{photo['id']}",
            data={"title": "Mine now"},
            headers=bearer(bob["token"]),
        )
        assert resp.status_code == 403
        assert resp.json()["data"] == {
            "message": "Access denied, you are unauthorized to access this resource"
        }

        resp = client.delete(f"/photos/{photo['id']}", headers=bearer(bob["token"]))
        assert resp.status_code == 403

        resp = client.put(
            f"/photos/{photo['id']}",
            data={"title": "Still mine"},
            headers=bearer(alice["token"]),
        )
        assert resp.status_code == 200
        resp = client.delete(f"/photos/{photo['id']}", headers=bearer(alice["token"]))
        assert resp.status_code == 200

    def test_lookup_failure_is_internal_error(self, client, alice, monkeypatch):
        photo = upload_photo(client, alice["token"])

        def broken_lookup(self, photo_id, with_owner=False):
            raise OperationalError("SELECT", {}, Exception("connection reset"))

        monkeypatch.setattr(PhotoStore, "get_by_id", broken_lookup)
        resp = client.delete(f"/photos/{photo['id']}", headers=bearer(alice["token"]))
        assert resp.status_code == 500
        body = resp.json()
        assert body["status"] == "error"
        assert "connection reset" in body["message"]
