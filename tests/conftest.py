import pytest
from fastapi.testclient import TestClient

from src.photoshare.config import AppConfig
from src.photoshare.main import create_app

PASSWORD = "secret123"


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        database_url=f"sqlite:///{tmp_path / 'photoshare.db'}",
        jwt_secret="test-secret",
        access_token_minutes=30,
        bcrypt_rounds=4,
        storage_dir=str(tmp_path / "photos"),
        max_upload_kb=64,
    )


@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def storage(app):
    return app.state.services.storage


@pytest.fixture
def tokens(app):
    return app.state.services.tokens


def register(client, username, email, password=PASSWORD):
    resp = client.post(
        "/users/register",
        json={
            "username": username,
            "email": email,
            "password": password,
            "confirmPassword": password,
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["accessToken"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def upload_photo(client, token, title="Sunset", filename="cat.jpg", content=b"jpeg-bytes", caption="nice"):
    resp = client.post(
        "/photos",
        data={"title": title, "caption": caption},
        files={"photo": (filename, content, "image/jpeg")},
        headers=bearer(token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
def alice(client, tokens):
    token = register(client, "alice", "alice@mail.com")
    return {"token": token, "id": tokens.verify(token).subject_id}


@pytest.fixture
def bob(client, tokens):
    token = register(client, "bob", "bob@mail.com")
    return {"token": token, "id": tokens.verify(token).subject_id}
