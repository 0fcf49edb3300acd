"""Shared fixtures: in-memory SQLite recreated per test, cheap argon2, fake clock."""
import os

os.environ["APP_ENV"] = "test"
os.environ.pop("DATABASE_URL", None)

from datetime import datetime, timedelta, timezone

import pytest

from api import create_app
from api.config import TestingConfig
from models import storage
from models.user import Role, User
from models.video import Video, VideoStatus, Visibility
from services.refresh_store import RefreshTokenStore
from services.session_service import SessionService
from utils.security import CredentialHasher, TokenSigner

PASSWORD = "longenough1"


class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def fresh_db():
    storage.drop_all()
    storage.reload()
    yield
    storage.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def hasher():
    return CredentialHasher(
        time_cost=TestingConfig.ARGON2_TIME_COST,
        memory_cost=TestingConfig.ARGON2_MEMORY_COST,
        parallelism=TestingConfig.ARGON2_PARALLELISM,
    )


@pytest.fixture
def signer(clock):
    return TokenSigner(
        access_secret=TestingConfig.JWT_ACCESS_SECRET,
        refresh_secret=TestingConfig.JWT_REFRESH_SECRET,
        access_ttl=TestingConfig.ACCESS_TOKEN_EXPIRES,
        refresh_ttl=TestingConfig.REFRESH_TOKEN_EXPIRES,
        clock=clock,
    )


@pytest.fixture
def refresh_store(clock):
    return RefreshTokenStore(storage, TestingConfig.REFRESH_TOKEN_HASH_KEY, clock=clock)


@pytest.fixture
def service(hasher, signer, refresh_store):
    return SessionService(storage, hasher, signer, refresh_store)


@pytest.fixture
def app(tmp_path):
    app = create_app("test")
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, username="ada99", email=None, display_name="Ada", password=PASSWORD):
    resp = client.post(
        "/api/v1/auth/register",
        json={
            "display_name": display_name,
            "email": email or f"{username}@x.com",
            "username": username,
            "password": password,
        },
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def auth_header(access_token):
    return {"Authorization": f"Bearer {access_token}"}


def set_role(user_id, role: Role):
    user = storage.get(User, user_id)
    user.role = role
    user.save()


def make_video(user_id, **overrides):
    fields = {
        "user_id": user_id,
        "title": "A video",
        "visibility": Visibility.PUBLIC,
        "status": VideoStatus.READY,
        "view_count": 0,
        "like_count": 0,
        "comment_count": 0,
    }
    fields.update(overrides)
    video = Video(**fields)
    storage.new(video)
    storage.save()
    return video.id
