"""Session service: register, login, refresh rotation, logout, access-token checks."""
import pytest
from sqlalchemy.exc import IntegrityError

from models import storage
from models.refresh_token import RefreshToken
from models.user import Role, User
from services.errors import (
    Conflict,
    InvalidAccessToken,
    InvalidCredentials,
    InvalidRefreshToken,
)
from services.session_service import SessionService

PASSWORD = "longenough1"


def _register(service, username="ada99", email="ada@x.com"):
    return service.register("Ada", email, username, PASSWORD)


class CountingHasher:
    def __init__(self, inner):
        self.inner = inner
        self.verifications = 0

    def hash(self, plaintext):
        return self.inner.hash(plaintext)

    def verify(self, digest, plaintext):
        self.verifications += 1
        return self.inner.verify(digest, plaintext)


class RacingStorage:
    """Storage whose next commit loses a unique-constraint race."""

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def save(self):
        self.inner.rollback()
        raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.username"))


class TestRegister:
    def test_register_creates_ordinary_account_and_session(self, service):
        user, tokens = _register(service)

        assert user.role == Role.ORDINARY
        assert user.password_hash != PASSWORD
        claims = service.verify_access_token(tokens.access_token)
        assert claims["sub"] == user.id
        assert claims["username"] == "ada99"
        assert claims["role"] == "ordinary"
        assert service.refresh_store.find_by_raw_token(tokens.refresh_token) is not None

    @pytest.mark.parametrize(
        "email,username",
        [("ada@x.com", "someone_else"), ("other@x.com", "ada99"), ("ada@x.com", "ada99")],
    )
    def test_register_conflicts_on_either_field(self, service, email, username):
        _register(service)
        with pytest.raises(Conflict):
            service.register("Ada Again", email, username, PASSWORD)

    def test_unique_violation_at_commit_is_a_conflict(self, hasher, signer, refresh_store):
        service = SessionService(RacingStorage(storage), hasher, signer, refresh_store)

        with pytest.raises(Conflict):
            service.register("Ada", "ada@x.com", "ada99", PASSWORD)
        assert storage.count(User) == 0


class TestLogin:
    @pytest.mark.parametrize("identifier", ["ada99", "ada@x.com"])
    def test_login_by_username_or_email(self, service, identifier):
        registered, _ = _register(service)
        user, tokens = service.login(identifier, PASSWORD)

        assert user.id == registered.id
        assert service.verify_access_token(tokens.access_token)["sub"] == user.id

    def test_unknown_identifier_and_wrong_password_are_indistinguishable(self, service):
        _register(service)

        with pytest.raises(InvalidCredentials) as unknown:
            service.login("nobody", PASSWORD)
        with pytest.raises(InvalidCredentials) as wrong:
            service.login("ada99", "wrong-password")

        assert type(unknown.value) is type(wrong.value)
        assert unknown.value.message == wrong.value.message
        assert unknown.value.status == wrong.value.status

    def test_unknown_identifier_still_runs_a_password_verify(self, hasher, signer, refresh_store):
        counting = CountingHasher(hasher)
        service = SessionService(storage, counting, signer, refresh_store)

        with pytest.raises(InvalidCredentials):
            service.login("nobody", PASSWORD)
        assert counting.verifications == 1

    def test_repeated_failures_do_not_lock_the_account(self, service):
        _register(service)
        for _ in range(3):
            with pytest.raises(InvalidCredentials):
                service.login("ada99", "wrong-password")

        user, _ = service.login("ada99", PASSWORD)
        assert user.username == "ada99"

    def test_each_login_adds_a_refresh_session(self, service):
        _register(service)
        service.login("ada99", PASSWORD)
        assert storage.count(RefreshToken) == 2


class TestRefresh:
    def test_refresh_rotates_the_pair(self, service):
        user, tokens = _register(service)
        new_tokens = service.refresh(tokens.refresh_token)

        assert new_tokens.refresh_token != tokens.refresh_token
        assert service.verify_access_token(new_tokens.access_token)["sub"] == user.id
        assert service.refresh_store.find_by_raw_token(tokens.refresh_token) is None
        assert service.refresh_store.find_by_raw_token(new_tokens.refresh_token) is not None
        assert storage.count(RefreshToken) == 1

    def test_consumed_token_only_works_once(self, service):
        _, tokens = _register(service)

        first = service.refresh(tokens.refresh_token)
        with pytest.raises(InvalidRefreshToken):
            service.refresh(tokens.refresh_token)
        # the winner's token keeps working
        service.refresh(first.refresh_token)

    def test_access_token_cannot_be_used_to_refresh(self, service):
        _, tokens = _register(service)
        with pytest.raises(InvalidRefreshToken):
            service.refresh(tokens.access_token)

    def test_garbage_and_empty_tokens(self, service):
        for token in ("", None, "garbage"):
            with pytest.raises(InvalidRefreshToken):
                service.refresh(token)

    def test_validly_signed_token_without_store_row(self, service):
        user, _ = _register(service)
        orphan = service.signer.issue_refresh_token(user.id)
        with pytest.raises(InvalidRefreshToken):
            service.refresh(orphan)

    def test_expired_refresh_token(self, service, clock):
        _, tokens = _register(service)
        clock.advance(days=7)
        with pytest.raises(InvalidRefreshToken):
            service.refresh(tokens.refresh_token)

    def test_expired_store_row_is_rejected(self, service):
        _, tokens = _register(service)
        record = service.refresh_store.find_by_raw_token(tokens.refresh_token)
        record.expires_at = record.expires_at.replace(year=2000)
        storage.save()

        with pytest.raises(InvalidRefreshToken):
            service.refresh(tokens.refresh_token)


class TestLogout:
    def test_logout_revokes_refresh_token(self, service):
        _, tokens = _register(service)
        service.logout(tokens.refresh_token)

        with pytest.raises(InvalidRefreshToken):
            service.refresh(tokens.refresh_token)

    def test_logout_twice_is_a_no_op(self, service):
        _, tokens = _register(service)
        service.refresh(tokens.refresh_token)

        assert service.logout(tokens.refresh_token) is None
        assert service.logout(tokens.refresh_token) is None

    def test_logout_ignores_missing_or_garbage_tokens(self, service):
        service.logout(None)
        service.logout("")
        service.logout("garbage")

    def test_access_token_survives_logout_until_expiry(self, service, clock):
        _, tokens = _register(service)
        service.logout(tokens.refresh_token)

        assert service.verify_access_token(tokens.access_token)
        clock.advance(minutes=15)
        with pytest.raises(InvalidAccessToken):
            service.verify_access_token(tokens.access_token)


class TestVerifyAccessToken:
    def test_refresh_token_is_not_an_access_token(self, service):
        _, tokens = _register(service)
        with pytest.raises(InvalidAccessToken):
            service.verify_access_token(tokens.refresh_token)

    def test_missing_token(self, service):
        with pytest.raises(InvalidAccessToken):
            service.verify_access_token("")
