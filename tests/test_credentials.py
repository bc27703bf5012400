"""Unit tests for auth/credentials.py -- CredentialStore.

Covers:
- register() returns a new id and stores an Argon2id hash, never the password
- duplicate usernames are rejected, via precheck and via the UNIQUE constraint
- concurrent registration of one username: exactly one winner
- authenticate() distinguishes unknown usernames from wrong passwords
- usernames are case-sensitive
- storage failures surface as InternalServerError without leaking driver text
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from auth.credentials import CredentialStore
from auth.errors import IncorrectCredentials, InternalServerError, InvalidCredentials, UserAlreadyExists
from auth.schema import create_db_engine, users


class TestRegister:
    def test_register_returns_id(self, credential_store: CredentialStore) -> None:
        user_id = credential_store.register("alice", "s3cret")
        assert isinstance(user_id, int)
        user = credential_store.get_user(user_id)
        assert user is not None
        assert user.username == "alice"
        assert user.created_at is not None

    def test_created_at_is_timezone_aware(self, credential_store: CredentialStore) -> None:
        user = credential_store.get_user(credential_store.register("alice-tz", "pw"))
        assert isinstance(user.created_at, datetime)
        assert user.created_at.utcoffset() == timedelta(0)

    def test_password_is_hashed_with_argon2id(self, credential_store: CredentialStore) -> None:
        user_id = credential_store.register("bob", "hunter2")
        user = credential_store.get_user(user_id)
        assert user.password_hash.startswith("$argon2id$")
        assert "hunter2" not in user.password_hash

    def test_same_password_gets_distinct_salts(self, credential_store: CredentialStore) -> None:
        a = credential_store.get_user(credential_store.register("carol", "same-password"))
        b = credential_store.get_user(credential_store.register("dave", "same-password"))
        assert a.password_hash != b.password_hash

    def test_duplicate_username_rejected(self, credential_store: CredentialStore) -> None:
        credential_store.register("erin", "pw-one")
        with pytest.raises(UserAlreadyExists):
            credential_store.register("erin", "pw-two")
        assert credential_store.count_users() == 1

    def test_duplicate_keeps_original_password(self, credential_store: CredentialStore) -> None:
        user_id = credential_store.register("frank", "original")
        with pytest.raises(UserAlreadyExists):
            credential_store.register("frank", "replacement")
        assert credential_store.authenticate("frank", "original") == user_id

    def test_usernames_are_case_sensitive(self, credential_store: CredentialStore) -> None:
        lower = credential_store.register("grace", "pw")
        upper = credential_store.register("Grace", "pw")
        assert lower != upper
        assert credential_store.count_users() == 2

    def test_constraint_violation_reported_as_duplicate(
        self, credential_store: CredentialStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A registration that slips past the precheck must still get UserAlreadyExists.

        Simulates the race by making the precheck blind, so the INSERT is what
        hits the existing row.
        """
        credential_store.register("heidi", "pw")
        monkeypatch.setattr(credential_store, "_get_by_username", lambda username: None)
        with pytest.raises(UserAlreadyExists):
            credential_store.register("heidi", "pw")
        with credential_store.engine.connect() as conn:
            rows = conn.execute(select(users).where(users.c.username == "heidi")).fetchall()
        assert len(rows) == 1


class TestConcurrentRegistration:
    def test_exactly_one_registration_wins(self, tmp_path) -> None:
        """Two threads registering the same username: one id, one UserAlreadyExists.

        Uses a file-backed database so each thread gets a real, separate
        connection. The barrier lines both threads up on the precheck so the
        UNIQUE constraint is what decides the loser.
        """
        engine = create_db_engine(f"sqlite:///{tmp_path / 'race.db'}")
        store = CredentialStore(engine)
        barrier = threading.Barrier(2)
        original_lookup = store._get_by_username

        def synchronized_lookup(username: str):
            result = original_lookup(username)
            barrier.wait(timeout=10)
            return result

        store._get_by_username = synchronized_lookup

        def attempt() -> object:
            try:
                return store.register("ivan", "pw")
            except UserAlreadyExists as exc:
                return exc

        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                results = list(pool.map(lambda _: attempt(), range(2)))
        finally:
            engine.dispose()

        successes = [r for r in results if isinstance(r, int)]
        failures = [r for r in results if isinstance(r, UserAlreadyExists)]
        assert len(successes) == 1
        assert len(failures) == 1


class TestAuthenticate:
    def test_correct_password(self, credential_store: CredentialStore) -> None:
        user_id = credential_store.register("judy", "correct horse")
        assert credential_store.authenticate("judy", "correct horse") == user_id

    def test_wrong_password(self, credential_store: CredentialStore) -> None:
        credential_store.register("mallory", "right")
        with pytest.raises(IncorrectCredentials):
            credential_store.authenticate("mallory", "wrong")

    def test_unknown_username(self, credential_store: CredentialStore) -> None:
        with pytest.raises(InvalidCredentials):
            credential_store.authenticate("nobody", "whatever")

    def test_username_lookup_is_case_sensitive(self, credential_store: CredentialStore) -> None:
        credential_store.register("oscar", "pw")
        with pytest.raises(InvalidCredentials):
            credential_store.authenticate("OSCAR", "pw")

    def test_unknown_username_still_runs_verification(
        self, credential_store: CredentialStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Timing equalization: an unknown username must still cost one hash verification."""
        calls: list[str] = []

        import auth.credentials as credentials_module

        real_verify = credentials_module.verify_password

        def counting_verify(plain: str, hashed: str) -> bool:
            calls.append(hashed)
            return real_verify(plain, hashed)

        monkeypatch.setattr(credentials_module, "verify_password", counting_verify)
        with pytest.raises(InvalidCredentials):
            credential_store.authenticate("ghost", "pw")
        assert calls == [credentials_module.DUMMY_HASH]


class TestStorageFailures:
    def test_storage_error_maps_to_internal_error(
        self, credential_store: CredentialStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken_connect():
            raise OperationalError("SELECT ...", {}, Exception("disk I/O error at /var/secret/path"))

        monkeypatch.setattr(credential_store.engine, "connect", broken_connect)
        with pytest.raises(InternalServerError) as excinfo:
            credential_store.register("peggy", "pw")
        assert "disk I/O" not in str(excinfo.value)
        assert excinfo.value.message == "Internal server error."
