"""
Tests for server-side sessions and refresh-token rotation.
"""

import hashlib

import pytest
from sqlalchemy import func, select, update

from auth.errors import UserNotFoundError
from auth.sessions import (
    SessionExpired,
    SessionNotFound,
    SessionStore,
    TokenPair,
    as_utc,
    generate_refresh_token,
    hash_token,
    utcnow,
)
from database.models import User, UserSession


# ── helpers ────────────────────────────────────────────────────────────────────


async def _make_user(db, email="bob@example.com") -> User:
    user = User(email=email, password_hash="x:y", first_name="Bob", last_name="Builder")
    db.add(user)
    await db.flush()
    return user


async def _login(store: SessionStore, user: User, ttl_seconds=None) -> TokenPair:
    pair = TokenPair(store.issue_access_token(user), generate_refresh_token())
    await store.create(user.id, pair.access_token, pair.refresh_token, ttl_seconds)
    return pair


class _RacingSession:
    """Delegates to a real session but runs *on_get* right after ``get``."""

    def __init__(self, inner, on_get):
        self._inner = inner
        self._on_get = on_get

    def __getattr__(self, name):
        return getattr(self._inner, name)

    async def get(self, *args, **kwargs):
        found = await self._inner.get(*args, **kwargs)
        await self._on_get()
        return found


async def _session_count(db) -> int:
    return await db.scalar(select(func.count()).select_from(UserSession))


# ── tests ──────────────────────────────────────────────────────────────────────


class TestHashing:
    def test_hash_token_is_unsalted_sha256(self):
        assert hash_token("abc") == hashlib.sha256(b"abc").hexdigest()
        assert hash_token("abc") == hash_token("abc")

    def test_refresh_tokens_are_opaque_and_unique(self):
        tokens = {generate_refresh_token() for _ in range(50)}
        assert len(tokens) == 50
        assert all(len(t) == 64 and "." not in t for t in tokens)


class TestCreate:
    @pytest.mark.asyncio
    async def test_stores_only_hashes(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        pair = await _login(store, user)

        record = await store.find_by_refresh_token(pair.refresh_token)
        assert record is not None
        assert record.user_id == user.id
        assert record.refresh_token_hash == hash_token(pair.refresh_token)
        assert record.access_token_hash == hash_token(pair.access_token)
        assert pair.refresh_token not in (record.refresh_token_hash, record.access_token_hash)

    @pytest.mark.asyncio
    async def test_default_lifetime_is_seven_days(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        pair = await _login(store, user)
        record = await store.find_by_refresh_token(pair.refresh_token)
        remaining = (as_utc(record.expires_at) - utcnow()).total_seconds()
        assert 7 * 86400 - 60 < remaining <= 7 * 86400

    @pytest.mark.asyncio
    async def test_records_client_metadata(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        record = await store.create(
            user.id, "a", "r", user_agent="pytest/1.0", ip_address="10.0.0.1"
        )
        assert record.user_agent == "pytest/1.0"
        assert record.ip_address == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_unknown_refresh_token(self, db, codec):
        store = SessionStore(db, codec)
        assert await store.find_by_refresh_token("nope") is None


class TestRotate:
    @pytest.mark.asyncio
    async def test_returns_new_pair_and_overwrites_hashes(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        old = await _login(store, user)

        new = await store.rotate(old.refresh_token)

        assert new.refresh_token != old.refresh_token
        assert codec.verify(new.access_token)["userId"] == user.id
        assert await store.find_by_refresh_token(old.refresh_token) is None
        record = await store.find_by_refresh_token(new.refresh_token)
        assert record is not None
        assert record.access_token_hash == hash_token(new.access_token)
        assert await _session_count(db) == 1

    @pytest.mark.asyncio
    async def test_refresh_tokens_are_single_use(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        old = await _login(store, user)

        await store.rotate(old.refresh_token)
        with pytest.raises(SessionNotFound):
            await store.rotate(old.refresh_token)

    @pytest.mark.asyncio
    async def test_extends_expiry(self, db, codec):
        store = SessionStore(db, codec, session_ttl_seconds=3600)
        user = await _make_user(db)
        old = await _login(store, user, ttl_seconds=60)

        new = await store.rotate(old.refresh_token)
        record = await store.find_by_refresh_token(new.refresh_token)
        remaining = (as_utc(record.expires_at) - utcnow()).total_seconds()
        assert remaining > 3000

    @pytest.mark.asyncio
    async def test_unknown_token(self, db, codec):
        with pytest.raises(SessionNotFound):
            await SessionStore(db, codec).rotate("never-issued")

    @pytest.mark.asyncio
    async def test_expired_session_is_deleted(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        old = await _login(store, user, ttl_seconds=-5)

        with pytest.raises(SessionExpired):
            await store.rotate(old.refresh_token)
        assert await store.find_by_refresh_token(old.refresh_token) is None
        with pytest.raises(SessionNotFound):
            await store.rotate(old.refresh_token)

    @pytest.mark.asyncio
    async def test_missing_owner(self, db, codec):
        store = SessionStore(db, codec)
        await store.create("ghost-user", "access", "refresh")
        with pytest.raises(UserNotFoundError):
            await store.rotate("refresh")


    @pytest.mark.asyncio
    async def test_concurrent_rotation_loser_gets_not_found(self, db, codec):
        user = await _make_user(db)
        old = await _login(SessionStore(db, codec), user)

        async def rival_rotation():
            await db.execute(
                update(UserSession)
                .where(UserSession.refresh_token_hash == hash_token(old.refresh_token))
                .values(refresh_token_hash=hash_token("winner"))
                .execution_options(synchronize_session=False)
            )

        # the rival lands between our read of the row and our write
        racing = SessionStore(_RacingSession(db, rival_rotation), codec)
        with pytest.raises(SessionNotFound):
            await racing.rotate(old.refresh_token)

        store = SessionStore(db, codec)
        assert await store.find_by_refresh_token("winner") is not None
        assert await store.find_by_refresh_token(old.refresh_token) is None


class TestInvalidate:
    @pytest.mark.asyncio
    async def test_deletes_matching_session(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        pair = await _login(store, user)

        await store.invalidate(pair.access_token)

        assert await _session_count(db) == 0
        with pytest.raises(SessionNotFound):
            await store.rotate(pair.refresh_token)

    @pytest.mark.asyncio
    async def test_idempotent(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        pair = await _login(store, user)

        await store.invalidate(pair.access_token)
        await store.invalidate(pair.access_token)
        await store.invalidate("garbage")
        assert await _session_count(db) == 0

    @pytest.mark.asyncio
    async def test_only_touches_one_session(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        first = await _login(store, user)
        second = await _login(store, user)

        await store.invalidate(first.access_token)
        assert await store.find_by_refresh_token(second.refresh_token) is not None

    @pytest.mark.asyncio
    async def test_invalidate_all(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        other = await _make_user(db, "carol@example.com")
        await _login(store, user)
        await _login(store, user)
        kept = await _login(store, other)

        assert await store.invalidate_all(user.id) == 2
        assert await _session_count(db) == 1
        assert await store.find_by_refresh_token(kept.refresh_token) is not None

    @pytest.mark.asyncio
    async def test_purge_expired(self, db, codec):
        store = SessionStore(db, codec)
        user = await _make_user(db)
        await _login(store, user, ttl_seconds=-60)
        live = await _login(store, user)

        assert await store.purge_expired() == 1
        assert await _session_count(db) == 1
        assert await store.find_by_refresh_token(live.refresh_token) is not None
