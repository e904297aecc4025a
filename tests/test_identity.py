import pytest
from pydantic import ValidationError as SchemaValidationError

from quizhub.core.errors import AuthenticationError, StoreReadError, StoreWriteError
from quizhub.db.memory_store import MemoryDocumentStore
from quizhub.schemas.profile_schemas import IdentityEvent, Profile, Role
from quizhub.services.identity import ProfileReconciler, SessionContext, derive_role
from quizhub.utils.timestamps import to_iso

from tests.conftest import FailingStore, FixedClock


class StaleReadStore(MemoryDocumentStore):
    """Чтение всегда «не видит» профиль, как при гонке двух первых входов"""

    async def get(self, path):
        return None


def make_event(**overrides):
    data = {"subject_id": "sub-1", "email": "ann@example.com", "display_name": "Ann"}
    data.update(overrides)
    return IdentityEvent(**data)


@pytest.mark.parametrize("email, role", [
    ("ann@example.com", Role.USER),
    ("site-admin@example.com", Role.ADMIN),
    ("admin@example.com", Role.ADMIN),
    (None, Role.USER),
])
def test_derive_role(email, role):
    assert derive_role(email) == role


async def test_first_sign_in_creates_profile(memory_store, clock):
    reconciler = ProfileReconciler(memory_store, clock=clock)

    profile = await reconciler.reconcile(make_event())

    assert profile.id == "sub-1"
    assert profile.name == "Ann"
    assert profile.role == Role.USER
    assert profile.created_at == to_iso(clock.now)
    assert await memory_store.get("users/sub-1") == profile.to_document()


async def test_missing_display_name_defaults_to_user(memory_store, clock):
    reconciler = ProfileReconciler(memory_store, clock=clock)

    profile = await reconciler.reconcile(make_event(display_name=None))

    assert profile.name == "User"


async def test_reconcile_is_idempotent(memory_store, clock):
    reconciler = ProfileReconciler(memory_store, clock=clock)
    first = await reconciler.reconcile(make_event())

    clock.advance(days=3)
    second = await reconciler.reconcile(make_event(email="admin@example.com", display_name="Renamed"))

    assert (second.id, second.role, second.created_at) == (first.id, first.role, first.created_at)
    assert second.name == "Ann"


async def test_stored_role_is_never_recomputed(memory_store, clock):
    await memory_store.set("users/sub-1", {
        "id": "sub-1",
        "email": "ann@example.com",
        "name": "Ann",
        "role": "admin",
        "created_at": "2023-01-01T00:00:00+00:00"
    })
    reconciler = ProfileReconciler(memory_store, clock=clock)

    profile = await reconciler.reconcile(make_event())

    assert profile.role == Role.ADMIN
    assert profile.created_at == "2023-01-01T00:00:00+00:00"


async def test_existing_profile_missing_fields_are_filled(memory_store, clock):
    await memory_store.set("users/sub-1", {"id": "sub-1", "role": "user", "created_at": "2023-01-01T00:00:00Z"})
    reconciler = ProfileReconciler(memory_store, clock=clock)

    profile = await reconciler.reconcile(make_event(photo_url="https://img.example/a.png"))

    assert profile.name == "Ann"
    assert profile.email == "ann@example.com"
    assert profile.photo_url == "https://img.example/a.png"


async def test_unknown_stored_role_becomes_user(memory_store, clock):
    await memory_store.set("users/sub-1", {"id": "sub-1", "role": "owner", "created_at": "2023-01-01T00:00:00Z"})

    profile = await ProfileReconciler(memory_store, clock=clock).reconcile(make_event())

    assert profile.role == Role.USER


async def test_corrupt_stored_profile_is_reported(memory_store, clock):
    await memory_store.set("users/sub-1", {"id": "sub-1", "created_at": "yesterday"})

    with pytest.raises(StoreReadError):
        await ProfileReconciler(memory_store, clock=clock).reconcile(make_event())

    # повреждённый документ не перезаписывается
    assert (await memory_store.get("users/sub-1"))["created_at"] == "yesterday"


async def test_concurrent_first_sign_in_keeps_first_profile():
    clock = FixedClock()
    store = StaleReadStore()
    reconciler = ProfileReconciler(store, clock=clock)

    first = await reconciler.reconcile(make_event())
    clock.advance(seconds=1)
    second = await reconciler.reconcile(make_event(email="admin@example.com"))

    assert second.created_at == first.created_at
    assert second.role == Role.USER


async def test_read_failure_does_not_overwrite_existing_profile(failing_store, clock):
    await failing_store.inner.set("users/sub-1", {
        "id": "sub-1",
        "name": "Ann",
        "role": "admin",
        "created_at": "2023-01-01T00:00:00+00:00"
    })
    failing_store.fail_reads = True

    profile = await ProfileReconciler(failing_store, clock=clock).reconcile(make_event())

    assert profile.role == Role.ADMIN
    assert profile.created_at == "2023-01-01T00:00:00+00:00"


async def test_write_failure_returns_in_memory_profile(failing_store, clock):
    failing_store.fail_writes = True

    profile = await ProfileReconciler(failing_store, clock=clock).reconcile(make_event())

    assert profile.id == "sub-1"
    assert profile.name == "Ann"
    assert await failing_store.inner.get("users/sub-1") is None


async def test_create_profile_prefers_supplied_name(memory_store, clock):
    reconciler = ProfileReconciler(memory_store, clock=clock)

    profile = await reconciler.create_profile(make_event(), supplied_name="Anna K.")

    assert profile.name == "Anna K."
    assert (await memory_store.get("users/sub-1"))["name"] == "Anna K."


async def test_create_profile_propagates_write_failure(failing_store, clock):
    failing_store.fail_writes = True

    with pytest.raises(StoreWriteError):
        await ProfileReconciler(failing_store, clock=clock).create_profile(make_event(), "Ann")


async def test_session_context_lifecycle(memory_store, clock):
    session = SessionContext(ProfileReconciler(memory_store, clock=clock), session_id="s1")
    assert not session.is_authenticated
    with pytest.raises(AuthenticationError):
        session.require_profile()

    profile = await session.bootstrap(make_event())
    assert session.is_authenticated
    assert session.user_id == profile.id
    assert session.require_profile() == profile

    session.clear()
    assert session.profile is None
    assert session.session_id is None


def test_profile_rejects_bad_created_at():
    with pytest.raises(SchemaValidationError):
        Profile(id="x", created_at="not a date")
