import pytest

from quizhub.core.errors import ValidationError
from quizhub.db.store import document_path, split_path


@pytest.mark.parametrize("path, expected", [
    ("quizzes", ("quizzes", None)),
    ("quizzes/abc123", ("quizzes", "abc123")),
])
def test_split_path(path, expected):
    assert split_path(path) == expected


@pytest.mark.parametrize("path", ["", "a/b/c", "quizzes/", "/quizzes", "quizzes/$where", "users/a.b", "x/\x00"])
def test_split_path_rejects_bad_paths(path):
    with pytest.raises(ValidationError):
        split_path(path)


def test_document_path_rejects_nested_id():
    with pytest.raises(ValidationError):
        document_path("quizzes", "a/b")


async def test_get_missing_document_and_collection(memory_store):
    assert await memory_store.get("quizzes/nope") is None
    assert await memory_store.get("quizzes") is None


async def test_set_then_get_returns_copy(memory_store):
    document = {"title": "Capitals", "tags": ["geo"]}
    await memory_store.set("quizzes/q1", document)

    stored = await memory_store.get("quizzes/q1")
    assert stored == document

    stored["tags"].append("changed")
    assert (await memory_store.get("quizzes/q1"))["tags"] == ["geo"]


async def test_collection_read_keeps_insertion_order(memory_store):
    await memory_store.set("attempts/b", {"n": 1})
    await memory_store.set("attempts/a", {"n": 2})

    collection = await memory_store.get("attempts")
    assert list(collection) == ["b", "a"]


async def test_set_if_absent_keeps_first_document(memory_store):
    first = await memory_store.set_if_absent("users/u1", {"role": "admin"})
    second = await memory_store.set_if_absent("users/u1", {"role": "user"})

    assert first == {"role": "admin"}
    assert second == {"role": "admin"}
    assert await memory_store.get("users/u1") == {"role": "admin"}


async def test_remove_is_idempotent(memory_store):
    await memory_store.set("quizzes/q1", {"title": "x"})
    await memory_store.remove("quizzes/q1")
    await memory_store.remove("quizzes/q1")
    assert await memory_store.get("quizzes/q1") is None


async def test_whole_collection_write_is_rejected(memory_store):
    with pytest.raises(ValueError):
        await memory_store.set("quizzes", {"title": "x"})
