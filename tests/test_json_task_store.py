"""JsonTaskStore tests"""

import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from taskboard.exceptions import ForbiddenError, NotFoundError, StoreError
from taskboard.tasks.file_store import JsonTaskStore
from taskboard.tasks.models import NewTask, Priority
from taskboard.tasks.validation import build_new_task, build_patch


@pytest.fixture
def store(tmp_path):
    return JsonTaskStore(tmp_path / "data" / "tasks.json")


def add(store, title, owner_id=None, **fields):
    return store.create(build_new_task({"title": title, **fields}), owner_id=owner_id)


def test_missing_file_is_empty(store):
    assert store.list() == []
    assert store.get(1) is None


@pytest.mark.parametrize("content", ["", "   \n\t  "])
def test_blank_file_is_empty(store, content):
    store.path.write_text(content, encoding="utf-8")
    assert store.list() == []


def test_single_object_document_is_one_task(store):
    store.path.write_text(json.dumps({"id": 4, "title": "legacy", "createdAt": "x"}), encoding="utf-8")
    tasks = store.list()
    assert [t.id for t in tasks] == [4]
    assert add(store, "next").id == 5


def test_legacy_status_and_category_string(store):
    store.path.write_text(
        json.dumps(
            [{"id": 1, "title": "old", "status": "completed", "categories": "a, b", "priority": "bogus"}]
        ),
        encoding="utf-8",
    )
    task = store.get(1)
    assert task.completed is True
    assert task.categories == ["a", "b"]
    assert task.priority is Priority.MEDIUM


def test_create_assigns_increasing_ids_and_writes_pretty_json(store):
    first = add(store, "Buy milk")
    second = add(store, "Walk dog", priority="high", categories=["home"])

    assert (first.id, second.id) == (1, 2)
    assert first.completed is False
    assert first.priority is Priority.MEDIUM

    content = store.path.read_text(encoding="utf-8")
    assert content.startswith("[\n  {")
    documents = json.loads(content)
    assert documents[0] == {
        "id": 1,
        "title": "Buy milk",
        "priority": "medium",
        "completed": False,
        "createdAt": first.created_at,
    }
    assert documents[1]["categories"] == ["home"]


def test_list_is_newest_first(store):
    for title in ("a", "b", "c"):
        add(store, title)
    assert [t.title for t in store.list()] == ["c", "b", "a"]


def test_ids_are_not_reused_after_delete(store):
    add(store, "a")
    second = add(store, "b")
    store.delete(second.id)
    assert add(store, "c").id == 3


def test_update_merges_and_stamps(store):
    task = add(store, "Buy milk", description="2 litres")
    updated = store.update(task.id, build_patch({"completed": True}))

    assert updated.completed is True
    assert updated.title == "Buy milk"
    assert updated.description == "2 litres"
    assert updated.updated_at is not None
    assert updated.created_at == task.created_at
    assert store.get(task.id).completed is True


def test_update_unknown_id(store):
    with pytest.raises(NotFoundError) as excinfo:
        store.update(42, build_patch({"title": "x"}))
    assert excinfo.value.to_dict() == {"error": "Task not found", "id": 42}


def test_authorize_hook_aborts_without_writing(store):
    task = add(store, "mine", owner_id=1)
    before = store.path.read_text(encoding="utf-8")

    def deny(current):
        assert current.id == task.id
        raise ForbiddenError("no")

    with pytest.raises(ForbiddenError):
        store.update(task.id, build_patch({"title": "theirs"}), authorize=deny)
    with pytest.raises(ForbiddenError):
        store.delete(task.id, authorize=deny)
    assert store.path.read_text(encoding="utf-8") == before


def test_delete_returns_removed_record(store):
    task = add(store, "gone")
    removed = store.delete(task.id)
    assert removed.id == task.id
    assert store.list() == []
    with pytest.raises(NotFoundError):
        store.delete(task.id)


def test_delete_by_owner(store):
    add(store, "a", owner_id=1)
    add(store, "b", owner_id=2)
    add(store, "c")
    assert store.delete_by_owner(1) == 1
    assert sorted(t.title for t in store.list()) == ["b", "c"]


def test_owner_listing_includes_unowned(store):
    add(store, "a", owner_id=1)
    add(store, "b", owner_id=2)
    add(store, "shared")
    assert [t.title for t in store.list(owner_id=1)] == ["shared", "a"]


def test_corrupt_file_raises_store_error(store):
    store.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        store.list()


def test_failed_write_leaves_no_temp_file(store):
    add(store, "kept")
    before = store.path.read_text(encoding="utf-8")

    with pytest.raises(StoreError, match="Failed to write tasks"):
        store.create(NewTask(title="\ud800"))

    assert store.path.read_text(encoding="utf-8") == before
    assert [p.name for p in store.path.parent.iterdir()] == ["tasks.json"]


def test_concurrent_updates_are_not_lost(store):
    tasks = [add(store, f"task {n}") for n in range(20)]
    barrier = threading.Barrier(len(tasks))

    def complete(task_id):
        barrier.wait()
        return store.update(task_id, build_patch({"completed": True}))

    with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
        list(pool.map(complete, [t.id for t in tasks]))

    assert all(t.completed for t in store.list())


def test_concurrent_creates_get_unique_ids(store):
    workers = 20
    barrier = threading.Barrier(workers)

    def create(n):
        barrier.wait()
        return add(store, f"task {n}").id

    with ThreadPoolExecutor(max_workers=workers) as pool:
        ids = list(pool.map(create, range(workers)))

    assert sorted(ids) == list(range(1, workers + 1))
    assert sorted(t.id for t in store.list()) == sorted(ids)
