"""Task CLI tests"""

import json

import pytest

from taskboard.tasks.cli import main
from taskboard.users.repository import UserRepository


@pytest.fixture
def run_cli(tmp_path, capsys):
    tasks_file = tmp_path / "tasks.json"

    def _run(*args: str):
        code = main(["--backend", "json", "--tasks-file", str(tasks_file), *args])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


def test_cli_list_empty(run_cli):
    code, out, _ = run_cli("list", "--format", "json")
    assert code == 0
    assert json.loads(out) == []


def test_cli_add_update_complete_delete(run_cli):
    code, out, _ = run_cli(
        "add",
        "--title",
        "Prepare slides",
        "--priority",
        "high",
        "--category",
        "work",
        "--category",
        "talks",
        "--deadline",
        "2030-12-15",
        "--format",
        "json",
    )
    assert code == 0
    added = json.loads(out)
    assert added["id"] == 1
    assert added["priority"] == "high"
    assert added["categories"] == ["work", "talks"]

    code, out, _ = run_cli("update", "--id", "1", "--title", "Final slides", "--clear-deadline", "--format", "json")
    assert code == 0
    updated = json.loads(out)
    assert updated["title"] == "Final slides"
    assert updated["deadline"] is None

    code, out, _ = run_cli("complete", "--id", "1", "--format", "json")
    assert code == 0
    assert json.loads(out)["status"] == "completed"

    code, out, _ = run_cli("list", "--status", "active", "--format", "json")
    assert json.loads(out) == []

    code, out, _ = run_cli("delete", "--id", "1", "--format", "json")
    assert code == 0
    assert json.loads(out) == {"deleted": True, "id": 1}


def test_cli_text_output(run_cli):
    run_cli("add", "--title", "Call mum", "--assignee", "Ola")
    code, out, _ = run_cli("list")
    assert code == 0
    assert "Call mum" in out
    assert "@Ola" in out


def test_cli_errors(run_cli):
    code, _, err = run_cli("get", "--id", "9")
    assert code == 1
    assert "Task not found" in err

    run_cli("add", "--title", "x")
    code, _, err = run_cli("update", "--id", "1", "--priority", "urgent")
    assert code == 1
    assert "priority" in err


def test_cli_sqlite_requires_owner(tmp_path, capsys):
    db_path = tmp_path / "taskboard.db"
    code = main(["--backend", "sqlite", "--db-path", str(db_path), "add", "--title", "x"])
    assert code == 1
    assert "--owner-id" in capsys.readouterr().err

    owner = UserRepository(db_path=db_path).create("owner@example.com", "hash")
    code = main(
        ["--backend", "sqlite", "--db-path", str(db_path), "add", "--title", "x", "--owner-id", str(owner.id), "--format", "json"]
    )
    assert code == 0
    assert json.loads(capsys.readouterr().out)["ownerId"] == owner.id


def test_cli_export_and_import(run_cli, tmp_path):
    run_cli("add", "--title", "Prepare slides", "--priority", "high", "--category", "work")
    run_cli("add", "--title", "Call mum")
    run_cli("complete", "--id", "2")

    code, out, _ = run_cli("export")
    assert code == 0
    assert out.startswith("[\n  {")
    exported = json.loads(out)
    assert [doc["id"] for doc in exported] == [1, 2]
    assert exported[0]["categories"] == ["work"]
    assert exported[1]["completed"] is True

    backup = tmp_path / "backup.json"
    code, out, _ = run_cli("export", "--output", str(backup))
    assert code == 0
    assert "Exported 2 tasks" in out
    assert json.loads(backup.read_text(encoding="utf-8")) == exported

    run_cli("delete", "--id", "1")
    run_cli("add", "--title", "Temporary")

    code, out, _ = run_cli("import", str(backup))
    assert code == 0
    assert "Imported 2 tasks" in out

    code, out, _ = run_cli("list", "--format", "json")
    listed = json.loads(out)
    assert [t["title"] for t in listed] == ["Call mum", "Prepare slides"]
    assert listed[0]["status"] == "completed"
    assert listed[1]["priority"] == "high"


@pytest.mark.parametrize(
    "content, message",
    [
        (json.dumps({"id": 1, "title": "single"}), "JSON array"),
        (json.dumps([{"id": 1, "title": "  "}]), "Title is required"),
        (json.dumps([{"id": 1, "title": "a"}, {"id": 1, "title": "b"}]), "Duplicate task id 1"),
        (json.dumps([{"id": "one", "title": "a"}]), "'id' must be a positive integer"),
        ("[{oops", "not valid JSON"),
    ],
)
def test_cli_import_rejects_bad_files(run_cli, tmp_path, content, message):
    run_cli("add", "--title", "kept")
    source = tmp_path / "import.json"
    source.write_text(content, encoding="utf-8")

    code, _, err = run_cli("import", str(source))
    assert code == 1
    assert message in err

    code, out, _ = run_cli("list", "--format", "json")
    assert [t["title"] for t in json.loads(out)] == ["kept"]


def test_cli_import_missing_file(run_cli, tmp_path):
    code, _, err = run_cli("import", str(tmp_path / "nowhere.json"))
    assert code == 1
    assert "Failed to read" in err


def test_cli_sqlite_import_needs_known_owners(tmp_path, capsys):
    db_path = tmp_path / "taskboard.db"
    owner = UserRepository(db_path=db_path).create("owner@example.com", "hash")
    source = tmp_path / "import.json"

    def run_import(documents):
        source.write_text(json.dumps(documents), encoding="utf-8")
        code = main(["--backend", "sqlite", "--db-path", str(db_path), "import", str(source)])
        return code, capsys.readouterr().err

    code, _ = run_import([{"id": 5, "title": "Imported", "ownerId": owner.id, "completed": True}])
    assert code == 0

    code, _ = run_import([{"id": 1, "title": "No owner"}])
    assert code == 1
    code, err = run_import([{"id": 1, "title": "Stranger", "ownerId": owner.id + 100}])
    assert code == 1
    assert "unknown owners" in err

    main(["--backend", "sqlite", "--db-path", str(db_path), "list", "--format", "json"])
    listed = json.loads(capsys.readouterr().out)
    assert [(t["id"], t["ownerId"], t["completed"]) for t in listed] == [(5, owner.id, True)]
