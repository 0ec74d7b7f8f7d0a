#!/usr/bin/env python3
"""
Task CLI - local administration of the task store, without sessions

Usage:
    taskboard [--backend sqlite|json] [--db-path PATH] [--tasks-file PATH] <command> [options]

    taskboard list [--status active|completed] [--query TEXT] [--owner-id ID] [--format json|text]
    taskboard add --title "Title" [--description ...] [--assignee ...] [--priority low|medium|high]
                  [--deadline YYYY-MM-DD] [--category LABEL ...] [--owner-id ID]
    taskboard update --id ID [--title ...] [--priority ...] [--clear-deadline] ...
    taskboard complete --id ID
    taskboard delete --id ID
    taskboard get --id ID
    taskboard export [--output FILE]
    taskboard import FILE
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from taskboard.config import BACKENDS, Config
from taskboard.exceptions import NotFoundError, StoreError, TaskboardError, ValidationError

from .file_store import JsonTaskStore
from .filters import filter_tasks, is_overdue
from .models import Task
from .repository import TaskRepository
from .validation import build_imported_tasks, build_new_task, build_patch

TaskStore = Union[JsonTaskStore, TaskRepository]


def format_task_text(task: Task) -> str:
    """One line per task."""
    mark = "x" if task.completed else " "
    deadline = task.deadline or "-"
    if is_overdue(task):
        deadline += " (overdue)"
    line = f"[{mark}] {task.id} | {task.priority.value} | due: {deadline} | {task.title}"
    if task.assignee:
        line += f" @{task.assignee}"
    if task.categories:
        line += " #" + " #".join(task.categories)
    return line


def format_task_json(task: Task) -> Dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "assignee": task.assignee,
        "priority": task.priority.value,
        "deadline": task.deadline,
        "categories": list(task.categories),
        "completed": task.completed,
        "status": task.status.value,
        "ownerId": task.owner_id,
        "createdAt": task.created_at,
        "updatedAt": task.updated_at,
    }


def emit(task: Task, output_format: str, prefix: str = "") -> None:
    if output_format == "json":
        print(json.dumps(format_task_json(task), ensure_ascii=False))
    else:
        print(f"{prefix}{format_task_text(task)}")


def cmd_list(
    store: TaskStore,
    status: Optional[str],
    query: Optional[str],
    owner_id: Optional[int],
    output_format: str,
) -> int:
    tasks = filter_tasks(store.list(owner_id=owner_id), status=status, query=query)
    if output_format == "json":
        print(json.dumps([format_task_json(t) for t in tasks], ensure_ascii=False))
    elif not tasks:
        print("No tasks.")
    else:
        for task in tasks:
            print(format_task_text(task))
    return 0


def cmd_add(store: TaskStore, args: argparse.Namespace) -> int:
    payload: Dict[str, Any] = {"title": args.title}
    for name in ("description", "assignee", "priority", "deadline"):
        value = getattr(args, name)
        if value is not None:
            payload[name] = value
    if args.category:
        payload["categories"] = args.category

    if store.requires_owner and args.owner_id is None:
        print("Error: --owner-id is required for the sqlite backend.", file=sys.stderr)
        return 1
    created = store.create(build_new_task(payload), owner_id=args.owner_id)
    emit(created, args.format, prefix="Added: ")
    return 0


def cmd_update(store: TaskStore, args: argparse.Namespace) -> int:
    payload: Dict[str, Any] = {}
    for name in ("title", "description", "assignee", "priority", "deadline"):
        value = getattr(args, name)
        if value is not None:
            payload[name] = value
    if args.clear_deadline:
        payload["deadline"] = None
    if args.category is not None:
        payload["categories"] = args.category

    updated = store.update(args.id, build_patch(payload))
    emit(updated, args.format, prefix="Updated: ")
    return 0


def cmd_complete(store: TaskStore, task_id: int, output_format: str) -> int:
    updated = store.update(task_id, build_patch({"completed": True}))
    emit(updated, output_format, prefix="Completed: ")
    return 0


def cmd_delete(store: TaskStore, task_id: int, output_format: str) -> int:
    removed = store.delete(task_id)
    if output_format == "json":
        print(json.dumps({"deleted": True, "id": removed.id}, ensure_ascii=False))
    else:
        print(f"Deleted: {removed.id}")
    return 0


def cmd_get(store: TaskStore, task_id: int, output_format: str) -> int:
    task = store.get(task_id)
    if task is None:
        raise NotFoundError("Task", task_id)
    emit(task, output_format)
    return 0


def cmd_export(store: TaskStore, output: Optional[str]) -> int:
    """Write the whole collection as a pretty-printed JSON array, oldest first."""
    tasks = sorted(store.list(), key=lambda t: t.id)
    content = json.dumps([t.to_document() for t in tasks], ensure_ascii=False, indent=2)
    if output is None:
        print(content)
        return 0
    try:
        Path(output).write_text(content + "\n", encoding="utf-8")
    except OSError as exc:
        raise StoreError(f"Failed to write {output}") from exc
    print(f"Exported {len(tasks)} tasks to {output}")
    return 0


def cmd_import(store: TaskStore, source: str) -> int:
    """Replace the whole collection with the tasks in a JSON array file."""
    try:
        content = Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise StoreError(f"Failed to read {source}") from exc
    try:
        documents = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{source} is not valid JSON") from exc

    count = store.replace_all(build_imported_tasks(documents))
    print(f"Imported {count} tasks from {source}")
    return 0


def open_store(args: argparse.Namespace) -> TaskStore:
    config = Config.load()
    backend = args.backend or config.storage.backend
    if backend == "json":
        return JsonTaskStore(args.tasks_file or config.storage.tasks_file)
    return TaskRepository(args.db_path or config.storage.db_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="Task CLI - local administration of the task store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--backend", choices=BACKENDS, help="Storage backend (default: from config)")
    parser.add_argument("--db-path", help="SQLite database path (sqlite backend)")
    parser.add_argument("--tasks-file", help="JSON document path (json backend)")

    format_parent = argparse.ArgumentParser(add_help=False)
    format_parent.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)",
    )

    fields_parent = argparse.ArgumentParser(add_help=False)
    fields_parent.add_argument("--description", help="Longer description")
    fields_parent.add_argument("--assignee", help="Who is doing it")
    fields_parent.add_argument("--priority", help="low | medium | high")
    fields_parent.add_argument("--deadline", help="ISO date or datetime")
    fields_parent.add_argument("--category", action="append", help="Category label (repeatable)")

    subparsers = parser.add_subparsers(dest="command", help="Command to run", required=True)

    parser_list = subparsers.add_parser("list", parents=[format_parent], help="List tasks")
    parser_list.add_argument("--status", choices=["active", "completed"])
    parser_list.add_argument("--query", help="Search text")
    parser_list.add_argument("--owner-id", type=int, help="Only tasks of this user")

    parser_add = subparsers.add_parser("add", parents=[format_parent, fields_parent], help="Add a task")
    parser_add.add_argument("--title", required=True, help="Task title")
    parser_add.add_argument("--owner-id", type=int, help="Owning user id (required for sqlite)")

    parser_update = subparsers.add_parser(
        "update", parents=[format_parent, fields_parent], help="Update a task"
    )
    parser_update.add_argument("--id", type=int, required=True, help="Task id")
    parser_update.add_argument("--title", help="New title")
    parser_update.add_argument("--clear-deadline", action="store_true", help="Remove the deadline")

    for name, help_text in (
        ("complete", "Mark a task completed"),
        ("delete", "Delete a task"),
        ("get", "Show one task"),
    ):
        sub = subparsers.add_parser(name, parents=[format_parent], help=help_text)
        sub.add_argument("--id", type=int, required=True, help="Task id")

    parser_export = subparsers.add_parser("export", help="Write all tasks as a JSON array")
    parser_export.add_argument("--output", help="Target file (default: stdout)")

    parser_import = subparsers.add_parser("import", help="Replace all tasks from a JSON array file")
    parser_import.add_argument("file", help="File written by export")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point"""
    args = build_parser().parse_args(argv)

    try:
        store = open_store(args)
        if args.command == "list":
            return cmd_list(store, args.status, args.query, args.owner_id, args.format)
        elif args.command == "add":
            return cmd_add(store, args)
        elif args.command == "update":
            return cmd_update(store, args)
        elif args.command == "complete":
            return cmd_complete(store, args.id, args.format)
        elif args.command == "delete":
            return cmd_delete(store, args.id, args.format)
        elif args.command == "get":
            return cmd_get(store, args.id, args.format)
        elif args.command == "export":
            return cmd_export(store, args.output)
        elif args.command == "import":
            return cmd_import(store, args.file)
    except TaskboardError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        invalid: Optional[List[str]] = getattr(exc, "invalid_fields", None)
        if invalid:
            print(f"Invalid fields: {', '.join(invalid)}", file=sys.stderr)
        return 1

    print(f"Error: unknown command: {args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
