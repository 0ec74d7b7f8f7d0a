"""AuthService tests: registration rules, login sessions, user administration"""

from datetime import datetime, timedelta, timezone

import pytest

from taskboard import database
from taskboard.exceptions import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    SelfDeletionError,
    ValidationError,
)
from taskboard.tasks.file_store import JsonTaskStore
from taskboard.tasks.validation import build_new_task
from taskboard.users import Role, SessionRepository, UserRepository
from taskboard.users.auth import INVALID_CREDENTIALS, AuthService


@pytest.fixture
def users(tmp_path):
    return UserRepository(db_path=tmp_path / "taskboard.db")


@pytest.fixture
def task_store(tmp_path):
    return JsonTaskStore(tmp_path / "tasks.json")


@pytest.fixture
def service(tmp_path, users, task_store):
    return AuthService(
        users,
        SessionRepository(db_path=tmp_path / "taskboard.db"),
        admin_emails=["Admin@Example.com"],
        task_store=task_store,
    )


def test_register_rejects_short_password(service):
    with pytest.raises(ValidationError) as excinfo:
        service.register("a@x.com", "short")
    assert excinfo.value.invalid_fields == ["password"]


@pytest.mark.parametrize("email, password", [(None, "longenough"), ("a@x.com", None), ("", "")])
def test_register_requires_both_fields(service, email, password):
    with pytest.raises(ValidationError, match="required"):
        service.register(email, password)


def test_register_rejects_malformed_email(service):
    with pytest.raises(ValidationError, match="email"):
        service.register("not-an-email", "longenough")


def test_register_stores_hash_not_password(service, users):
    user = service.register("a@x.com", "longenough")
    assert user.role is Role.USER

    found_user, password_hash = users.find_credentials("a@x.com")
    assert found_user.id == user.id
    assert password_hash != "longenough"
    assert "longenough" not in password_hash


def test_duplicate_email_is_a_conflict_regardless_of_case(service):
    service.register("a@x.com", "longenough")
    with pytest.raises(ConflictError):
        service.register("  A@X.com ", "different1")


def test_admin_emails_get_admin_role(service):
    assert service.register("admin@example.com", "longenough").role is Role.ADMIN


def test_login_failures_share_one_message(service):
    service.register("a@x.com", "longenough")

    with pytest.raises(AuthError) as wrong_password:
        service.login("a@x.com", "wrongpass")
    with pytest.raises(AuthError) as unknown_email:
        service.login("nobody@x.com", "longenough")

    assert wrong_password.value.message == INVALID_CREDENTIALS
    assert unknown_email.value.message == INVALID_CREDENTIALS


def test_login_session_lifecycle(service):
    user = service.register("a@x.com", "longenough")

    identity, token = service.login("A@x.com", "longenough")
    assert identity.user_id == user.id
    assert identity.email == "a@x.com"
    assert service.resolve(token) == identity

    service.logout(token)
    assert service.resolve(token) is None
    assert service.resolve(None) is None
    service.logout(token)


def test_user_administration_requires_admin(service):
    service.register("a@x.com", "longenough")
    user_identity, _ = service.login("a@x.com", "longenough")

    with pytest.raises(AuthError):
        service.list_users(None)
    with pytest.raises(ForbiddenError):
        service.list_users(user_identity)
    with pytest.raises(ForbiddenError):
        service.delete_user(user_identity, user_identity.user_id)


def test_admin_cannot_delete_self(service):
    service.register("admin@example.com", "longenough")
    admin, _ = service.login("admin@example.com", "longenough")
    with pytest.raises(SelfDeletionError):
        service.delete_user(admin, admin.user_id)


def test_delete_user_removes_sessions_and_json_tasks(service, task_store):
    service.register("admin@example.com", "longenough")
    admin, _ = service.login("admin@example.com", "longenough")
    victim = service.register("a@x.com", "longenough")
    _, token = service.login("a@x.com", "longenough")
    task_store.create(build_new_task({"title": "theirs"}), owner_id=victim.id)
    task_store.create(build_new_task({"title": "shared"}))

    service.delete_user(admin, victim.id)

    assert service.resolve(token) is None
    assert [t.title for t in task_store.list()] == ["shared"]
    assert [u.email for u in service.list_users(admin)] == ["admin@example.com"]

    with pytest.raises(NotFoundError):
        service.delete_user(admin, victim.id)


def test_expired_sessions_stop_resolving_and_are_purged(tmp_path, users):
    db_path = tmp_path / "taskboard.db"
    service = AuthService(users, SessionRepository(db_path=db_path, ttl=timedelta(hours=1)))
    service.register("a@x.com", "longenough")
    _, stale_token = service.login("a@x.com", "longenough")
    _, fresh_token = service.login("a@x.com", "longenough")

    two_hours_ago = (datetime.now(timezone.utc) - timedelta(hours=2)).isoformat(timespec="microseconds")
    conn = database.connect(db_path)
    conn.execute("UPDATE sessions SET created_at = ? WHERE token = ?", (two_hours_ago, stale_token))
    conn.close()

    assert service.resolve(stale_token) is None
    assert service.resolve(fresh_token) is not None

    service.login("a@x.com", "longenough")
    conn = database.connect(db_path)
    remaining = conn.execute("SELECT token FROM sessions").fetchall()
    conn.close()
    assert stale_token not in [row["token"] for row in remaining]
    assert len(remaining) == 2
