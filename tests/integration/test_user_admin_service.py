from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import cast

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.application.dto.auth_dto import CreateUserRequest, LoginRequest, ResetPasswordRequest
from app.application.services.auth_service import AuthService
from app.application.services.user_admin_service import UserAdminService
from app.bootstrap.startup import create_first_admin
from app.infrastructure.db.models_sqlalchemy import Base
from app.infrastructure.db.repositories.user_repo import UserRepository


def make_session_factory(db_path: Path) -> Callable[[], AbstractContextManager[Session]]:
    engine = create_engine(f"sqlite:///{db_path.as_posix()}", future=True)
    Base.metadata.create_all(engine)
    session_local = sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
    )

    @contextmanager
    def _session_scope() -> Iterator[Session]:
        session: Session = session_local()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _session_scope


def seed_users(session_factory: Callable[[], AbstractContextManager[Session]]) -> tuple[int, int]:
    repo = UserRepository()
    with session_factory() as session:
        admin = repo.create(session, login="admin", password_hash="x", role="admin", full_name="Head Nurse")
        nurse = repo.create(session, login="nurse", password_hash="x", role="user", full_name="Nurse")
        return cast(int, admin.id), cast(int, nurse.id)


def test_first_admin_is_created_once(tmp_path: Path) -> None:
    session_factory = make_session_factory(tmp_path / "bootstrap.db")
    service = UserAdminService(session_factory=session_factory)

    admin_id = create_first_admin(service, login="admin", full_name="Head Nurse", password="StrongPass1")
    assert [user.id for user in service.list_users()] == [admin_id]
    assert service.list_users()[0].role == "admin"

    with pytest.raises(ValueError, match="already exist"):
        create_first_admin(service, login="admin2", full_name="Second", password="StrongPass1")


def test_only_admins_manage_users(tmp_path: Path) -> None:
    session_factory = make_session_factory(tmp_path / "acl.db")
    _admin_id, nurse_id = seed_users(session_factory)
    service = UserAdminService(session_factory=session_factory)

    request = CreateUserRequest(login="intruder", full_name="Intruder", password="StrongPass1")
    with pytest.raises(ValueError, match="Insufficient permissions"):
        service.create_user(request, actor_id=nurse_id)
    with pytest.raises(ValueError, match="Insufficient permissions"):
        service.set_active(nurse_id, False, actor_id=nurse_id)


def test_duplicate_login_is_rejected(tmp_path: Path) -> None:
    session_factory = make_session_factory(tmp_path / "duplicate.db")
    admin_id, _nurse_id = seed_users(session_factory)
    service = UserAdminService(session_factory=session_factory)

    with pytest.raises(ValueError, match="Login already exists"):
        service.create_user(
            CreateUserRequest(login="nurse", full_name="Another Nurse", password="StrongPass1"),
            actor_id=admin_id,
        )


def test_reset_password_and_deactivate(tmp_path: Path) -> None:
    session_factory = make_session_factory(tmp_path / "reset.db")
    admin_id, nurse_id = seed_users(session_factory)
    service = UserAdminService(session_factory=session_factory)
    auth = AuthService(session_factory=session_factory)

    service.reset_password(ResetPasswordRequest(user_id=nurse_id, new_password="NewStrong1"), actor_id=admin_id)
    assert auth.login(LoginRequest(login="nurse", password="NewStrong1")).user_id == nurse_id

    service.set_active(nurse_id, False, actor_id=admin_id)
    users = {user.login: user for user in service.list_users()}
    assert users["nurse"].is_active is False
    assert [user.login for user in service.list_users(query="head")] == ["admin"]
    assert service.list_users(query="surgeon") == []


def test_delete_user_refuses_self_delete(tmp_path: Path) -> None:
    session_factory = make_session_factory(tmp_path / "delete.db")
    admin_id, nurse_id = seed_users(session_factory)
    service = UserAdminService(session_factory=session_factory)

    with pytest.raises(ValueError, match="your own account"):
        service.delete_user(admin_id, actor_id=admin_id)

    service.delete_user(nurse_id, actor_id=admin_id)
    assert [user.login for user in service.list_users()] == ["admin"]
    with pytest.raises(ValueError, match="User not found"):
        service.delete_user(nurse_id, actor_id=admin_id)
