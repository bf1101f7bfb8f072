from __future__ import annotations

import json
from collections.abc import Callable
from typing import cast

from app.application.dto.auth_dto import CreateUserRequest, ResetPasswordRequest, UserDto
from app.application.security import can_manage_users
from app.infrastructure.db.repositories.audit_repo import AuditLogRepository
from app.infrastructure.db.repositories.user_repo import UserRepository
from app.infrastructure.db.session import session_scope
from app.infrastructure.security.password_hash import hash_password


class UserAdminService:
    def __init__(
        self,
        user_repo: UserRepository | None = None,
        audit_repo: AuditLogRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.user_repo = user_repo or UserRepository()
        self.audit_repo = audit_repo or AuditLogRepository()
        self.session_factory = session_factory

    def create_user(self, request: CreateUserRequest, actor_id: int | None) -> int:
        """Create an account. ``actor_id=None`` is the bootstrap path used before any admin exists."""
        with self.session_factory() as session:
            if actor_id is not None:
                self._require_admin(session, actor_id)
            existing = self.user_repo.get_by_login(session, request.login)
            if existing:
                raise ValueError("Login already exists")

            hashed = hash_password(request.password, scheme="argon2")
            user = self.user_repo.create(
                session,
                login=request.login,
                password_hash=hashed,
                role=request.role,
                full_name=request.full_name,
                created_by=actor_id,
            )

            self.audit_repo.add_event(
                session,
                user_id=actor_id,
                entity_type="user",
                entity_id=str(user.id),
                action="create_user",
                payload_json=json.dumps({"login": request.login, "role": request.role}),
            )
            return cast(int, user.id)

    def reset_password(self, request: ResetPasswordRequest, actor_id: int) -> None:
        with self.session_factory() as session:
            self._require_admin(session, actor_id)
            user = self.user_repo.get_by_id(session, request.user_id)
            if not user:
                raise ValueError("User not found")

            hashed = hash_password(request.new_password, scheme="argon2")
            self.user_repo.set_password(session, request.user_id, hashed)
            if request.deactivate:
                self.user_repo.set_active(session, request.user_id, False)

            self.audit_repo.add_event(
                session,
                user_id=actor_id,
                entity_type="user",
                entity_id=str(request.user_id),
                action="reset_password",
                payload_json=json.dumps({"deactivate": request.deactivate}),
            )

    def set_active(self, user_id: int, is_active: bool, actor_id: int) -> None:
        with self.session_factory() as session:
            self._require_admin(session, actor_id)
            user = self.user_repo.get_by_id(session, user_id)
            if not user:
                raise ValueError("User not found")
            self.user_repo.set_active(session, user_id, is_active)
            self.audit_repo.add_event(
                session,
                user_id=actor_id,
                entity_type="user",
                entity_id=str(user_id),
                action="set_active",
                payload_json=json.dumps({"is_active": is_active}),
            )

    def delete_user(self, user_id: int, actor_id: int) -> None:
        with self.session_factory() as session:
            self._require_admin(session, actor_id)
            if user_id == actor_id:
                raise ValueError("You cannot delete your own account")
            user = self.user_repo.get_by_id(session, user_id)
            if not user:
                raise ValueError("User not found")
            login = str(user.login)
            self.user_repo.delete(session, user_id)
            self.audit_repo.add_event(
                session,
                user_id=actor_id,
                entity_type="user",
                entity_id=str(user_id),
                action="delete_user",
                payload_json=json.dumps({"login": login}),
            )

    def list_users(self, query: str | None = None) -> list[UserDto]:
        with self.session_factory() as session:
            return [
                UserDto(
                    id=cast(int, user.id),
                    login=str(user.login),
                    full_name=str(user.full_name),
                    role=user.role,  # type: ignore[arg-type]
                    is_active=bool(user.is_active),
                )
                for user in self.user_repo.list_users(session, query=query)
            ]

    def _require_admin(self, session, actor_id: int) -> None:
        actor = self.user_repo.get_by_id(session, actor_id)
        if not actor or not actor.is_active or not can_manage_users(str(actor.role)):
            self.audit_repo.add_event(
                session,
                user_id=actor_id,
                entity_type="user",
                entity_id=str(actor_id),
                action="access_denied",
                payload_json=json.dumps({"reason": "admin_required"}),
            )
            raise ValueError("Insufficient permissions for this operation")
