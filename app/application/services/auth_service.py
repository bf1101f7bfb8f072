from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Literal, cast

from app.application.dto.auth_dto import LoginRequest, SessionContext
from app.infrastructure.db.repositories.audit_repo import AuditLogRepository
from app.infrastructure.db.repositories.user_repo import UserRepository
from app.infrastructure.db.session import session_scope
from app.infrastructure.security.password_hash import hash_password, needs_rehash, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        user_repo: UserRepository | None = None,
        audit_repo: AuditLogRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.user_repo = user_repo or UserRepository()
        self.audit_repo = audit_repo or AuditLogRepository()
        self.session_factory = session_factory

    def login(self, request: LoginRequest) -> SessionContext:
        with self.session_factory() as session:
            user = self.user_repo.get_by_login(session, request.login)
            if not user or not user.is_active:
                logger.info("Rejected login for %s: unknown or inactive user", request.login)
                raise ValueError("Invalid login or the user is deactivated")

            password_hash = cast(str, user.password_hash)
            try:
                password_ok = verify_password(request.password, password_hash)
            except ValueError:
                logger.warning("User %s has an unrecognised password hash format", request.login)
                password_ok = False
            if not password_ok:
                raise ValueError("Invalid login or password")
            if needs_rehash(password_hash):
                self.user_repo.set_password(session, cast(int, user.id), hash_password(request.password))
                logger.info("Upgraded password hash for %s", request.login)

            self.audit_repo.add_event(
                session,
                user_id=cast(int, user.id),
                entity_type="user",
                entity_id=str(cast(int, user.id)),
                action="login",
                payload_json=json.dumps({"login": cast(str, user.login)}),
            )
            return SessionContext(
                user_id=cast(int, user.id),
                login=cast(str, user.login),
                full_name=cast(str, user.full_name),
                role=cast(Literal["admin", "user"], user.role),
            )
