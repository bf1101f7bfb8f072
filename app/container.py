from __future__ import annotations

from dataclasses import dataclass

from app.application.services.auth_service import AuthService
from app.application.services.dashboard_service import DashboardService
from app.application.services.preop_form_service import PreopFormService
from app.application.services.user_admin_service import UserAdminService
from app.infrastructure.db.repositories.audit_repo import AuditLogRepository
from app.infrastructure.db.repositories.preop_form_repo import PreopFormRepository
from app.infrastructure.db.repositories.user_repo import UserRepository
from app.infrastructure.db.session import SessionFactory, session_scope


@dataclass
class Container:
    user_repo: UserRepository
    audit_repo: AuditLogRepository
    preop_form_repo: PreopFormRepository

    auth_service: AuthService
    user_admin_service: UserAdminService
    preop_form_service: PreopFormService
    dashboard_service: DashboardService


def build_container(session_factory: SessionFactory = session_scope) -> Container:
    user_repo = UserRepository()
    audit_repo = AuditLogRepository()
    preop_form_repo = PreopFormRepository()

    auth_service = AuthService(user_repo=user_repo, audit_repo=audit_repo, session_factory=session_factory)
    user_admin_service = UserAdminService(
        user_repo=user_repo, audit_repo=audit_repo, session_factory=session_factory
    )
    preop_form_service = PreopFormService(
        repo=preop_form_repo,
        user_repo=user_repo,
        audit_repo=audit_repo,
        session_factory=session_factory,
    )
    dashboard_service = DashboardService(
        repo=preop_form_repo,
        audit_repo=audit_repo,
        session_factory=session_factory,
    )

    return Container(
        user_repo=user_repo,
        audit_repo=audit_repo,
        preop_form_repo=preop_form_repo,
        auth_service=auth_service,
        user_admin_service=user_admin_service,
        preop_form_service=preop_form_service,
        dashboard_service=dashboard_service,
    )
