from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.infrastructure.db.models_sqlalchemy import AuditLog, User


class AuditLogRepository:
    def add_event(
        self,
        session: Session,
        *,
        user_id: int | None,
        entity_type: str,
        entity_id: str,
        action: str,
        payload_json: str | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            payload_json=payload_json,
        )
        session.add(entry)
        return entry

    def list_for_entity(self, session: Session, *, entity_type: str, entity_id: str) -> list[AuditLog]:
        stmt = (
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.event_ts.asc(), AuditLog.id.asc())
        )
        return list(session.execute(stmt).scalars())

    def list_recent(self, session: Session, *, limit: int = 10) -> list[tuple[AuditLog, str | None]]:
        stmt = (
            select(AuditLog, User.login)
            .outerjoin(User, User.id == AuditLog.user_id)
            .order_by(AuditLog.event_ts.desc(), AuditLog.id.desc())
            .limit(limit)
        )
        return [(row[0], row[1]) for row in session.execute(stmt).all()]
