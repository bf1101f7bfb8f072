from __future__ import annotations

from collections.abc import Callable

from app.application.dto.preop_form_dto import PreopFormFilters
from app.domain.constants import ReadinessStatus
from app.domain.rules.status_rules import MESSAGE_MALFORMED, classify
from app.infrastructure.db.repositories.audit_repo import AuditLogRepository
from app.infrastructure.db.repositories.preop_form_repo import PreopFormRepository
from app.infrastructure.db.session import session_scope


class DashboardService:
    def __init__(
        self,
        repo: PreopFormRepository | None = None,
        audit_repo: AuditLogRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.repo = repo or PreopFormRepository()
        self.audit_repo = audit_repo or AuditLogRepository()
        self.session_factory = session_factory

    def status_summary(self, filters: PreopFormFilters | None = None) -> dict[str, int]:
        """Count forms per readiness colour; ``malformed`` is a subset of ``red``."""
        counts = {status: 0 for status in ReadinessStatus.values()}
        counts["total"] = 0
        counts["malformed"] = 0
        counts["surgery_completed"] = 0
        filter_payload = filters.model_dump(exclude_none=True) if filters else {}
        with self.session_factory() as session:
            for row in self.repo.list_all(session, filters=filter_payload):
                result = classify(self.repo.to_status_source(row))
                counts[result.status.value] += 1
                counts["total"] += 1
                if result.message == MESSAGE_MALFORMED:
                    counts["malformed"] += 1
                if row.surgery_completed:
                    counts["surgery_completed"] += 1
        return counts

    def list_recent_audit(self, limit: int = 10) -> list[dict]:
        with self.session_factory() as session:
            return [
                {
                    "event_ts": entry.event_ts,
                    "action": entry.action,
                    "entity_type": entry.entity_type,
                    "entity_id": entry.entity_id,
                    "login": login or "",
                }
                for entry, login in self.audit_repo.list_recent(session, limit=limit)
            ]
