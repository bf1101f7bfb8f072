from __future__ import annotations

import logging
import traceback
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import select

from app.application.dto.auth_dto import CreateUserRequest
from app.application.services.user_admin_service import UserAdminService
from app.infrastructure.db.models_sqlalchemy import User

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path("app") / "infrastructure" / "db" / "migrations"


def check_startup_prerequisites(root_dir: Path, db_file: Path | None) -> bool:
    if not (root_dir / "alembic.ini").exists():
        logger.error("alembic.ini is missing in %s; check the installation", root_dir)
        return False
    if not (root_dir / MIGRATIONS_DIR).exists():
        logger.error("Migrations directory is missing in %s; check the installation", root_dir)
        return False
    if db_file is None:
        return True
    try:
        test_file = db_file.parent / ".write_test"
        test_file.write_text("ok", encoding="utf-8")
        test_file.unlink(missing_ok=True)
    except OSError:
        logger.error("Database directory is not writable: %s", db_file.parent)
        return False
    return True


def run_migrations(root_dir: Path, database_url: str, log_dir: Path) -> bool:
    try:
        cfg = Config(str(root_dir / "alembic.ini"))
        cfg.set_main_option("script_location", str(root_dir / MIGRATIONS_DIR))
        cfg.set_main_option("sqlalchemy.url", database_url)
        cfg.attributes["configure_logger"] = False
        command.upgrade(cfg, "head")
        return True
    except Exception:  # noqa: BLE001
        logger.exception("Failed to run migrations")
        try:
            error_path = log_dir / "migration_error.log"
            error_path.parent.mkdir(parents=True, exist_ok=True)
            with error_path.open("a", encoding="utf-8") as handle:
                handle.write("\n--- Migration error ---\n")
                handle.write(f"DB: {database_url}\n")
                handle.write(f"Migrations: {root_dir / MIGRATIONS_DIR}\n")
                handle.write(traceback.format_exc())
        except OSError:
            logger.exception("Failed to write migration error log")
        return False


def has_users(session_factory) -> bool:
    try:
        with session_factory() as session:
            return session.execute(select(User.id).limit(1)).first() is not None
    except Exception:  # noqa: BLE001
        logger.exception("Failed to check users")
        return False


def initialize_database(
    *,
    root_dir: Path,
    db_file: Path | None,
    database_url: str,
    log_dir: Path,
) -> bool:
    if not check_startup_prerequisites(root_dir, db_file):
        return False
    return run_migrations(root_dir, database_url, log_dir)


def create_first_admin(
    user_admin_service: UserAdminService,
    *,
    login: str,
    full_name: str,
    password: str,
) -> int:
    """Create the bootstrap administrator; refused once any user exists."""
    if has_users(user_admin_service.session_factory):
        raise ValueError("Users already exist; create further accounts as an administrator")
    request = CreateUserRequest(login=login, full_name=full_name, password=password, role="admin")
    user_id = user_admin_service.create_user(request, actor_id=None)
    logger.info("Bootstrap administrator %s created", login)
    return user_id
