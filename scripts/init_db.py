"""Create the schema, sync the permission catalog and (optionally) bootstrap an admin.

Bootstrap runs when BOOTSTRAP_ADMIN_EMAIL and BOOTSTRAP_ADMIN_PASSWORD are set and no user
with that email exists yet.
"""

from __future__ import annotations

import importlib
import os

from dotenv import load_dotenv
from werkzeug.security import generate_password_hash

from hr_backoffice.common.logging import setup_logging
from hr_backoffice.config import get_settings_module
from hr_backoffice.container import Container, build_container
from hr_backoffice.core.constants import ADMIN_ROLE_NAME, SUPER_ADMIN_ROLE_NAME, WILDCARD_PERMISSION
from hr_backoffice.database.bootstrap import apply_schema, list_tables
from hr_backoffice.database.connection import DBConfig
from hr_backoffice.leave.model import DEFAULT_POLICIES
from hr_backoffice.permissions.catalog import PERMISSION_CATALOG
from hr_backoffice.permissions.model import PermissionDef


def bootstrap_admin(container: Container, *, email: str, password: str, company_name: str) -> None:
    if container.users_repo.get_by_email(email):
        print(f"SKIP: user {email} already exists")
        return

    system_roles = [r for r in container.roles_repo.list_by_name(SUPER_ADMIN_ROLE_NAME) if r.company_id is None]
    if system_roles:
        system_role_id = system_roles[0].role_id
    else:
        system_role_id = container.roles_repo.create(
            company_id=None, name=SUPER_ADMIN_ROLE_NAME, permissions=[WILDCARD_PERMISSION], is_system=True
        )

    company_id = container.users_repo.create_company(company_name)
    container.roles_repo.create(
        company_id=company_id, name=ADMIN_ROLE_NAME, permissions=[p.key for p in PERMISSION_CATALOG]
    )
    user_id = container.users_repo.create_user(
        company_id=company_id,
        email=email,
        password_hash=generate_password_hash(password),
        first_name="System",
        last_name="Admin",
        department=None,
        employee_code=None,
        joining_date=None,
    )
    container.users_repo.set_roles(user_id, [system_role_id])
    print(f"OK: bootstrapped company #{company_id} with admin {email} (user #{user_id})")


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    setup_logging(getattr(settings, "LOG_LEVEL", None))
    db_config = dict(settings.DB_CONFIG)

    container = build_container(
        db_config=db_config,
        jwt_secret=settings.JWT_SECRET,
        jwt_ttl=int(settings.JWT_TTL_SECONDS),
        tz_name=settings.ORG_TIMEZONE,
        upload_dir=settings.UPLOAD_DIR,
        file_base_url=settings.FILE_BASE_URL,
    )
    database = DBConfig.from_dict(db_config).database
    apply_schema(container.conn, database)

    container.permissions_repo.upsert(PermissionDef(WILDCARD_PERMISSION, "system", "All permissions"))
    result = container.permission_sync.reconcile(PERMISSION_CATALOG)

    for policy in DEFAULT_POLICIES:
        if container.policies_repo.get(policy.leave_type) is None:
            container.policies_repo.upsert(policy)

    email = os.getenv("BOOTSTRAP_ADMIN_EMAIL")
    password = os.getenv("BOOTSTRAP_ADMIN_PASSWORD")
    if email and password:
        bootstrap_admin(
            container,
            email=email,
            password=password,
            company_name=os.getenv("BOOTSTRAP_COMPANY_NAME", "Default Company"),
        )

    tables = list_tables(container.conn)
    print(
        "OK: Applied schema.sql -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{database} "
        f"(tables={len(tables)}, permissions={result.upserted}, deprecated={result.deprecated})"
    )


if __name__ == "__main__":
    main()
