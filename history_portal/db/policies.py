"""Row-level security policies for card, layer and membership tables.

Policies read the transaction-scoped settings written by RLSExecutor:

- ``current_app_user_id()`` returns ``app.user_id`` as a uuid, NULL when unset
- ``app_is_admin()`` is true only when ``app.is_admin`` is ``'true'``

Membership lookups go through ``SECURITY DEFINER`` helpers so a policy on one
table can consult ``user_layer`` without recursing into its own policy. RLS is
enabled but not forced: the table owner bypasses it, the least-privilege role
the executor switches to does not.

Ownership rules:
- a user may claim ``owner`` only on a layer inserted by the same transaction
- the last owner row of a layer cannot be deleted
- a card already linked into a layer can only be linked elsewhere by someone
  who is owner or editor on one of its layers

Every statement is idempotent. Apply with::

    python -m history_portal.db.policies
"""

import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from history_portal.config import get_settings
from history_portal.db.engine import create_async_engine_from_settings
from history_portal.db.identity import IS_ADMIN_SETTING, USER_ID_SETTING, validate_role_name
from history_portal.db.models import RLS_TABLES, Base

FUNCTION_STATEMENTS: list[str] = [
    f"""
    CREATE OR REPLACE FUNCTION current_app_user_id() RETURNS uuid
    LANGUAGE sql STABLE AS $$
        SELECT NULLIF(current_setting('{USER_ID_SETTING}', true), '')::uuid
    $$
    """,
    f"""
    CREATE OR REPLACE FUNCTION app_is_admin() RETURNS boolean
    LANGUAGE sql STABLE AS $$
        SELECT COALESCE(current_setting('{IS_ADMIN_SETTING}', true), '') = 'true'
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_layer_role(target_layer uuid) RETURNS layer_role
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT role FROM user_layer
        WHERE layer_id = target_layer AND user_id = current_app_user_id()
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_layer_has_members(target_layer uuid) RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT EXISTS (SELECT 1 FROM user_layer WHERE layer_id = target_layer)
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_layer_owner_count(target_layer uuid) RETURNS bigint
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT count(*) FROM user_layer WHERE layer_id = target_layer AND role = 'owner'
    $$
    """,
    # Layer row was inserted by the current top-level transaction
    """
    CREATE OR REPLACE FUNCTION app_layer_is_new(target_layer uuid) RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT EXISTS (
            SELECT 1 FROM layer WHERE id = target_layer AND xmin = pg_current_xact_id()::xid
        )
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_card_has_links(target_card uuid) RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT EXISTS (SELECT 1 FROM card_layer WHERE card_id = target_card)
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_can_edit_card(target_card uuid) RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT EXISTS (
            SELECT 1 FROM card_layer cl
            JOIN user_layer ul ON ul.layer_id = cl.layer_id
            WHERE cl.card_id = target_card
              AND ul.user_id = current_app_user_id()
              AND ul.role IN ('owner', 'editor')
        )
    $$
    """,
]

# (table, policy name, command, USING, WITH CHECK)
POLICIES: list[tuple[str, str, str, str | None, str | None]] = [
    # user_layer
    (
        "user_layer",
        "user_layer_select",
        "SELECT",
        "app_is_admin() OR user_id = current_app_user_id() OR app_layer_role(layer_id) IS NOT NULL",
        None,
    ),
    (
        "user_layer",
        "user_layer_insert",
        "INSERT",
        None,
        "app_is_admin() OR app_layer_role(layer_id) = 'owner'"
        " OR (user_id = current_app_user_id() AND role = 'owner'"
        " AND app_layer_is_new(layer_id) AND NOT app_layer_has_members(layer_id))",
    ),
    (
        "user_layer",
        "user_layer_update",
        "UPDATE",
        "app_is_admin() OR app_layer_role(layer_id) = 'owner'",
        "app_is_admin() OR app_layer_role(layer_id) = 'owner'",
    ),
    (
        "user_layer",
        "user_layer_delete",
        "DELETE",
        "app_is_admin() OR ((app_layer_role(layer_id) = 'owner' OR user_id = current_app_user_id())"
        " AND (role <> 'owner' OR app_layer_owner_count(layer_id) > 1))",
        None,
    ),
    # layer
    (
        "layer",
        "layer_select",
        "SELECT",
        "app_is_admin() OR app_layer_role(id) IS NOT NULL",
        None,
    ),
    (
        "layer",
        "layer_insert",
        "INSERT",
        None,
        "app_is_admin() OR current_app_user_id() IS NOT NULL",
    ),
    (
        "layer",
        "layer_update",
        "UPDATE",
        "app_is_admin() OR app_layer_role(id) IN ('owner', 'editor')",
        None,
    ),
    (
        "layer",
        "layer_delete",
        "DELETE",
        "app_is_admin() OR app_layer_role(id) = 'owner'",
        None,
    ),
    # card_layer
    (
        "card_layer",
        "card_layer_select",
        "SELECT",
        "app_is_admin() OR app_layer_role(layer_id) IS NOT NULL",
        None,
    ),
    (
        "card_layer",
        "card_layer_insert",
        "INSERT",
        None,
        # A card already in some layer may only be linked by someone who can edit it
        "app_is_admin() OR (app_layer_role(layer_id) IN ('owner', 'editor')"
        " AND (NOT app_card_has_links(card_id) OR app_can_edit_card(card_id)))",
    ),
    (
        "card_layer",
        "card_layer_delete",
        "DELETE",
        "app_is_admin() OR app_layer_role(layer_id) IN ('owner', 'editor')",
        None,
    ),
    # card
    (
        "card",
        "card_select",
        "SELECT",
        """app_is_admin() OR EXISTS (
            SELECT 1 FROM card_layer cl
            WHERE cl.card_id = card.id AND app_layer_role(cl.layer_id) IS NOT NULL
        )""",
        None,
    ),
    (
        "card",
        "card_insert",
        "INSERT",
        None,
        "app_is_admin() OR current_app_user_id() IS NOT NULL",
    ),
    ("card", "card_update", "UPDATE", "app_is_admin() OR app_can_edit_card(id)", None),
    ("card", "card_delete", "DELETE", "app_is_admin() OR app_can_edit_card(id)", None),
]


def _policy_statements() -> list[str]:
    statements: list[str] = []
    for table, name, command, using, check in POLICIES:
        statements.append(f"DROP POLICY IF EXISTS {name} ON {table}")
        create = f"CREATE POLICY {name} ON {table} FOR {command}"
        if using:
            create += f" USING ({using})"
        if check:
            create += f" WITH CHECK ({check})"
        statements.append(create)
    return statements


def _role_statements(role: str) -> list[str]:
    role = validate_role_name(role)
    tables = ", ".join(RLS_TABLES)
    return [
        f"""
        DO $$
        BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_roles WHERE rolname = '{role}') THEN
                CREATE ROLE {role} NOLOGIN;
            END IF;
        END
        $$
        """,
        f"GRANT USAGE ON SCHEMA public TO {role}",
        f"GRANT SELECT, INSERT, UPDATE, DELETE ON {tables} TO {role}",
        f'GRANT SELECT ON "user" TO {role}',
        # Lets a non-superuser login role run SET ROLE
        f"GRANT {role} TO CURRENT_USER",
    ]


def build_policy_statements(role: str | None = "app_user") -> list[str]:
    """Build the ordered DDL that installs RLS helpers, policies and grants.

    Args:
        role: Least-privilege role to create and grant to; None to skip

    Returns:
        SQL statements, one command each
    """
    statements = list(FUNCTION_STATEMENTS)
    statements += [f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY" for table in RLS_TABLES]
    statements += _policy_statements()
    if role:
        statements += _role_statements(role)
    return statements


async def apply_rls_policies(conn: AsyncConnection, role: str | None = "app_user") -> None:
    """Apply RLS policies on an open connection. Tables must already exist."""
    for statement in build_policy_statements(role):
        await conn.execute(text(statement))


# Policies depend on these; CASCADE drops them with the functions
DROP_FUNCTION_STATEMENTS: list[str] = [
    "DROP FUNCTION IF EXISTS app_layer_role(uuid) CASCADE",
    "DROP FUNCTION IF EXISTS app_layer_has_members(uuid) CASCADE",
    "DROP FUNCTION IF EXISTS app_layer_owner_count(uuid) CASCADE",
    "DROP FUNCTION IF EXISTS app_layer_is_new(uuid) CASCADE",
    "DROP FUNCTION IF EXISTS app_card_has_links(uuid) CASCADE",
    "DROP FUNCTION IF EXISTS app_can_edit_card(uuid) CASCADE",
    "DROP FUNCTION IF EXISTS app_is_admin() CASCADE",
    "DROP FUNCTION IF EXISTS current_app_user_id() CASCADE",
]


async def drop_rls_functions(conn: AsyncConnection) -> None:
    """Drop RLS helper functions and the policies using them.

    Run before dropping tables: app_layer_role() pins the layer_role type.
    """
    for statement in DROP_FUNCTION_STATEMENTS:
        await conn.execute(text(statement))


async def install_rls(engine: AsyncEngine, role: str | None = "app_user") -> None:
    """Create missing tables, then apply helpers, policies and grants.

    Safe to run repeatedly; existing tables and rows are left alone.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await apply_rls_policies(conn, role)


async def main() -> None:
    settings = get_settings()
    engine = create_async_engine_from_settings(settings)
    try:
        print("Applying RLS policies...")
        await install_rls(engine, settings.rls_role or None)
        print("✅ RLS policies applied")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
