"""Unit tests for the generated RLS DDL."""

import pytest

from history_portal.db.identity import IS_ADMIN_SETTING, USER_ID_SETTING
from history_portal.db.models import RLS_TABLES, Base
from history_portal.db.policies import (
    DROP_FUNCTION_STATEMENTS,
    FUNCTION_STATEMENTS,
    POLICIES,
    build_policy_statements,
)


def test_helper_functions_read_executor_settings() -> None:
    ddl = "\n".join(FUNCTION_STATEMENTS)

    assert f"current_setting('{USER_ID_SETTING}', true)" in ddl
    assert f"current_setting('{IS_ADMIN_SETTING}', true)" in ddl


def test_membership_helpers_are_security_definer() -> None:
    for statement in FUNCTION_STATEMENTS:
        if any(f"FROM {table}" in statement for table in RLS_TABLES):
            assert "SECURITY DEFINER" in statement
            assert "SET search_path = public" in statement


def test_rls_enabled_on_every_protected_table() -> None:
    statements = build_policy_statements()

    for table in RLS_TABLES:
        assert f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY" in statements
        assert table in Base.metadata.tables


@pytest.mark.parametrize("table", RLS_TABLES)
def test_every_table_has_select_insert_delete_policies(table: str) -> None:
    commands = {command for t, _, command, _, _ in POLICIES if t == table}

    assert {"SELECT", "INSERT", "DELETE"} <= commands


def test_every_policy_honours_admin_flag() -> None:
    for _, name, _, using, check in POLICIES:
        assert (using or check or "").startswith("app_is_admin() OR"), name


def test_policy_names_are_unique() -> None:
    names = [name for _, name, _, _, _ in POLICIES]

    assert len(names) == len(set(names))


def test_policies_recreated_idempotently() -> None:
    statements = build_policy_statements(role=None)

    for table, name, _, _, _ in POLICIES:
        drop = f"DROP POLICY IF EXISTS {name} ON {table}"
        create_prefix = f"CREATE POLICY {name} ON {table}"
        create_index = next(i for i, s in enumerate(statements) if s.startswith(create_prefix))
        assert statements.index(drop) < create_index


def test_role_statements_grant_least_privilege() -> None:
    statements = build_policy_statements(role="app_user")
    ddl = "\n".join(statements)

    assert "CREATE ROLE app_user NOLOGIN" in ddl
    assert "BYPASSRLS" not in ddl
    assert f"GRANT SELECT, INSERT, UPDATE, DELETE ON {', '.join(RLS_TABLES)} TO app_user" in statements
    assert "GRANT app_user TO CURRENT_USER" in statements


def test_no_role_statements_without_role() -> None:
    ddl = "\n".join(build_policy_statements(role=None))

    assert "CREATE ROLE" not in ddl
    assert "GRANT" not in ddl


def test_interpolated_role_is_validated() -> None:
    with pytest.raises(ValueError):
        build_policy_statements(role="app_user; DROP TABLE card")


def test_drop_functions_cascade_to_policies() -> None:
    assert all(s.endswith("CASCADE") for s in DROP_FUNCTION_STATEMENTS)
    assert len(DROP_FUNCTION_STATEMENTS) == len(FUNCTION_STATEMENTS)


def test_models_never_fetch_defaults_on_insert() -> None:
    """INSERT ... RETURNING would be checked against SELECT policies."""
    for mapper in Base.registry.mappers:
        assert mapper.eager_defaults is False, mapper.class_.__name__


def policy(name: str) -> tuple[str | None, str | None]:
    using, check = next((u, c) for _, n, _, u, c in POLICIES if n == name)
    return using, check


def test_owner_bootstrap_limited_to_new_layers() -> None:
    _, check = policy("user_layer_insert")

    assert check is not None
    assert "app_layer_is_new(layer_id)" in check
    assert "NOT app_layer_has_members(layer_id)" in check


def test_last_owner_row_cannot_be_deleted() -> None:
    using, _ = policy("user_layer_delete")

    assert using is not None
    assert "app_layer_owner_count(layer_id) > 1" in using


def test_linking_existing_card_requires_edit_rights_on_it() -> None:
    _, check = policy("card_layer_insert")

    assert check is not None
    assert "app_can_edit_card(card_id)" in check
    assert "NOT app_card_has_links(card_id)" in check


@pytest.mark.parametrize("name", ["card_update", "card_delete"])
def test_card_writes_require_edit_rights(name: str) -> None:
    using, _ = policy(name)

    assert using == "app_is_admin() OR app_can_edit_card(id)"


def test_role_literals_are_quoted() -> None:
    ddl = "\n".join(FUNCTION_STATEMENTS)

    assert "role = 'owner'" in ddl
    assert "role IN ('owner', 'editor')" in ddl
    assert "role = owner" not in ddl
