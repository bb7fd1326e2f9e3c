"""Unit tests for user id validation and session-context statements."""

import uuid

import pytest

from history_portal.db.errors import InvalidIdentity
from history_portal.db.identity import (
    ActingIdentity,
    session_context_statements,
    validate_role_name,
    validate_user_id,
)

VALID_ID = "9f0c1d2e-3a4b-4c5d-8e6f-7a8b9c0d1e2f"


@pytest.mark.parametrize(
    "value",
    [
        VALID_ID,
        "00000000-0000-0000-0000-000000000000",
        "ffffffff-ffff-ffff-ffff-ffffffffffff",
        str(uuid.uuid4()),
    ],
)
def test_validate_user_id_accepts_canonical_uuid(value: str) -> None:
    assert validate_user_id(value) == value


def test_validate_user_id_lowercases_uppercase_hex() -> None:
    assert validate_user_id(VALID_ID.upper()) == VALID_ID


@pytest.mark.parametrize(
    "value",
    [
        "",
        "not-a-uuid",
        "'; DROP TABLE card; --",
        f"{VALID_ID}'; SET LOCAL app.is_admin = 'true",
        f"{{{VALID_ID}}}",
        f"urn:uuid:{VALID_ID}",
        VALID_ID.replace("-", ""),
        f" {VALID_ID}",
        f"{VALID_ID} ",
        f"{VALID_ID}\n",
        VALID_ID[:-1],
        VALID_ID + "0",
        VALID_ID.replace("9", "g", 1),
        # Arabic-Indic digit; \d would accept it without re.ASCII
        VALID_ID.replace("0", "٠", 1),
    ],
)
def test_validate_user_id_rejects_malformed(value: str) -> None:
    with pytest.raises(InvalidIdentity) as exc_info:
        validate_user_id(value)

    assert str(exc_info.value) == "Invalid user ID format"


@pytest.mark.parametrize("value", [None, 42, uuid.UUID(VALID_ID), VALID_ID.encode()])
def test_validate_user_id_rejects_non_string(value: object) -> None:
    with pytest.raises(InvalidIdentity):
        validate_user_id(value)


def test_invalid_identity_message_does_not_echo_input() -> None:
    with pytest.raises(InvalidIdentity) as exc_info:
        validate_user_id("secret-token-value")

    assert "secret-token-value" not in str(exc_info.value)


@pytest.mark.parametrize("role", ["app_user", "_r", "role_2"])
def test_validate_role_name_accepts_identifiers(role: str) -> None:
    assert validate_role_name(role) == role


@pytest.mark.parametrize("role", ["", "App_User", "2role", "app-user", "app_user; RESET ROLE", "a" * 64])
def test_validate_role_name_rejects_non_identifiers(role: str) -> None:
    with pytest.raises(ValueError):
        validate_role_name(role)


class TestSessionContextStatements:
    def test_user_scope_sets_role_then_user_id(self) -> None:
        statements = session_context_statements(ActingIdentity.user(VALID_ID), "app_user")

        assert statements == [
            "SET LOCAL ROLE app_user",
            f"SET LOCAL app.user_id = '{VALID_ID}'",
        ]

    def test_admin_scope_sets_flag_only(self) -> None:
        statements = session_context_statements(ActingIdentity.admin(), "app_user")

        assert statements == ["SET LOCAL ROLE app_user", "SET LOCAL app.is_admin = 'true'"]

    def test_no_role_skips_role_switch(self) -> None:
        statements = session_context_statements(ActingIdentity.user(VALID_ID), None)

        assert statements == [f"SET LOCAL app.user_id = '{VALID_ID}'"]

    def test_uppercase_id_is_written_lowercase(self) -> None:
        statements = session_context_statements(ActingIdentity.user(VALID_ID.upper()), None)

        assert statements == [f"SET LOCAL app.user_id = '{VALID_ID}'"]

    def test_every_statement_is_transaction_local(self) -> None:
        for identity in (ActingIdentity.user(VALID_ID), ActingIdentity.admin()):
            for statement in session_context_statements(identity, "app_user"):
                assert statement.startswith("SET LOCAL ")

    def test_directly_constructed_identity_is_revalidated(self) -> None:
        identity = ActingIdentity(user_id="x' OR '1'='1")

        with pytest.raises(InvalidIdentity):
            session_context_statements(identity, None)

    def test_bad_role_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            session_context_statements(ActingIdentity.admin(), "app_user; RESET ROLE")


def test_acting_identity_scope_labels() -> None:
    assert ActingIdentity.user(VALID_ID).scope == "user"
    assert ActingIdentity.admin().scope == "admin"
    assert ActingIdentity.admin().user_id is None
