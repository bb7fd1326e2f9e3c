"""Acting identity and the session-context statements derived from it.

Postgres does not accept bind parameters in ``SET`` statements, so the user id
and role name are interpolated into SQL text. ``validate_user_id`` and
``validate_role_name`` are the only way a value reaches that text.
"""

import re
from dataclasses import dataclass

from history_portal.db.errors import InvalidIdentity

# Setting names read by the policy functions in history_portal.db.policies
USER_ID_SETTING = "app.user_id"
IS_ADMIN_SETTING = "app.is_admin"

# 8-4-4-4-12 hex. \Z rather than $ so a trailing newline does not match.
UUID_PATTERN = re.compile(
    r"\A[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\Z",
    re.IGNORECASE | re.ASCII,
)

ROLE_NAME_PATTERN = re.compile(r"\A[a-z_][a-z0-9_]{0,62}\Z", re.ASCII)


def validate_user_id(value: object) -> str:
    """Validate a user identifier and return its lowercase canonical form.

    Args:
        value: Claimed user id, normally a string from the auth layer

    Returns:
        The id in lowercase 8-4-4-4-12 form

    Raises:
        InvalidIdentity: If value is not a string in canonical UUID format
    """
    if not isinstance(value, str) or not UUID_PATTERN.match(value):
        raise InvalidIdentity("Invalid user ID format")
    return value.lower()


def validate_role_name(value: str) -> str:
    """Validate a database role name taken from configuration.

    Raises:
        ValueError: If the name is not a plain lowercase SQL identifier
    """
    if not ROLE_NAME_PATTERN.match(value):
        raise ValueError(f"Invalid RLS role name: {value!r}")
    return value


@dataclass(frozen=True)
class ActingIdentity:
    """Who a scoped transaction acts as: one user, or the admin bypass."""

    user_id: str | None = None
    is_admin: bool = False

    @classmethod
    def user(cls, user_id: object) -> "ActingIdentity":
        return cls(user_id=validate_user_id(user_id))

    @classmethod
    def admin(cls) -> "ActingIdentity":
        return cls(is_admin=True)

    @property
    def scope(self) -> str:
        """Label used in logs and metrics."""
        return "admin" if self.is_admin else "user"


def session_context_statements(identity: ActingIdentity, role: str | None) -> list[str]:
    """Build the transaction-scoped statements that establish session context.

    Only ``SET LOCAL`` is emitted; a plain ``SET`` outlives the transaction
    and stays on the pooled connection.

    Args:
        identity: Validated acting identity
        role: Least-privilege role to switch to, or None to keep the login role

    Returns:
        SQL statements in execution order
    """
    statements: list[str] = []
    if role:
        statements.append(f"SET LOCAL ROLE {validate_role_name(role)}")

    if identity.is_admin:
        statements.append(f"SET LOCAL {IS_ADMIN_SETTING} = 'true'")
    else:
        # ActingIdentity(user_id=...) bypasses user(); check again.
        user_id = validate_user_id(identity.user_id)
        statements.append(f"SET LOCAL {USER_ID_SETTING} = '{user_id}'")

    return statements
