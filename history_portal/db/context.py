"""Request context for RLS-scoped data access."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    """Identity of the authenticated caller.

    user_id is kept as the raw string from the auth layer; RLSExecutor
    validates it before it reaches any SQL.
    """

    user_id: str
    is_admin: bool = False
