"""RLS-scoped transaction executor.

Runs a unit of work inside one transaction whose session context tells the
Postgres row-level security policies who is acting:

- ``run_as_user`` sets ``app.user_id`` to a validated UUID
- ``run_as_admin`` sets ``app.is_admin`` to ``'true'``

Both optionally switch to a least-privilege role first, so the policies apply
even when the pool logs in as the table owner. Context is set with
``SET LOCAL`` and is discarded by the commit or rollback that ends the
transaction; nothing is ever explicitly unset.

The executor does not authorise. Callers decide who may use ``run_as_admin``.

Example:
    executor = RLSExecutor(session_factory)

    cards = await executor.run_as_user(user_id, lambda tx: tx.scalars(select(Card)))
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Result, ScalarResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Executable

from history_portal.db.errors import (
    InvalidIdentity,
    OperationFailed,
    TransactionAcquisitionFailed,
)
from history_portal.db.identity import (
    ActingIdentity,
    session_context_statements,
    validate_role_name,
)
from history_portal.utils.logging import StructuredTransactionLogger
from history_portal.utils.metrics import PrometheusTransactionMetrics, TransactionMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors raised by the driver or pool rather than by caller code
_DATABASE_ERRORS = (SQLAlchemyError, OSError)


class CallState(str, Enum):
    """Lifecycle of one scoped call."""

    IDLE = "idle"
    ACQUIRING_TRANSACTION = "acquiring_transaction"
    SETTING_CONTEXT = "setting_context"
    RUNNING_OPERATION = "running_operation"
    COMMITTING = "committing"
    ROLLING_BACK = "rolling_back"
    CLOSED = "closed"


class RLSTransaction:
    """Transaction-scoped handle passed to operations.

    Exposes query and unit-of-work methods only. Commit, rollback and
    connection access stay with the executor.
    """

    __slots__ = ("_session",)

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def execute(
        self, statement: Executable, params: dict[str, Any] | None = None
    ) -> Result[Any]:
        return await self._session.execute(statement, params)

    async def scalar(self, statement: Executable, params: dict[str, Any] | None = None) -> Any:
        return await self._session.scalar(statement, params)

    async def scalars(
        self, statement: Executable, params: dict[str, Any] | None = None
    ) -> ScalarResult[Any]:
        return await self._session.scalars(statement, params)

    async def get(self, entity: type[T], ident: Any) -> T | None:
        return await self._session.get(entity, ident)

    def add(self, instance: object) -> None:
        self._session.add(instance)

    def add_all(self, instances: Iterable[object]) -> None:
        self._session.add_all(instances)

    async def delete(self, instance: object) -> None:
        await self._session.delete(instance)

    async def flush(self) -> None:
        """Send pending ORM changes so policy checks run now."""
        await self._session.flush()


Operation = Callable[[RLSTransaction], Awaitable[T] | T]


class RLSExecutor:
    """Executes operations with user- or admin-scoped RLS session context.

    Args:
        session_factory: Factory for sessions on the shared, pooled engine
        role: Role switched to with ``SET LOCAL ROLE``; None or "" to skip
        metrics: Metrics sink (defaults to Prometheus)
        tx_logger: Structured outcome logger
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        role: str | None = "app_user",
        metrics: TransactionMetrics | None = None,
        tx_logger: StructuredTransactionLogger | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._role = validate_role_name(role) if role else None
        self._metrics = metrics or PrometheusTransactionMetrics()
        self._tx_logger = tx_logger or StructuredTransactionLogger()

    @property
    def role(self) -> str | None:
        return self._role

    async def run_as_user(self, user_id: str, operation: Operation[T]) -> T:
        """Run operation with ``app.user_id`` set to user_id.

        Raises:
            InvalidIdentity: user_id is not a canonical UUID (no I/O performed)
            TransactionAcquisitionFailed: no connection, or context could not be set
            OperationFailed: commit failed after the operation returned
        """
        start = time.perf_counter()
        try:
            identity = ActingIdentity.user(user_id)
        except InvalidIdentity:
            self._finish("user", "invalid_identity", start, "InvalidIdentity")
            raise
        return await self._run(identity, operation, start)

    async def run_as_admin(self, operation: Operation[T]) -> T:
        """Run operation with the admin bypass flag set.

        The caller must already have verified that the invoker is an admin.
        """
        return await self._run(ActingIdentity.admin(), operation, time.perf_counter())

    async def _run(self, identity: ActingIdentity, operation: Operation[T], start: float) -> T:
        scope = identity.scope
        statements = session_context_statements(identity, self._role)

        state = self._advance(scope, CallState.ACQUIRING_TRANSACTION)
        async with self._session_factory() as session:
            try:
                # Checks out a pooled connection and begins the transaction
                await session.connection()

                state = self._advance(scope, CallState.SETTING_CONTEXT)
                for statement in statements:
                    await session.execute(text(statement))

                state = self._advance(scope, CallState.RUNNING_OPERATION)
                result = operation(RLSTransaction(session))
                if inspect.isawaitable(result):
                    result = await result

                state = self._advance(scope, CallState.COMMITTING)
                await session.commit()
            except BaseException as e:
                self._advance(scope, CallState.ROLLING_BACK)
                if await self._rollback(session, scope) and not isinstance(e, asyncio.CancelledError):
                    self._finish(scope, "cancelled", start, "CancelledError")
                    raise asyncio.CancelledError() from e
                translated = self._translate(scope, state, e, start)
                if translated is e:
                    raise
                raise translated from e

        self._advance(scope, CallState.CLOSED)
        self._finish(scope, "committed", start)
        return result

    def _translate(
        self, scope: str, failed_in: CallState, error: BaseException, start: float
    ) -> BaseException:
        """Pick the exception surfaced for a failure in the given state."""
        reason = type(error).__name__

        if isinstance(error, asyncio.CancelledError):
            self._finish(scope, "cancelled", start, reason)
            return error

        if failed_in in (CallState.ACQUIRING_TRANSACTION, CallState.SETTING_CONTEXT) and isinstance(
            error, _DATABASE_ERRORS
        ):
            self._finish(scope, "acquisition_failed", start, reason)
            return TransactionAcquisitionFailed(f"Could not open {scope}-scoped transaction: {reason}")

        if failed_in == CallState.COMMITTING and isinstance(error, _DATABASE_ERRORS):
            self._finish(scope, "commit_failed", start, reason)
            return OperationFailed(f"Could not commit {scope}-scoped transaction: {reason}")

        # Caller errors pass through unchanged
        self._finish(scope, "rolled_back", start, reason)
        return error

    async def _rollback(self, session: AsyncSession, scope: str) -> bool:
        """Roll back and wait for it to finish, even across cancellations.

        The session closes right after this returns, so the rollback must not
        be left running in the background.

        Returns:
            True if the caller was cancelled while the rollback ran
        """
        rollback = asyncio.ensure_future(session.rollback())
        interrupted = False
        while not rollback.done():
            try:
                await asyncio.shield(rollback)
            except asyncio.CancelledError:
                interrupted = True
            except _DATABASE_ERRORS:
                break

        error = None if rollback.cancelled() else rollback.exception()
        if error is not None:
            # Connection is invalidated on close; the original error is re-raised
            logger.warning(f"[rls] {scope} rollback failed: {type(error).__name__}")
        return interrupted

    def _advance(self, scope: str, state: CallState) -> CallState:
        logger.debug(f"[rls] {scope} -> {state.value}")
        return state

    def _finish(
        self, scope: str, outcome: str, start: float, error_reason: str | None = None
    ) -> None:
        latency_ms = (time.perf_counter() - start) * 1000
        self._metrics.record(scope, outcome, latency_ms)
        self._tx_logger.log_outcome(scope, outcome, latency_ms, error_reason=error_reason)
