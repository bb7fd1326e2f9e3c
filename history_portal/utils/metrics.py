"""Prometheus metrics for RLS-scoped transactions."""

from typing import Protocol

from prometheus_client import Counter, Histogram

rls_transactions_total = Counter(
    "rls_transactions_total",
    "Total RLS-scoped transactions by scope and outcome",
    ["scope", "outcome"],
)

rls_transaction_latency_ms = Histogram(
    "rls_transaction_latency_ms",
    "RLS-scoped transaction latency in milliseconds",
    ["scope", "outcome"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000],
)


class TransactionMetrics(Protocol):
    """Sink for executor metrics."""

    def record(self, scope: str, outcome: str, latency_ms: float) -> None: ...


class PrometheusTransactionMetrics:
    """Prometheus-based transaction metrics implementation."""

    def record(self, scope: str, outcome: str, latency_ms: float) -> None:
        """Count the transaction and record its latency."""
        rls_transactions_total.labels(scope=scope, outcome=outcome).inc()
        rls_transaction_latency_ms.labels(scope=scope, outcome=outcome).observe(latency_ms)
