"""
Prometheus metrics for the compliance service.
"""

from prometheus_client import Counter, Histogram, Gauge


# ── Payment Runs ─────────────────────────────────────────────
payment_runs_total = Counter(
    "payment_runs_total",
    "Payment runs executed",
    ["status"],
)

invoices_classified_total = Counter(
    "invoices_classified_total",
    "Invoices classified by a payment run",
    ["outcome"],
)

payment_run_amount_pence_total = Counter(
    "payment_run_amount_pence_total",
    "Invoice value processed by payment runs, in pence",
    ["outcome"],
)

payment_run_duration_seconds = Histogram(
    "payment_run_duration_seconds",
    "Time to execute a payment run",
    buckets=[0.05, 0.1, 0.5, 1, 2, 5, 10, 30],
)

# ── Gas Safe Lookups ─────────────────────────────────────────
gas_safe_lookups_total = Counter(
    "gas_safe_lookups_total",
    "Gas Safe licence lookups",
    ["source", "outcome"],
)

external_api_latency_seconds = Histogram(
    "external_api_latency_seconds",
    "Latency of external API calls",
    ["service", "operation"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)

# ── Compliance Jobs ──────────────────────────────────────────
expiry_check_updates_total = Counter(
    "expiry_check_updates_total",
    "Rows changed by the expiry check job",
    ["kind"],
)

# ── Worker ───────────────────────────────────────────────────
worker_jobs_active = Gauge(
    "worker_jobs_active",
    "Number of currently active worker jobs",
)
