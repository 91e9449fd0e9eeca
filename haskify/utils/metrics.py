"""Prometheus metrics for retrieval, language-model calls and quizzes."""

from prometheus_client import Counter, Histogram

# Retrieval metrics
retrieval_latency_ms = Histogram(
    "retrieval_latency_ms",
    "Retrieval scoring and ranking latency in milliseconds",
    ["mode"],
    buckets=[1, 5, 10, 50, 100, 250, 500, 1000, 2000, 4000],
)

retrieval_failures_total = Counter(
    "retrieval_failures_total",
    "Retrievals that failed closed because the embedding provider errored",
    ["mode"],
)

# Language-model metrics
llm_requests_total = Counter(
    "llm_requests_total",
    "Chat-completion requests by purpose and outcome",
    ["purpose", "outcome"],
)

# Quiz metrics
quiz_attempts_total = Counter(
    "quiz_attempts_total",
    "Quiz generation attempts by outcome",
    ["outcome"],
)

quiz_duplicates_total = Counter(
    "quiz_duplicates_total",
    "Generated quizzes rejected as repeats within a session",
)

materials_ingested_total = Counter(
    "materials_ingested_total",
    "Materials ingested by file type and scope",
    ["file_type", "scope"],
)


class PrometheusRetrievalMetrics:
    """Prometheus-based retrieval metrics."""

    def record_latency(self, mode: str, latency_ms: float) -> None:
        """Record retrieval latency."""
        retrieval_latency_ms.labels(mode=mode).observe(latency_ms)

    def inc_failure(self, mode: str) -> None:
        """Increment fail-closed counter."""
        retrieval_failures_total.labels(mode=mode).inc()


class PrometheusTutorMetrics:
    """Prometheus-based metrics for language-model, quiz and ingestion events."""

    def inc_llm_request(self, purpose: str, outcome: str) -> None:
        llm_requests_total.labels(purpose=purpose, outcome=outcome).inc()

    def inc_quiz_attempt(self, outcome: str) -> None:
        quiz_attempts_total.labels(outcome=outcome).inc()
        if outcome == "duplicate":
            quiz_duplicates_total.inc()

    def inc_material_ingested(self, file_type: str, scope: str) -> None:
        materials_ingested_total.labels(file_type=file_type, scope=scope).inc()
