"""
Prometheus Metrics Module.

Counters and histograms for bill parsing, ingestion and auditing.
Exposition is left to the host process (``generate_latest``).
"""

from prometheus_client import Counter, Histogram, generate_latest

# ============================================
# Parsing Metrics
# ============================================
BILLS_PARSED_TOTAL = Counter(
    "medbill_bills_parsed_total",
    "Total number of bills parsed",
    ["facility_type"]
)

LINE_ITEMS_EXTRACTED_TOTAL = Counter(
    "medbill_line_items_extracted_total",
    "Total number of line items extracted from bills"
)

PARSE_DURATION_SECONDS = Histogram(
    "medbill_parse_duration_seconds",
    "Time spent parsing recognized text",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

OCR_DURATION_SECONDS = Histogram(
    "medbill_ocr_duration_seconds",
    "Time spent on text recognition per page",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0]
)

RECOGNITION_FAILURES_TOTAL = Counter(
    "medbill_recognition_failures_total",
    "Number of captures where text recognition failed",
    ["reason"]
)

# ============================================
# Audit Engine Metrics
# ============================================
AUDITS_COMPLETED_TOTAL = Counter(
    "medbill_audits_completed_total",
    "Total number of audits completed"
)

AUDIT_DURATION_SECONDS = Histogram(
    "medbill_audit_duration_seconds",
    "Time spent on audit processing",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

AUDIT_FLAGS_TOTAL = Counter(
    "medbill_audit_flags_total",
    "Total number of audit flags raised",
    ["flag_type", "severity"]
)

AUDIT_RISK_SCORE = Histogram(
    "medbill_audit_risk_score",
    "Distribution of audit risk scores",
    buckets=[0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
)

ESTIMATED_OVERCHARGE_DOLLARS = Counter(
    "medbill_estimated_overcharge_dollars_total",
    "Total estimated overcharge identified in dollars"
)


# ============================================
# Helper Functions
# ============================================
def track_parse(facility_type: str, line_items: int, duration_seconds: float) -> None:
    """Track a completed parse."""
    BILLS_PARSED_TOTAL.labels(facility_type=facility_type).inc()
    LINE_ITEMS_EXTRACTED_TOTAL.inc(line_items)
    PARSE_DURATION_SECONDS.observe(duration_seconds)


def track_ocr_duration(duration_seconds: float) -> None:
    """Track text recognition time for one page."""
    OCR_DURATION_SECONDS.observe(duration_seconds)


def track_recognition_failure(reason: str) -> None:
    """Track a text recognition failure."""
    RECOGNITION_FAILURES_TOTAL.labels(reason=reason).inc()


def track_audit_result(risk_score: int, flags: list, duration_seconds: float, overcharge: float) -> None:
    """Track audit results."""
    AUDITS_COMPLETED_TOTAL.inc()
    AUDIT_DURATION_SECONDS.observe(duration_seconds)
    AUDIT_RISK_SCORE.observe(risk_score)

    if overcharge > 0:
        ESTIMATED_OVERCHARGE_DOLLARS.inc(overcharge)

    for flag in flags:
        AUDIT_FLAGS_TOTAL.labels(
            flag_type=flag.flag_type.value,
            severity=flag.severity.value,
        ).inc()


def render_metrics() -> bytes:
    """Return all metrics in Prometheus text format."""
    return generate_latest()
