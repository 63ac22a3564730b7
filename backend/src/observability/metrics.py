"""Prometheus metrics for DocShare.

Defines the operational metrics for the moderation core: transition
outcomes, operation-type anomalies, and counter projection activity.
"""

from prometheus_client import Counter, Histogram

# Moderation transitions
transitions_total = Counter(
    "docshare_transitions_total",
    "Total moderation transitions attempted",
    ["subject_type", "operation_type", "outcome"]  # outcome: success|not_found|forbidden|conflict|validation_error|storage_error
)

transition_duration_seconds = Histogram(
    "docshare_transition_duration_seconds",
    "Time spent executing a moderation transition",
    ["subject_type"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# (old, new) pairs that did not classify to a known operation type
unknown_operation_total = Counter(
    "docshare_unknown_operation_total",
    "Ledger entries classified as UNKNOWN operation type",
    ["old_value", "new_value"]
)

# Counter projection
counter_updates_total = Counter(
    "docshare_counter_updates_total",
    "Derived counter updates applied",
    ["counter", "direction"]  # direction: increment|decrement|repair
)

counter_drift_total = Counter(
    "docshare_counter_drift_total",
    "Derived counter values found out of sync during reconciliation",
    ["counter"]
)
