"""Prometheus metrics for SecureShop.

Defines operational and security metrics for monitoring and alerting.
"""

from prometheus_client import Counter

# Authentication metrics
auth_attempts_total = Counter(
    "secureshop_auth_attempts_total",
    "Total login attempts",
    ["outcome"]  # outcome: success|failure|rate_limited
)

registrations_total = Counter(
    "secureshop_registrations_total",
    "Total registration attempts",
    ["outcome"]  # outcome: success|validation_failed|duplicate
)

# Authorization metrics
access_denied_total = Counter(
    "secureshop_access_denied_total",
    "Total denied resource or route accesses",
    ["reason"]  # reason: absent|owner_mismatch|role|unsafe_redirect
)

# Order metrics
orders_created_total = Counter(
    "secureshop_orders_created_total",
    "Total orders created at checkout"
)

order_transitions_total = Counter(
    "secureshop_order_transitions_total",
    "Total order status transitions",
    ["to_status"]
)
