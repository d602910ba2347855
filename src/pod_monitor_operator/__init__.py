"""
Pod Monitor Operator - republishes cluster facts as Prometheus metrics.

This operator watches two independent facts about a running cluster:
- Container restarts, reported exactly once per physical restart
- Certificate expiry of a well-known identity issuer secret

Both are exported as labeled gauges for an external monitoring backend.
"""

__version__ = "0.1.0"
