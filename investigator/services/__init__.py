# investigator/services/__init__.py
"""
Investigation services.

- collector: query every backend, one finding per category
- reconciliation: canonical deletion timestamp, has-data flag, timeline
- recommendation: retain/purge policy
- resilience: per-call timeout and throttling retry used by adapters
"""
