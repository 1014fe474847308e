# investigator/services/recommendation.py
"""
Retain/purge recommendation policy.

The decision depends only on whether recoverable data exists. Days remaining
in the recovery window are shown to the operator but never change the
outcome: hold obligations follow the data, not the countdown.
"""

from investigator.models import Decision, Investigation, Recommendation

RETAIN = Recommendation(
    decision=Decision.RETAIN,
    rationale="User has recoverable data",
    action="Maintain holds / restore if needed",
)

PURGE = Recommendation(
    decision=Decision.PURGE,
    rationale="No significant data found",
    action="Safe to proceed with cleanup",
)


def recommend(investigation: Investigation) -> Recommendation:
    """Return RETAIN when the investigation found data, PURGE otherwise."""
    return RETAIN if investigation.has_data else PURGE
