"""cascade-release - publishing plans for interdependent packages.

Given a snapshot of packages (versions, dependency ranges, pending change
records), decide which packages need a new version, how big each bump is,
how breaking changes ripple through dependents, and in which order to
publish.
"""

from cascade_release.models import Plan, PlanPolicy, Snapshot
from cascade_release.plan import resolve_plan

__all__ = ["Plan", "PlanPolicy", "Snapshot", "resolve_plan"]
