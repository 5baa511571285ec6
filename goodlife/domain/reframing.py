"""Review of goals flagged as negatively framed."""

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from .models import Domain, DomainPlan, Goal


@dataclass(frozen=True)
class ReframeItem:
    domain: Domain
    goal_id: str
    current: str
    reframed: str


def list_unreframed_goals(domain_plans: Iterable[DomainPlan]) -> List[ReframeItem]:
    """Every goal still waiting for a positive rewrite, in board order."""
    items = []
    for domain_plan in domain_plans:
        for goal in domain_plan.goals:
            if goal.needs_reframing:
                items.append(ReframeItem(
                    domain=domain_plan.domain,
                    goal_id=goal.id,
                    current=goal.description,
                    reframed=goal.reframed_description or '',
                ))
    return items


def apply_reframe(goal: Goal, reframed_description: Optional[str]) -> Goal:
    """Record a reframed description and clear the flag.

    Raises ValueError for a blank rewrite.
    """
    text = (reframed_description or '').strip()
    if not text:
        raise ValueError("Please provide a reframed goal description.")
    return replace(goal.copy(), reframed_description=text, needs_reframing=False, is_reframed=True)


def review_complete(items: Iterable[ReframeItem]) -> bool:
    return all(item.reframed.strip() for item in items)
