"""
Local working copy of one plan's domain plans.

The board is the optimistic client-side state: the reconciler swaps aggregates in
and out of it, every other component reads from it. At most one aggregate exists
per domain; aggregates are created lazily and never removed.
"""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple
import logging

from .errors import GoalNotFoundError, SchemaError
from .models import DOMAIN_ORDER, Domain, DomainPlan, Goal

logger = logging.getLogger(__name__)


class PlanBoard:
    """Domain plans of a single GoodLife plan, keyed by domain."""

    def __init__(self, plan_id: int, domain_plans: Iterable[DomainPlan] = ()):
        self.plan_id = plan_id
        self._plans: Dict[Domain, DomainPlan] = {}
        for domain_plan in domain_plans:
            self._add_loaded(domain_plan)

    def _add_loaded(self, domain_plan: DomainPlan) -> None:
        if domain_plan.plan_id != self.plan_id:
            raise SchemaError(f"Domain plan {domain_plan.id} belongs to plan {domain_plan.plan_id}, not {self.plan_id}")
        if domain_plan.domain in self._plans:
            logger.warning(f"Duplicate {domain_plan.domain.value} plan {domain_plan.id} in plan {self.plan_id}; keeping {self._plans[domain_plan.domain].id}")
            return
        domain_plan.check_invariants()
        self._plans[domain_plan.domain] = domain_plan

    def __iter__(self) -> Iterator[DomainPlan]:
        return iter(self.domain_plans())

    def __contains__(self, domain: Domain) -> bool:
        return domain in self._plans

    def get(self, domain: Domain) -> Optional[DomainPlan]:
        return self._plans.get(domain)

    def get_or_new(self, domain: Domain) -> DomainPlan:
        """Existing aggregate for ``domain`` or a fresh, unsaved one (not stored)."""
        existing = self._plans.get(domain)
        if existing is not None:
            return existing
        return DomainPlan(plan_id=self.plan_id, domain=domain)

    def replace(self, domain_plan: DomainPlan) -> None:
        if domain_plan.plan_id != self.plan_id:
            raise SchemaError(f"Domain plan belongs to plan {domain_plan.plan_id}, not {self.plan_id}")
        domain_plan.check_invariants()
        self._plans[domain_plan.domain] = domain_plan

    def discard_unsaved(self, domain: Domain) -> bool:
        """Drop a locally created aggregate the server never acknowledged."""
        existing = self._plans.get(domain)
        if existing is None or existing.is_persisted:
            return False
        del self._plans[domain]
        return True

    def domain_plans(self) -> List[DomainPlan]:
        """Aggregates in board column order."""
        return [self._plans[d] for d in DOMAIN_ORDER if d in self._plans]

    def goals(self, domain: Domain) -> List[Goal]:
        domain_plan = self._plans.get(domain)
        return list(domain_plan.goals) if domain_plan else []

    def all_goals(self) -> List[Goal]:
        return [goal for domain_plan in self.domain_plans() for goal in domain_plan.goals]

    def total_goal_count(self) -> int:
        return sum(len(domain_plan.goals) for domain_plan in self._plans.values())

    def locate(self, goal_id: str) -> Tuple[Domain, int]:
        for domain_plan in self.domain_plans():
            index = domain_plan.find_goal_index(goal_id)
            if index is not None:
                return domain_plan.domain, index
        raise GoalNotFoundError(goal_id)

    def find_goal(self, goal_id: str) -> Goal:
        domain, index = self.locate(goal_id)
        return self._plans[domain].goals[index]

    def snapshot(self) -> Dict[Domain, DomainPlan]:
        """Independent copies of every aggregate."""
        return {domain: domain_plan.copy() for domain, domain_plan in self._plans.items()}

    def copy(self) -> 'PlanBoard':
        return PlanBoard(self.plan_id, [dp.copy() for dp in self.domain_plans()])
