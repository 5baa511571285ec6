"""
Progress calculations.

Two domain-level formulas coexist because two views present the same data
differently: the progress details view credits in-progress goals with half a
goal ("nuanced"), the completion view only counts finished goals ("strict").
Plan-level progress is driven by the explicit ``completed`` flag of each domain
plan and is deliberately independent of goal state.

All percentages use half-up rounding on exact fractions, so 62.5 becomes 63.
"""

from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, Iterable, List, Optional
import math

from .models import DOMAIN_COUNT, DOMAIN_ORDER, Domain, DomainPlan, Goal, GoalStatus


def _round_half_up(value: Fraction) -> int:
    return int(math.floor(value + Fraction(1, 2)))


def _percent(numerator: Fraction, denominator: int) -> int:
    if denominator <= 0:
        return 0
    pct = _round_half_up(numerator * 100 / denominator)
    return max(0, min(100, pct))


@dataclass(frozen=True)
class StatusCounts:
    completed: int = 0
    in_progress: int = 0
    not_started: int = 0

    @property
    def total(self) -> int:
        return self.completed + self.in_progress + self.not_started


def count_statuses(goals: Iterable[Goal]) -> StatusCounts:
    completed = in_progress = not_started = 0
    for goal in goals:
        if goal.status is GoalStatus.COMPLETED:
            completed += 1
        elif goal.status is GoalStatus.IN_PROGRESS:
            in_progress += 1
        else:
            not_started += 1
    return StatusCounts(completed=completed, in_progress=in_progress, not_started=not_started)


def nuanced_domain_progress(goals: Iterable[Goal]) -> int:
    """round(100 * (completed + 0.5 * in_progress) / total), 0 for no goals."""
    counts = count_statuses(goals)
    score = counts.completed + Fraction(counts.in_progress, 2)
    return _percent(score, counts.total)


def strict_domain_progress(goals: Iterable[Goal]) -> int:
    """round(100 * completed / total), 0 for no goals."""
    counts = count_statuses(goals)
    return _percent(Fraction(counts.completed), counts.total)


def plan_progress(domain_plans: Iterable[DomainPlan]) -> int:
    """round(100 * completed domains / 6), using only the explicit flag."""
    completed = {dp.domain for dp in domain_plans if dp.completed}
    return _percent(Fraction(len(completed)), DOMAIN_COUNT)


@dataclass(frozen=True)
class DomainProgress:
    domain: Domain
    counts: StatusCounts
    nuanced: int
    strict: int
    completed: bool


@dataclass(frozen=True)
class ProgressReport:
    domains: Dict[Domain, DomainProgress]
    plan: int

    def for_domain(self, domain: Domain) -> DomainProgress:
        return self.domains[domain]

    def as_dict(self) -> Dict[str, object]:
        return {
            'plan': self.plan,
            'domains': {
                domain.value: {
                    'nuanced': entry.nuanced,
                    'strict': entry.strict,
                    'completed': entry.completed,
                    'counts': {
                        'completed': entry.counts.completed,
                        'in_progress': entry.counts.in_progress,
                        'not_started': entry.counts.not_started,
                    },
                }
                for domain, entry in self.domains.items()
            },
        }


def domain_progress(domain: Domain, domain_plan: Optional[DomainPlan]) -> DomainProgress:
    goals: List[Goal] = list(domain_plan.goals) if domain_plan else []
    return DomainProgress(
        domain=domain,
        counts=count_statuses(goals),
        nuanced=nuanced_domain_progress(goals),
        strict=strict_domain_progress(goals),
        completed=bool(domain_plan and domain_plan.completed),
    )


def build_progress_report(domain_plans: Iterable[DomainPlan]) -> ProgressReport:
    by_domain = {dp.domain: dp for dp in domain_plans}
    return ProgressReport(
        domains={domain: domain_progress(domain, by_domain.get(domain)) for domain in DOMAIN_ORDER},
        plan=plan_progress(by_domain.values()),
    )
