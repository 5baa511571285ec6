"""
Goal Board Service

Entry point a front end drives: every user action on a student's plan goes
through here. Each action edits a copy of the affected domain plan, hands it to
the reconciler (which updates the board synchronously and persists in the
background) and re-derives progress and the dependency graph from the board.

Actions that need persistence must be called from inside a running event loop.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging

from ..domain.board import PlanBoard
from ..domain.dependencies import (
    DependencyGraph,
    add_dependency as add_dependency_edge,
    refresh_dependency_labels,
    remove_dependency as remove_dependency_edge,
)
from ..domain.drag import DragReassignmentController, DragResult, DragSession
from ..domain.errors import PersistenceError, SchemaError, SelfDependencyError
from ..domain.models import (
    Domain,
    DomainPlan,
    Goal,
    GoalPriority,
    GoalStatus,
    GoalTemplate,
    GoodLifePlan,
    new_goal_id,
)
from ..domain.progress import ProgressReport, build_progress_report
from ..domain.reframing import ReframeItem, apply_reframe, list_unreframed_goals, review_complete
from ..domain.repositories import DomainPlanRepository, PlanRepository
from ..domain.vision import format_vision_statement
from .notifications import NotificationCenter
from .reconciler import OptimisticMutationReconciler, ReconcileResult

logger = logging.getLogger(__name__)

_UNSET = object()

GOAL_FIELDS = ('goals',)
VISION_FIELDS = ('vision', 'visionAge', 'visionMedia')
COMPLETED_FIELDS = ('completed',)

# Goal attributes a facilitator may edit directly
_EDITABLE_GOAL_ATTRS = {
    'description', 'category', 'priority', 'due_date', 'estimated_duration',
    'template_id', 'needs_reframing', 'collaborators',
}


@dataclass
class MutationResult:
    """What an action changed locally plus the handles of its background work."""
    value: Any = None
    persistence: Optional['asyncio.Task[ReconcileResult]'] = None
    followups: Tuple['asyncio.Task', ...] = ()

    @property
    def applied(self) -> bool:
        return self.persistence is not None

    async def wait(self) -> Optional[ReconcileResult]:
        result = await self.persistence if self.persistence is not None else None
        for task in self.followups:
            await task
        return result


class GoalBoardService:
    """Goals, visions and progress of one GoodLife plan."""

    def __init__(self, plan_id: int, domain_plan_repository: DomainPlanRepository,
                 plan_repository: Optional[PlanRepository] = None,
                 notifications: Optional[NotificationCenter] = None,
                 board: Optional[PlanBoard] = None,
                 rollback_on_failure: bool = False,
                 cache_ttl_seconds: int = 60):
        self.board = board or PlanBoard(plan_id)
        self.plan_repository = plan_repository
        self.plan: Optional[GoodLifePlan] = None
        self.notifications = notifications or NotificationCenter()
        self.reconciler = OptimisticMutationReconciler(
            self.board,
            domain_plan_repository,
            notifications=self.notifications,
            cache_ttl_seconds=cache_ttl_seconds,
            rollback_on_failure=rollback_on_failure,
        )
        self.drag = DragReassignmentController(self.board, submit=self._submit_moved)
        self.progress: ProgressReport = build_progress_report([])
        self.graph: DependencyGraph = DependencyGraph([])
        self.reconciler.add_listener(self._rederive)
        self._rederive()

    @classmethod
    async def load(cls, plan_id: int, domain_plan_repository: DomainPlanRepository,
                   plan_repository: Optional[PlanRepository] = None, **kwargs) -> 'GoalBoardService':
        """Build a service from the server's current copy of the plan."""
        domain_plans = await domain_plan_repository.list_by_plan(plan_id)
        service = cls(plan_id, domain_plan_repository, plan_repository,
                      board=PlanBoard(plan_id, domain_plans), **kwargs)
        if plan_repository is not None:
            service.plan = await plan_repository.get_by_id(plan_id)
        return service

    @property
    def plan_id(self) -> int:
        return self.board.plan_id

    def _rederive(self) -> None:
        self.progress = build_progress_report(self.board.domain_plans())
        self.graph = DependencyGraph(self.board.all_goals())

    def goals_by_domain(self) -> Dict[Domain, List[Goal]]:
        return {domain: self.board.goals(domain) for domain in Domain}

    # ---------------------- Internal helpers ----------------------
    def _submit(self, aggregates: Sequence[DomainPlan], fields: Sequence[str]) -> 'asyncio.Task[ReconcileResult]':
        return self.reconciler.submit(aggregates, fields=fields)

    def _submit_moved(self, aggregates: Sequence[DomainPlan]) -> 'asyncio.Task[ReconcileResult]':
        return self._submit(aggregates, GOAL_FIELDS)

    def _edit_goal(self, goal_id: str, edit: Callable[[Goal], Goal]) -> MutationResult:
        domain, index = self.board.locate(goal_id)
        aggregate = self.board.get(domain).copy()
        original = aggregate.goals[index]
        updated = edit(original)
        if updated is original:
            return MutationResult(value=original)
        aggregate.goals[index] = updated
        return MutationResult(value=updated, persistence=self._submit([aggregate], GOAL_FIELDS))

    # ---------------------- Goals ----------------------
    def add_goal(self, domain: Domain, description: str, **attrs) -> MutationResult:
        """Append a new not-started goal to ``domain``, creating its plan if needed."""
        unknown = set(attrs) - _EDITABLE_GOAL_ATTRS
        if unknown:
            raise SchemaError(f"Unknown goal attributes: {', '.join(sorted(unknown))}")
        if 'priority' in attrs:
            attrs['priority'] = GoalPriority.parse(attrs['priority'])
        goal = Goal(
            id=new_goal_id(),
            description=(description or '').strip(),
            domain_id=domain,
            status=GoalStatus.NOT_STARTED,
            **attrs,
        )
        aggregate = self.board.get_or_new(domain).copy()
        aggregate.goals.append(goal)
        return MutationResult(value=goal, persistence=self._submit([aggregate], GOAL_FIELDS))

    def add_goal_from_template(self, template: GoalTemplate, domain: Optional[Domain] = None) -> MutationResult:
        return self.add_goal(
            domain or template.domain,
            template.description,
            category=template.category,
            template_id=template.id,
            estimated_duration=template.estimated_duration,
        )

    def update_goal(self, goal_id: str, **changes) -> MutationResult:
        unknown = set(changes) - _EDITABLE_GOAL_ATTRS
        if unknown:
            raise SchemaError(f"Unknown goal attributes: {', '.join(sorted(unknown))}")
        if 'priority' in changes:
            changes['priority'] = GoalPriority.parse(changes['priority'])
        if 'description' in changes:
            changes['description'] = (changes['description'] or '').strip()
        if 'collaborators' in changes:
            changes['collaborators'] = list(changes['collaborators'] or [])

        def edit(goal: Goal) -> Goal:
            if all(getattr(goal, key) == value for key, value in changes.items()):
                return goal
            return replace(goal, **changes)
        return self._edit_goal(goal_id, edit)

    def delete_goal(self, goal_id: str) -> MutationResult:
        """Remove a goal. Edges other goals hold to it are left dangling."""
        domain, index = self.board.locate(goal_id)
        aggregate = self.board.get(domain).copy()
        removed = aggregate.goals.pop(index)
        return MutationResult(value=removed, persistence=self._submit([aggregate], GOAL_FIELDS))

    def advance_goal_status(self, goal_id: str) -> MutationResult:
        """not_started -> in_progress -> completed -> not_started."""
        result = self._edit_goal(goal_id, lambda goal: goal.advance_status())
        goal = result.value
        if goal.status is GoalStatus.COMPLETED:
            pending = self.graph.incomplete_dependencies(goal_id)
            if pending:
                names = ', '.join(dep.description for dep in pending)
                self.notifications.warning(
                    f"\"{goal.description}\" was completed before its dependencies: {names}",
                    domain=goal.domain_id,
                )
        return result

    # ---------------------- Drag and drop ----------------------
    def begin_drag(self, source_domain: Domain, source_index: int) -> DragSession:
        return self.drag.begin(source_domain, source_index)

    def drop_goal(self, session: DragSession, dest_domain: Domain, dest_index: int) -> DragResult:
        result = self.drag.drop(session, dest_domain, dest_index)
        if result.error is not None:
            self.notifications.error("Failed to move goal. Please try again.", domain=session.source_domain)
        return result

    def move_goal(self, source_domain: Domain, source_index: int,
                  dest_domain: Domain, dest_index: int) -> DragResult:
        return self.drop_goal(self.begin_drag(source_domain, source_index), dest_domain, dest_index)

    # ---------------------- Dependencies ----------------------
    def add_dependency(self, goal_id: str, dependency_goal_id: str) -> MutationResult:
        dependency = self.board.find_goal(dependency_goal_id)
        if self.graph.would_create_cycle(goal_id, dependency_goal_id) and goal_id != dependency_goal_id:
            logger.info(f"Dependency {goal_id} -> {dependency_goal_id} closes a cycle")
        try:
            return self._edit_goal(goal_id, lambda goal: add_dependency_edge(goal, dependency))
        except SelfDependencyError as e:
            logger.warning(str(e))
            self.notifications.error("A goal cannot depend on itself.")
            return MutationResult()

    def remove_dependency(self, goal_id: str, dependency_edge_id: str) -> MutationResult:
        return self._edit_goal(goal_id, lambda goal: remove_dependency_edge(goal, dependency_edge_id))

    def refresh_dependency_labels(self, goal_id: str) -> MutationResult:
        """Replace cached dependency labels with the live descriptions."""
        goals = self.graph.goals_by_id
        return self._edit_goal(goal_id, lambda goal: refresh_dependency_labels(goal, goals))

    # ---------------------- Collaborators ----------------------
    def add_collaborator(self, goal_id: str, name: str) -> MutationResult:
        display_name = (name or '').strip()
        if not display_name:
            raise ValueError("Collaborator name must not be empty")

        def edit(goal: Goal) -> Goal:
            if display_name in goal.collaborators:
                return goal
            return replace(goal, collaborators=goal.collaborators + [display_name])
        return self._edit_goal(goal_id, edit)

    def remove_collaborator(self, goal_id: str, name: str) -> MutationResult:
        def edit(goal: Goal) -> Goal:
            if name not in goal.collaborators:
                return goal
            return replace(goal, collaborators=[c for c in goal.collaborators if c != name])
        return self._edit_goal(goal_id, edit)

    # ---------------------- Reframing ----------------------
    def unreframed_goals(self) -> List[ReframeItem]:
        return list_unreframed_goals(self.board.domain_plans())

    def reframe_goal(self, goal_id: str, reframed_description: str) -> MutationResult:
        try:
            return self._edit_goal(goal_id, lambda goal: apply_reframe(goal, reframed_description))
        except ValueError as e:
            self.notifications.error(str(e))
            return MutationResult()

    def reframing_complete(self) -> bool:
        return review_complete(self.unreframed_goals())

    # ---------------------- Vision ----------------------
    def set_vision(self, domain: Domain, text: Optional[str], age: Optional[int] = None,
                   media: Any = _UNSET, format_statement: bool = True) -> MutationResult:
        """Set the vision statement of ``domain``, creating its plan if needed."""
        aggregate = self.board.get_or_new(domain).copy()
        vision_age = aggregate.vision_age if age is None else age
        vision = format_vision_statement(text, vision_age) if format_statement else (text or '').strip()
        aggregate.vision = vision or None
        aggregate.vision_age = vision_age
        if media is not _UNSET:
            aggregate.vision_media = media or None
        return MutationResult(value=aggregate.vision, persistence=self._submit([aggregate], VISION_FIELDS))

    def set_vision_age(self, domain: Domain, age: int) -> MutationResult:
        """Change the target age; an existing statement has its age rewritten."""
        current = self.board.get(domain)
        return self.set_vision(domain, current.vision if current else None, age=age)

    # ---------------------- Completion and plan progress ----------------------
    def set_domain_completed(self, domain: Domain, completed: bool = True) -> MutationResult:
        aggregate = self.board.get_or_new(domain).copy()
        aggregate.completed = completed
        task = self._submit([aggregate], COMPLETED_FIELDS)
        followup = self.sync_plan_progress()
        return MutationResult(
            value=self.progress.plan,
            persistence=task,
            followups=(followup,) if followup is not None else (),
        )

    def sync_plan_progress(self) -> Optional['asyncio.Task[Optional[GoodLifePlan]]']:
        """Send the locally derived plan progress with ``PATCH /plans/{id}``."""
        if self.plan_repository is None:
            return None
        loop = asyncio.get_running_loop()
        return loop.create_task(self._persist_plan_progress(self.progress.plan))

    async def _persist_plan_progress(self, progress: int) -> Optional[GoodLifePlan]:
        try:
            self.plan = await self.plan_repository.update(self.plan_id, {'progress': progress})
        except PersistenceError as e:
            logger.error(f"Failed to update progress of plan {self.plan_id}: {e}")
            self.notifications.error("Failed to update plan progress.")
            return None
        logger.info(f"Plan {self.plan_id} progress set to {progress}")
        return self.plan

    # ---------------------- Reconciliation passthrough ----------------------
    async def refresh(self) -> bool:
        return await self.reconciler.refresh()

    def rollback(self, domain: Domain) -> bool:
        return self.reconciler.rollback(domain)
