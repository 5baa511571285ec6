"""
Drag reassignment: move a goal between domains or reorder it within one.

Moves are computed on copies of the affected aggregates. The previous board state
is never touched; the resulting aggregates are handed to a submit callable
(normally the optimistic mutation reconciler) which installs them.

Index semantics: ``dest_index`` is the goal's final position, i.e. an index into
the destination list *after* the goal has been removed from the source. For a
reorder inside one domain that means pop-then-insert with the same numbers, so
moving index 0 to index 2 in ``[a, b, c, d]`` yields ``[b, c, a, d]``.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple
import logging

from .board import PlanBoard
from .errors import DragError, DragIndexError
from .models import Domain, DomainPlan, Goal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DragSession:
    """State of one drag gesture, passed explicitly from begin to drop."""
    source_domain: Domain
    source_index: int
    goal_id: Optional[str] = None
    in_flight: bool = True


class DragOutcome(Enum):
    MOVED = "moved"
    NOOP = "noop"
    ABORTED = "aborted"


@dataclass(frozen=True)
class DragResult:
    outcome: DragOutcome
    session: DragSession
    changed: Tuple[DomainPlan, ...] = ()
    goal: Optional[Goal] = None
    error: Optional[DragError] = None
    persistence: Any = None

    @property
    def moved(self) -> bool:
        return self.outcome is DragOutcome.MOVED


def move_goal(board: PlanBoard, source_domain: Domain, source_index: int,
              dest_domain: Domain, dest_index: int) -> Tuple[DomainPlan, ...]:
    """Compute the aggregates resulting from a move without mutating ``board``.

    Returns the changed aggregates: one for a reorder, source then destination
    for a cross-domain move. Raises DragIndexError when an index is out of range.
    """
    source = board.get_or_new(source_domain).copy()
    if not 0 <= source_index < len(source.goals):
        raise DragIndexError(
            f"Source index {source_index} out of range for {source_domain.value} ({len(source.goals)} goals)"
        )

    if source_domain is dest_domain:
        if not 0 <= dest_index < len(source.goals):
            raise DragIndexError(
                f"Destination index {dest_index} out of range for {dest_domain.value} ({len(source.goals)} goals)"
            )
        goal = source.goals.pop(source_index)
        source.goals.insert(dest_index, goal)
        return (source,)

    destination = board.get_or_new(dest_domain).copy()
    if not 0 <= dest_index <= len(destination.goals):
        raise DragIndexError(
            f"Destination index {dest_index} out of range for {dest_domain.value} ({len(destination.goals)} goals)"
        )
    goal = source.goals.pop(source_index)
    destination.goals.insert(dest_index, replace(goal, domain_id=dest_domain))
    return source, destination


class DragReassignmentController:
    """Turns drag gestures into aggregate changes.

    ``submit`` receives the changed aggregates of a successful move and returns
    whatever handle the persistence layer gives back (a task, usually).
    """

    def __init__(self, board: PlanBoard, submit: Optional[Callable[[Sequence[DomainPlan]], Any]] = None):
        self.board = board
        self._submit = submit

    def begin(self, source_domain: Domain, source_index: int) -> DragSession:
        goals = self.board.goals(source_domain)
        goal_id = goals[source_index].id if 0 <= source_index < len(goals) else None
        return DragSession(source_domain=source_domain, source_index=source_index, goal_id=goal_id)

    def drop(self, session: DragSession, dest_domain: Domain, dest_index: int) -> DragResult:
        finished = replace(session, in_flight=False)

        if not session.in_flight:
            return DragResult(DragOutcome.ABORTED, finished, error=DragError("Drag session already finished"))

        if session.source_domain is dest_domain and session.source_index == dest_index:
            return DragResult(DragOutcome.NOOP, finished)

        goals = self.board.goals(session.source_domain)
        if session.goal_id is not None and 0 <= session.source_index < len(goals) \
                and goals[session.source_index].id != session.goal_id:
            error = DragError(f"Goal at {session.source_domain.value}[{session.source_index}] changed during drag")
            logger.warning(str(error))
            return DragResult(DragOutcome.ABORTED, finished, error=error)

        try:
            changed = move_goal(self.board, session.source_domain, session.source_index, dest_domain, dest_index)
        except DragIndexError as e:
            logger.warning(f"Drag aborted: {e}")
            return DragResult(DragOutcome.ABORTED, finished, error=e)

        dest_plan = changed[-1]
        moved = dest_plan.goals[dest_index]
        logger.debug(f"Moved goal {moved.id} {session.source_domain.value}[{session.source_index}] -> {dest_domain.value}[{dest_index}]")

        if self._submit is not None:
            handle = self._submit(changed)
        else:
            for domain_plan in changed:
                self.board.replace(domain_plan)
            handle = None
        return DragResult(DragOutcome.MOVED, finished, changed=changed, goal=moved, persistence=handle)

    def move(self, source_domain: Domain, source_index: int, dest_domain: Domain, dest_index: int) -> DragResult:
        """begin + drop in one call."""
        return self.drop(self.begin(source_domain, source_index), dest_domain, dest_index)
