"""
Domain error types.

Every failure in the goal engine is recoverable: callers catch these, log them
and surface a notification instead of letting them escape an event handler.
"""

from typing import Any, Optional


class GoodLifeError(Exception):
    """Base class for all goal engine errors."""


class SchemaError(GoodLifeError, ValueError):
    """A payload failed validation at the persistence boundary."""


class GoalNotFoundError(GoodLifeError, LookupError):
    """No goal with the requested id exists on the board."""

    def __init__(self, goal_id: str):
        super().__init__(f"Goal not found: {goal_id}")
        self.goal_id = goal_id


class DragError(GoodLifeError):
    """A drag operation could not be applied."""


class DragIndexError(DragError, IndexError):
    """Source or destination index is outside the target goal list."""


class DependencyError(GoodLifeError, ValueError):
    """A dependency edge could not be added."""


class SelfDependencyError(DependencyError):
    """A goal was asked to depend on itself."""

    def __init__(self, goal_id: str):
        super().__init__(f"Goal {goal_id} cannot depend on itself")
        self.goal_id = goal_id


class PersistenceError(GoodLifeError):
    """The persistence collaborator did not confirm a request."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
