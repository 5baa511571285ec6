"""
GoodLife Services Package

- run_async: async/sync bridge
- NotificationCenter: user-visible, non-blocking notifications
- OptimisticMutationReconciler: local-first persistence of domain plans
- GoalBoardService: facade driving every action on a student's plan
"""

from typing import Any, Mapping, Optional

from .async_helper import run_async
from .goal_board_service import GoalBoardService, MutationResult
from .notifications import Notification, NotificationCenter, NotificationLevel
from .reconciler import OptimisticMutationReconciler, ReconcileResult


async def open_plan_board(plan_id: int, config: Optional[Mapping[str, Any]] = None,
                          notifications: Optional[NotificationCenter] = None) -> GoalBoardService:
    """Load a plan from the REST collaborator configured in ``config``.

    ``config`` is a Flask config or any mapping with the ``Config`` keys; the
    ``Config`` class defaults apply when it is omitted.
    """
    from ..infrastructure.http_repositories import GoodLifeApiClient, HttpDomainPlanRepository, HttpPlanRepository

    if config is None:
        from config import Config
        config = {key: getattr(Config, key) for key in dir(Config) if key.isupper()}

    client = GoodLifeApiClient(config.get('GOODLIFE_API_URL'), timeout=config.get('GOODLIFE_HTTP_TIMEOUT'))
    return await GoalBoardService.load(
        plan_id,
        HttpDomainPlanRepository(client),
        HttpPlanRepository(client),
        notifications=notifications,
        rollback_on_failure=bool(config.get('ROLLBACK_ON_FAILURE', False)),
        cache_ttl_seconds=config.get('DOMAIN_CACHE_TTL_SECONDS', 60),
    )


__all__ = [
    'run_async',
    'GoalBoardService',
    'MutationResult',
    'Notification',
    'NotificationCenter',
    'NotificationLevel',
    'OptimisticMutationReconciler',
    'ReconcileResult',
    'open_plan_board',
]
