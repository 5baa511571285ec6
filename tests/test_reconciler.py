import asyncio

from goodlife.domain.board import PlanBoard
from goodlife.domain.errors import PersistenceError
from goodlife.domain.models import Domain, DomainPlan, Goal
from goodlife.infrastructure.memory_repositories import InMemoryDomainPlanRepository
from goodlife.services.notifications import NotificationCenter, NotificationLevel
from goodlife.services.reconciler import OptimisticMutationReconciler


class FlakyDomainPlanRepository(InMemoryDomainPlanRepository):
    """In-memory repository whose writes (or reads) can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False
        self.fail_reads = False
        self.list_calls = 0

    async def list_by_plan(self, plan_id):
        self.list_calls += 1
        if self.fail_reads:
            raise PersistenceError("server unavailable", status_code=503)
        return await super().list_by_plan(plan_id)

    async def create(self, payload):
        if self.fail_writes:
            raise PersistenceError("server error", status_code=500)
        return await super().create(payload)

    async def update(self, domain_plan_id, changes):
        if self.fail_writes:
            raise PersistenceError("server error", status_code=500)
        return await super().update(domain_plan_id, changes)


class SlowReadRepository(FlakyDomainPlanRepository):
    """Reads the collection immediately but holds the response until ``gate`` opens."""

    def __init__(self):
        super().__init__()
        self.gate = None
        self.held = None

    async def list_by_plan(self, plan_id):
        plans = await super().list_by_plan(plan_id)
        gate, self.gate = self.gate, None
        if gate is not None:
            self.held.set()
            await gate.wait()
        return plans


def _goal(goal_id, domain=Domain.SAFE):
    return Goal(id=goal_id, description=f"Goal {goal_id}", domain_id=domain)


async def _setup(repository=None, **kwargs):
    repo = repository or FlakyDomainPlanRepository()
    stored = await repo.create(DomainPlan(plan_id=1, domain=Domain.SAFE, goals=[_goal("a")]).to_create_payload())
    board = PlanBoard(1, [stored])
    notifications = NotificationCenter()
    reconciler = OptimisticMutationReconciler(board, repo, notifications=notifications, **kwargs)
    return repo, board, notifications, reconciler


def _with_goals(domain_plan, *goals):
    updated = domain_plan.copy()
    updated.goals.extend(goals)
    return updated


def test_local_state_updates_before_persistence_completes():
    async def scenario():
        repo, board, _, reconciler = await _setup()
        task = reconciler.submit([_with_goals(board.get(Domain.SAFE), _goal("b"))], fields=["goals"])

        assert [g.id for g in board.goals(Domain.SAFE)] == ["a", "b"]
        assert reconciler.in_flight(Domain.SAFE) == 1

        result = await task
        assert result.ok and result.refreshed
        assert reconciler.in_flight(Domain.SAFE) == 0
        stored = await repo.get_by_id(board.get(Domain.SAFE).id)
        assert [g.id for g in stored.goals] == ["a", "b"]

    asyncio.run(scenario())


def test_new_aggregate_is_created_once_and_adopts_server_id():
    async def scenario():
        repo, board, _, reconciler = await _setup()
        first = DomainPlan(plan_id=1, domain=Domain.HEALTHY, goals=[_goal("h1", Domain.HEALTHY)])
        second = _with_goals(first, _goal("h2", Domain.HEALTHY))

        tasks = [reconciler.submit([first]), reconciler.submit([second], fields=["goals"])]
        results = await asyncio.gather(*tasks)

        assert all(r.ok for r in results)
        healthy = [dp for dp in await repo.list_by_plan(1) if dp.domain is Domain.HEALTHY]
        assert len(healthy) == 1
        assert [g.id for g in healthy[0].goals] == ["h1", "h2"]
        assert board.get(Domain.HEALTHY).id == healthy[0].id

    asyncio.run(scenario())


def test_failure_notifies_and_keeps_local_state():
    async def scenario():
        repo, board, notifications, reconciler = await _setup()
        repo.fail_writes = True

        result = await reconciler.commit([_with_goals(board.get(Domain.SAFE), _goal("b"))], fields=["goals"])

        assert not result.ok
        assert result.failed[0][0] is Domain.SAFE
        assert [g.id for g in board.goals(Domain.SAFE)] == ["a", "b"]
        assert reconciler.is_dirty(Domain.SAFE)
        assert [g.id for g in reconciler.snapshot_of(Domain.SAFE).goals] == ["a"]

        last = notifications.history[-1]
        assert last.level is NotificationLevel.ERROR
        assert last.message == "Failed to save changes to the Safe plan. Please try again."

        # refresh does not clobber unconfirmed local changes
        assert await reconciler.refresh()
        assert [g.id for g in board.goals(Domain.SAFE)] == ["a", "b"]

        assert reconciler.rollback(Domain.SAFE)
        assert [g.id for g in board.goals(Domain.SAFE)] == ["a"]
        assert not reconciler.is_dirty(Domain.SAFE)
        assert not reconciler.rollback(Domain.SAFE)

    asyncio.run(scenario())


def test_later_success_clears_dirty_mark():
    async def scenario():
        repo, board, _, reconciler = await _setup()
        repo.fail_writes = True
        await reconciler.commit([_with_goals(board.get(Domain.SAFE), _goal("b"))], fields=["goals"])
        repo.fail_writes = False

        result = await reconciler.commit([_with_goals(board.get(Domain.SAFE), _goal("c"))], fields=["goals"])
        assert result.ok
        assert not reconciler.is_dirty(Domain.SAFE)
        assert reconciler.snapshot_of(Domain.SAFE) is None
        stored = await repo.get_by_id(board.get(Domain.SAFE).id)
        assert [g.id for g in stored.goals] == ["a", "b", "c"]

    asyncio.run(scenario())


def test_automatic_rollback_when_enabled():
    async def scenario():
        repo, board, _, reconciler = await _setup(rollback_on_failure=True)
        repo.fail_writes = True
        changes = [
            _with_goals(board.get(Domain.SAFE), _goal("b")),
            DomainPlan(plan_id=1, domain=Domain.ENGAGED, goals=[_goal("e", Domain.ENGAGED)]),
        ]
        result = await reconciler.commit(changes)

        assert len(result.failed) == 2
        assert [g.id for g in board.goals(Domain.SAFE)] == ["a"]
        assert Domain.ENGAGED not in board

    asyncio.run(scenario())


def test_refresh_pulls_server_copy_and_reports_failures():
    async def scenario():
        repo, board, notifications, reconciler = await _setup()
        safe_id = board.get(Domain.SAFE).id
        await repo.update(safe_id, {"vision": "When I am 30 years old, I will feel safe"})

        assert await reconciler.refresh()
        assert board.get(Domain.SAFE).vision == "When I am 30 years old, I will feel safe"

        repo.fail_reads = True
        assert not await reconciler.refresh()
        assert notifications.history[-1].level is NotificationLevel.WARNING

    asyncio.run(scenario())


def test_domain_collection_is_cached_until_invalidated():
    async def scenario():
        repo, _, _, reconciler = await _setup()
        await reconciler.domain_plans()
        await reconciler.domain_plans()
        assert repo.list_calls == 1

        reconciler.invalidate()
        await reconciler.domain_plans()
        assert repo.list_calls == 2

    asyncio.run(scenario())


def test_listeners_see_every_board_change():
    async def scenario():
        _, board, _, reconciler = await _setup()
        calls = []
        reconciler.add_listener(lambda: calls.append(board.total_goal_count()))
        reconciler.apply_local([_with_goals(board.get(Domain.SAFE), _goal("b"))])
        assert calls == [2]

    asyncio.run(scenario())


def test_late_refresh_does_not_undo_a_newer_confirmed_change():
    async def scenario():
        repo, board, _, reconciler = await _setup(SlowReadRepository())
        gate = asyncio.Event()
        repo.gate, repo.held = gate, asyncio.Event()

        first = reconciler.submit([_with_goals(board.get(Domain.SAFE), _goal("b"))], fields=["goals"])
        await repo.held.wait()

        second = await reconciler.commit([_with_goals(board.get(Domain.SAFE), _goal("c"))], fields=["goals"])
        assert second.ok and second.refreshed
        assert [g.id for g in board.goals(Domain.SAFE)] == ["a", "b", "c"]

        gate.set()
        assert (await first).ok

        server = await repo.list_by_plan(1)
        assert [g.id for g in server[0].goals] == ["a", "b", "c"]
        assert [g.id for g in board.goals(Domain.SAFE)] == ["a", "b", "c"]
        assert [g.id for g in reconciler.cache.get(1)[0].goals] == ["a", "b", "c"]

    asyncio.run(scenario())
