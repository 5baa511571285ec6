import asyncio

import pytest

from goodlife.domain.drag import DragOutcome
from goodlife.domain.errors import PersistenceError
from goodlife.domain.models import Domain, GoalStatus, GoalTemplate
from goodlife.infrastructure.memory_repositories import InMemoryPlanRepository, InMemoryStore
from goodlife.infrastructure.seed import seed_demo_data
from goodlife.services.goal_board_service import GoalBoardService
from goodlife.services.notifications import NotificationLevel


class BrokenPlanRepository(InMemoryPlanRepository):
    async def update(self, plan_id, changes):
        raise PersistenceError("plan update rejected", status_code=500)


async def _demo_service(store=None, **kwargs):
    store = store or InMemoryStore()
    plan_id = await seed_demo_data(store.plans, store.domain_plans)
    service = await GoalBoardService.load(plan_id, store.domain_plans, store.plans, **kwargs)
    return store, service


async def _stored_goals(store, plan_id, domain):
    for domain_plan in await store.domain_plans.list_by_plan(plan_id):
        if domain_plan.domain is domain:
            return domain_plan.goals
    return []


def _messages(service, level):
    return [n.message for n in service.notifications.history if n.level is level]


def test_load_derives_progress_from_demo_plan():
    async def scenario():
        _, service = await _demo_service()
        assert service.plan.student_id == 1
        assert service.progress.plan == 67
        safe = service.progress.for_domain(Domain.SAFE)
        assert (safe.nuanced, safe.strict) == (75, 50)
        assert service.board.total_goal_count() == 12

    asyncio.run(scenario())


def test_add_goal_is_visible_immediately_and_persisted():
    async def scenario():
        store, service = await _demo_service()
        result = service.add_goal(Domain.SAFE, "  Walk home with a friend  ", category="community")
        goal = result.value

        assert goal.id.startswith("goal-")
        assert goal.status is GoalStatus.NOT_STARTED
        assert service.board.goals(Domain.SAFE)[-1].description == "Walk home with a friend"
        assert service.progress.for_domain(Domain.SAFE).counts.total == 3

        assert (await result.wait()).ok
        stored = await _stored_goals(store, service.plan_id, Domain.SAFE)
        assert stored[-1].id == goal.id
        assert stored[-1].category == "community"

    asyncio.run(scenario())


def test_add_goal_from_template_creates_missing_domain_plan():
    async def scenario():
        store = InMemoryStore()
        plan = await store.plans.create({'studentId': 9})
        service = await GoalBoardService.load(plan.id, store.domain_plans, store.plans)
        template = GoalTemplate(id=4, domain=Domain.INDEPENDENT, description="Plan a weekly budget",
                                category="money", estimated_duration="3 months")

        result = service.add_goal_from_template(template)
        await result.wait()

        stored = await _stored_goals(store, plan.id, Domain.INDEPENDENT)
        assert [(g.description, g.template_id, g.estimated_duration) for g in stored] == [
            ("Plan a weekly budget", 4, "3 months")
        ]
        assert service.board.get(Domain.INDEPENDENT).is_persisted

    asyncio.run(scenario())


def test_advance_status_cycles_and_persists():
    async def scenario():
        store, service = await _demo_service()
        goal_id = service.board.goals(Domain.CONNECTED)[1].id

        statuses = []
        for _ in range(3):
            result = service.advance_goal_status(goal_id)
            await result.wait()
            statuses.append(result.value.status)

        assert statuses == [GoalStatus.IN_PROGRESS, GoalStatus.COMPLETED, GoalStatus.NOT_STARTED]
        stored = await _stored_goals(store, service.plan_id, Domain.CONNECTED)
        assert stored[1].status is GoalStatus.NOT_STARTED

    asyncio.run(scenario())


def test_move_between_domains_persists_both_plans():
    async def scenario():
        store, service = await _demo_service()
        moving = service.board.goals(Domain.HEALTHY)[1]

        result = service.move_goal(Domain.HEALTHY, 1, Domain.CONNECTED, 0)
        assert result.outcome is DragOutcome.MOVED
        assert service.board.goals(Domain.CONNECTED)[0].id == moving.id
        await result.persistence

        healthy = await _stored_goals(store, service.plan_id, Domain.HEALTHY)
        connected = await _stored_goals(store, service.plan_id, Domain.CONNECTED)
        assert len(healthy) == 1 and len(connected) == 3
        assert connected[0].id == moving.id
        assert connected[0].domain_id is Domain.CONNECTED

    asyncio.run(scenario())


def test_failed_drag_notifies_and_changes_nothing():
    async def scenario():
        _, service = await _demo_service()
        before = service.board.snapshot()
        result = service.move_goal(Domain.SAFE, 7, Domain.HEALTHY, 0)

        assert result.outcome is DragOutcome.ABORTED
        assert service.board.snapshot() == before
        assert _messages(service, NotificationLevel.ERROR) == ["Failed to move goal. Please try again."]

    asyncio.run(scenario())


def test_dependencies_are_tracked_and_nudge_on_completion():
    async def scenario():
        _, service = await _demo_service()
        transport, budget = service.board.goals(Domain.INDEPENDENT)

        self_result = service.add_dependency(budget.id, budget.id)
        assert not self_result.applied
        assert _messages(service, NotificationLevel.ERROR) == ["A goal cannot depend on itself."]

        await service.add_dependency(budget.id, transport.id).wait()
        assert service.graph.dependencies_of(budget.id) == [transport.id]

        service.advance_goal_status(budget.id)
        completion = service.advance_goal_status(budget.id)
        assert completion.value.status is GoalStatus.COMPLETED
        assert "completed before its dependencies" in _messages(service, NotificationLevel.WARNING)[-1]
        await completion.wait()

    asyncio.run(scenario())


def test_stale_dependency_labels_can_be_refreshed():
    async def scenario():
        _, service = await _demo_service()
        transport, budget = service.board.goals(Domain.INDEPENDENT)
        await service.add_dependency(budget.id, transport.id).wait()
        await service.update_goal(transport.id, description="Ride the bus to college").wait()

        assert [goal_id for goal_id, _ in service.graph.stale_labels()] == [budget.id]
        await service.refresh_dependency_labels(budget.id).wait()
        assert service.graph.stale_labels() == []
        assert service.board.find_goal(budget.id).dependencies[0].description == "Ride the bus to college"

    asyncio.run(scenario())


def test_deleting_a_dependency_leaves_a_dangling_edge():
    async def scenario():
        _, service = await _demo_service()
        transport, budget = service.board.goals(Domain.INDEPENDENT)
        await service.add_dependency(budget.id, transport.id).wait()
        await service.delete_goal(transport.id).wait()

        assert [(src, dep.goal_id) for src, dep in service.graph.dangling_edges()] == [(budget.id, transport.id)]

    asyncio.run(scenario())


def test_vision_is_formatted_with_target_age():
    async def scenario():
        store, service = await _demo_service()
        result = service.set_vision(Domain.ENGAGED, "I will play in a band", age=25)
        assert result.value == "When I am 25 years old, I will play in a band"
        await result.wait()

        await service.set_vision_age(Domain.ENGAGED, 28).wait()
        stored = next(dp for dp in await store.domain_plans.list_by_plan(service.plan_id)
                      if dp.domain is Domain.ENGAGED)
        assert stored.vision == "When I am 28 years old, I will play in a band"
        assert stored.vision_age == 28

    asyncio.run(scenario())


def test_completing_a_domain_updates_plan_progress():
    async def scenario():
        store, service = await _demo_service()
        result = service.set_domain_completed(Domain.CONNECTED, True)
        assert result.value == 83
        await result.wait()

        plan = await store.plans.get_by_id(service.plan_id)
        assert plan.progress == 83

    asyncio.run(scenario())


def test_plan_progress_failure_is_reported():
    async def scenario():
        store = InMemoryStore()
        store.plans = BrokenPlanRepository()
        _, service = await _demo_service(store)
        result = service.set_domain_completed(Domain.INDEPENDENT, True)
        await result.wait()

        assert result.value == 83
        assert "Failed to update plan progress." in _messages(service, NotificationLevel.ERROR)

    asyncio.run(scenario())


def test_reframing_review():
    async def scenario():
        _, service = await _demo_service()
        goal = service.board.goals(Domain.SAFE)[0]
        await service.update_goal(goal.id, needs_reframing=True).wait()

        items = service.unreframed_goals()
        assert [item.goal_id for item in items] == [goal.id]
        assert not service.reframing_complete()

        assert not service.reframe_goal(goal.id, "   ").applied
        assert _messages(service, NotificationLevel.ERROR) == ["Please provide a reframed goal description."]

        await service.reframe_goal(goal.id, "Feel calm and in control").wait()
        reframed = service.board.find_goal(goal.id)
        assert reframed.is_reframed and not reframed.needs_reframing
        assert reframed.display_description == "Feel calm and in control"
        assert service.reframing_complete()

    asyncio.run(scenario())


def test_collaborators_are_ordered_and_unique():
    async def scenario():
        _, service = await _demo_service()
        goal_id = service.board.goals(Domain.INCLUDED)[0].id

        await service.add_collaborator(goal_id, "Ms Tan").wait()
        await service.add_collaborator(goal_id, "Dad").wait()
        assert not service.add_collaborator(goal_id, "Ms Tan").applied
        with pytest.raises(ValueError):
            service.add_collaborator(goal_id, "  ")
        assert service.board.find_goal(goal_id).collaborators == ["Ms Tan", "Dad"]

        await service.remove_collaborator(goal_id, "Ms Tan").wait()
        assert service.board.find_goal(goal_id).collaborators == ["Dad"]

    asyncio.run(scenario())
