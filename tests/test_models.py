import pytest

from goodlife.domain.errors import SchemaError
from goodlife.domain.models import (
    DOMAIN_PLAN_UPDATABLE_FIELDS,
    Domain,
    DomainPlan,
    Goal,
    GoalStatus,
    GoodLifePlan,
    parse_goal_list,
)


def test_goals_field_that_is_not_a_list_becomes_empty():
    """A raw object stored in ``goals`` is recovered as an empty list."""
    assert parse_goal_list({"0": {"description": "x"}}, Domain.SAFE) == []
    assert parse_goal_list(None, Domain.SAFE) == []

    plan = DomainPlan.from_dict({"id": 4, "planId": 1, "domain": "safe", "goals": {"oops": True}})
    assert plan.goals == []


def test_strict_parsing_rejects_malformed_goals():
    with pytest.raises(SchemaError):
        parse_goal_list({"0": {}}, Domain.SAFE, strict=True)
    with pytest.raises(SchemaError):
        parse_goal_list([{"description": "ok", "status": "done"}], Domain.SAFE, strict=True)


def test_lenient_parsing_skips_invalid_entries():
    goals = parse_goal_list(
        [{"description": ""}, {"description": "Walk to school", "status": "in_progress"}, "junk"],
        Domain.HEALTHY,
    )
    assert [g.description for g in goals] == ["Walk to school"]
    assert goals[0].status is GoalStatus.IN_PROGRESS


def test_stored_goal_without_id_or_status_gets_defaults():
    goals = parse_goal_list([{"description": "Make a friend"}], Domain.CONNECTED, domain_plan_id=7)
    goal = goals[0]
    assert goal.id.startswith("7-")
    assert goal.status is GoalStatus.NOT_STARTED
    assert goal.domain_id is Domain.CONNECTED
    assert goal.dependencies == [] and goal.collaborators == []


def test_container_domain_wins_over_goal_domain():
    goal = Goal.from_dict({"id": "g1", "description": "Cook", "domainId": "safe"}, domain=Domain.HEALTHY)
    assert goal.domain_id is Domain.HEALTHY


def test_stored_self_dependency_is_dropped():
    goal = Goal.from_dict({
        "id": "g1",
        "description": "Cook",
        "domainId": "healthy",
        "dependencies": [
            {"id": "d1", "goalId": "g1", "description": "Cook"},
            {"id": "d2", "goalId": "g2", "description": "Shop"},
        ],
    })
    assert [dep.goal_id for dep in goal.dependencies] == ["g2"]


def test_unknown_domain_and_status_are_schema_errors():
    with pytest.raises(SchemaError):
        Goal.from_dict({"id": "g", "description": "x", "domainId": "wealthy"})
    with pytest.raises(SchemaError):
        Goal.from_dict({"id": "g", "description": "x", "domainId": "safe", "status": "paused"})


def test_status_cycles_through_three_states():
    goal = Goal(id="g", description="Learn to swim", domain_id=Domain.HEALTHY)
    seen = []
    for _ in range(4):
        goal = goal.advance_status()
        seen.append(goal.status)
    assert seen == [
        GoalStatus.IN_PROGRESS,
        GoalStatus.COMPLETED,
        GoalStatus.NOT_STARTED,
        GoalStatus.IN_PROGRESS,
    ]


def test_goal_wire_format_is_camel_case():
    goal = Goal(id="g", description="Take the bus", domain_id=Domain.INDEPENDENT, collaborators=["Mum"])
    data = goal.to_dict()
    assert data["domainId"] == "independent"
    assert data["needsReframing"] is False
    assert data["collaborators"] == ["Mum"]
    assert Goal.from_dict(data) == goal


def test_update_payload_is_restricted_to_requested_fields():
    plan = DomainPlan(plan_id=1, domain=Domain.SAFE, id=3, vision="When I am 30 years old, I will be safe")
    assert tuple(plan.to_update_payload()) == DOMAIN_PLAN_UPDATABLE_FIELDS
    assert DOMAIN_PLAN_UPDATABLE_FIELDS == ("vision", "visionAge", "visionMedia", "goals", "completed")
    assert set(plan.to_update_payload(["goals"])) == {"goals"}
    with pytest.raises(SchemaError):
        plan.to_update_payload(["planId"])


def test_copy_does_not_share_goal_lists():
    plan = DomainPlan(plan_id=1, domain=Domain.SAFE, goals=[Goal(id="a", description="A", domain_id=Domain.SAFE)])
    clone = plan.copy()
    clone.goals.append(Goal(id="b", description="B", domain_id=Domain.SAFE))
    clone.goals[0].collaborators.append("Coach")
    assert len(plan.goals) == 1
    assert plan.goals[0].collaborators == []


def test_plan_progress_must_be_a_percentage():
    with pytest.raises(SchemaError):
        GoodLifePlan(student_id=1, progress=101)
    plan = GoodLifePlan.from_dict({"id": 1, "studentId": 4, "progress": "10"})
    assert plan.progress == 10
    assert plan.status.value == "in_progress"


def test_generated_goal_ids_carry_the_domain_plan_id():
    plan = DomainPlan.from_dict({"id": 9, "planId": 1, "domain": "included", "goals": [{"description": "Join a club"}]})
    assert plan.goals[0].id.startswith("9-")
