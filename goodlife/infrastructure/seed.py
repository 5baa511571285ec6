"""Demo data: the example student plan facilitators see on a fresh install."""

import logging

from ..domain.repositories import DomainPlanRepository, PlanRepository

logger = logging.getLogger(__name__)

DEMO_STUDENT_ID = 1

DEMO_DOMAIN_PLANS = [
    {
        'domain': 'safe',
        'vision': "I will feel safe in my community and learning environments",
        'goals': [
            {'description': "Learn to identify and manage anxiety triggers", 'status': 'completed'},
            {'description': "Develop a personal safety plan for school and work", 'status': 'in_progress'},
        ],
        'completed': True,
    },
    {
        'domain': 'healthy',
        'vision': "I will maintain physical and mental wellbeing through healthy habits",
        'goals': [
            {'description': "Establish a consistent sleep schedule", 'status': 'completed'},
            {'description': "Learn to prepare simple, nutritious meals", 'status': 'in_progress'},
        ],
        'completed': True,
    },
    {
        'domain': 'engaged',
        'vision': "I will participate in meaningful activities that I enjoy",
        'goals': [
            {'description': "Join a digital art club or online community", 'status': 'completed'},
            {'description': "Volunteer with animals at local shelter once per month", 'status': 'in_progress'},
        ],
        'completed': True,
    },
    {
        'domain': 'connected',
        'vision': "I will build and maintain positive relationships",
        'goals': [
            {'description': "Practice social skills in small group settings", 'status': 'in_progress'},
            {'description': "Connect with peers who share my interests", 'status': 'not_started'},
        ],
        'completed': False,
    },
    {
        'domain': 'independent',
        'vision': "I will develop skills to live independently",
        'goals': [
            {'description': "Learn to use public transportation", 'status': 'in_progress'},
            {'description': "Practice budgeting and managing money", 'status': 'not_started'},
        ],
        'completed': False,
    },
    {
        'domain': 'included',
        'vision': "I will advocate for myself and be included in decisions about my life",
        'goals': [
            {'description': "Practice expressing my needs clearly", 'status': 'completed'},
            {'description': "Learn about my rights and accommodations", 'status': 'in_progress'},
        ],
        'completed': True,
    },
]


async def seed_demo_data(plan_repository: PlanRepository, domain_plan_repository: DomainPlanRepository) -> int:
    """Create the demo plan unless the demo student already has one; returns its id."""
    existing = await plan_repository.get_by_student(DEMO_STUDENT_ID)
    if existing is not None:
        return existing.id

    plan = await plan_repository.create({
        'studentId': DEMO_STUDENT_ID,
        'status': 'in_progress',
        'progress': 10,
    })
    for entry in DEMO_DOMAIN_PLANS:
        await domain_plan_repository.create(dict(entry, planId=plan.id))
    logger.info(f"Seeded demo plan {plan.id} with {len(DEMO_DOMAIN_PLANS)} domain plans")
    return plan.id
