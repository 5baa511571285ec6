"""
Infrastructure layer: concrete repositories and seed data.
"""

from .http_repositories import GoodLifeApiClient, HttpDomainPlanRepository, HttpPlanRepository
from .memory_repositories import InMemoryDomainPlanRepository, InMemoryPlanRepository, InMemoryStore
from .seed import seed_demo_data

__all__ = [
    'GoodLifeApiClient',
    'HttpDomainPlanRepository',
    'HttpPlanRepository',
    'InMemoryDomainPlanRepository',
    'InMemoryPlanRepository',
    'InMemoryStore',
    'seed_demo_data',
]
